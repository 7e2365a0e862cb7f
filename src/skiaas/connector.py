"""
AzureConnector — the operations the REST and CLI layers call.

Each call resolves the cached provider client for its infrastructure and
hands off to the orchestrator that owns the operation. Results are
domain models; failures are ``IaasError`` subclasses.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import ConnectorSettings, load_settings
from .decommissioner import InstanceDecommissioner
from .errors import UnsupportedOperationError
from .inventory import InstanceInventory
from .lookup import require_virtual_machine_by_id, require_virtual_machine_by_name
from .models import Image, Infrastructure, Instance, InstanceScript, ScriptResult
from .providers.base import ProviderClient
from .providers.cache import ClientCache
from .provisioner import InstanceProvisioner
from .public_ip import PublicIpManager
from .scripts import CustomScriptRunner, RemoteScriptExecutor
from .tags import TagManager

logger = logging.getLogger(__name__)


class AzureConnector:
    """Instance lifecycle on Azure infrastructures.

    Args:
        cache: Provider client cache. A new one backed by ``AzureClient``
            when omitted.
        tag_manager: Mandatory tag source. Built from ``settings`` when omitted.
        settings: Connector defaults. Loaded from disk when omitted.
    """

    def __init__(
        self,
        cache: Optional[ClientCache] = None,
        tag_manager: Optional[TagManager] = None,
        settings: Optional[ConnectorSettings] = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._cache = cache or ClientCache()
        self._tags = tag_manager or TagManager(self._settings)

    def _client(self, infrastructure: Infrastructure) -> ProviderClient:
        return self._cache.get(infrastructure)

    def _inventory(self, infrastructure: Infrastructure) -> InstanceInventory:
        return InstanceInventory(self._client(infrastructure), self._tags)

    # -- provisioning -------------------------------------------------------

    def create_instance(self, infrastructure: Infrastructure, instance: Instance) -> List[Instance]:
        """Create ``instance.number`` VMs; see ``InstanceProvisioner``."""
        provisioner = InstanceProvisioner(self._client(infrastructure), self._tags, self._settings)
        return provisioner.create_instance(infrastructure, instance)

    def create_key_pair(self, infrastructure: Infrastructure, instance: Instance) -> None:
        """Key pairs are not a resource on Azure.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError(
            f"key pair creation is not supported on '{infrastructure.type}' "
            f"(instance: '{instance.tag}')"
        )

    # -- decommissioning ----------------------------------------------------

    def delete_instance(self, infrastructure: Infrastructure, instance_id: str) -> None:
        InstanceDecommissioner(self._client(infrastructure)).delete_instance(
            infrastructure, instance_id,
        )

    def delete_instance_by_tag(self, infrastructure: Infrastructure, tag: str) -> None:
        client = self._client(infrastructure)
        vm = require_virtual_machine_by_name(client, tag)
        InstanceDecommissioner(client).delete_instance(infrastructure, vm.vm_id)

    def delete_created_instances(self, infrastructure: Infrastructure) -> List[str]:
        """Delete every VM carrying this connector's tag.

        Returns:
            Provider ids of the deleted instances, in deletion order.
        """
        client = self._client(infrastructure)
        decommissioner = InstanceDecommissioner(client)
        deleted = []
        for vm in client.list_virtual_machines():
            if not self._tags.is_created_by_connector(vm.tags):
                continue
            decommissioner.delete_instance(infrastructure, vm.vm_id)
            deleted.append(vm.vm_id)
        logger.info(
            "Deleted %d connector instance(s) of infrastructure %s", len(deleted), infrastructure.id,
        )
        return deleted

    def delete_infrastructure(self, infrastructure: Infrastructure) -> None:
        """Forget the infrastructure; remote resources are left untouched."""
        logger.info("Removing cached client of infrastructure %s", infrastructure.id)
        self._cache.remove(infrastructure)

    # -- reads --------------------------------------------------------------

    def get_all_instances(self, infrastructure: Infrastructure) -> List[Instance]:
        return self._inventory(infrastructure).all_instances()

    def get_created_instances(self, infrastructure: Infrastructure) -> List[Instance]:
        return self._inventory(infrastructure).created_instances()

    def get_instance_by_id(self, infrastructure: Infrastructure, instance_id: str) -> Instance:
        return self._inventory(infrastructure).instance_by_id(instance_id)

    def get_instance_by_tag(self, infrastructure: Infrastructure, tag: str) -> Instance:
        return self._inventory(infrastructure).instance_by_tag(tag)

    def get_all_images(self, infrastructure: Infrastructure) -> List[Image]:
        return self._inventory(infrastructure).images()

    # -- scripts ------------------------------------------------------------

    def execute_script_on_instance_id(
        self,
        infrastructure: Infrastructure,
        instance_id: str,
        instance_script: InstanceScript,
    ) -> List[ScriptResult]:
        """Run scripts on a VM found by provider id.

        Raises:
            InstanceNotFoundError: If no VM has that id.
        """
        client = self._client(infrastructure)
        vm = require_virtual_machine_by_id(client, instance_id)
        return self._execute_script(client, vm.id, instance_script)

    def execute_script_on_instance_tag(
        self,
        infrastructure: Infrastructure,
        tag: str,
        instance_script: InstanceScript,
    ) -> List[ScriptResult]:
        """Run scripts on a VM found by name.

        Raises:
            InstanceNotFoundError: If no VM has that name.
        """
        client = self._client(infrastructure)
        vm = require_virtual_machine_by_name(client, tag)
        return self._execute_script(client, vm.id, instance_script)

    @staticmethod
    def _execute_script(
        client: ProviderClient, resource_id: str, instance_script: InstanceScript,
    ) -> List[ScriptResult]:
        # Listings may omit extensions; a direct read carries them.
        vm = client.get_virtual_machine(resource_id)
        executor = RemoteScriptExecutor(CustomScriptRunner(client))
        return executor.execute_script(vm, instance_script)

    # -- public IPs ---------------------------------------------------------

    def add_public_ip(
        self,
        infrastructure: Infrastructure,
        instance_id: str,
        desired_ip: Optional[str] = None,
    ) -> Optional[str]:
        manager = PublicIpManager(self._client(infrastructure), self._settings)
        return manager.add_public_ip(infrastructure, instance_id, desired_ip)

    def add_public_ip_by_tag(
        self,
        infrastructure: Infrastructure,
        tag: str,
        desired_ip: Optional[str] = None,
    ) -> Optional[str]:
        vm = require_virtual_machine_by_name(self._client(infrastructure), tag)
        return self.add_public_ip(infrastructure, vm.vm_id, desired_ip)

    def remove_public_ip(
        self,
        infrastructure: Infrastructure,
        instance_id: str,
        desired_ip: Optional[str] = None,
    ) -> None:
        manager = PublicIpManager(self._client(infrastructure), self._settings)
        manager.remove_public_ip(infrastructure, instance_id, desired_ip)

    def remove_public_ip_by_tag(
        self,
        infrastructure: Infrastructure,
        tag: str,
        desired_ip: Optional[str] = None,
    ) -> None:
        vm = require_virtual_machine_by_name(self._client(infrastructure), tag)
        self.remove_public_ip(infrastructure, vm.vm_id, desired_ip)
