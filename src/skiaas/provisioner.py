"""
Instance provisioning — one request, N replicas, one batch create.

All resolution (image, resource group, region, networks, OS type) happens
before the batch is submitted, so a failed lookup never leaves partial
remote state behind. What the provider does with a failing batch is
surfaced as-is.
"""

from __future__ import annotations

import logging
from typing import List

from . import naming
from .config import ConnectorSettings
from .errors import (
    InvalidRequestError,
    ResourceGroupNotFoundError,
    UnsupportedOperatingSystemError,
)
from .lookup import find_image
from .models import Infrastructure, Instance, Options
from .networking import NetworkComposer, NetworkPlan
from .providers.base import ProviderClient
from .providers.resources import NetworkInterfaceSpec, RemoteImage, VirtualMachineSpec
from .scripts import concatenate_scripts, script_extension
from .tags import TagManager

logger = logging.getLogger(__name__)

LINUX = "linux"
WINDOWS = "windows"


class InstanceProvisioner:
    """Creates one or more VMs from an ``Instance`` request.

    Args:
        client: Provider client for the target infrastructure.
        tag_manager: Supplies the mandatory + caller tag set.
        settings: Connector defaults (credentials, VM size, CIDR).
    """

    def __init__(
        self,
        client: ProviderClient,
        tag_manager: TagManager,
        settings: ConnectorSettings,
    ) -> None:
        self._client = client
        self._tags = tag_manager
        self._settings = settings
        self._composer = NetworkComposer(client, settings)

    def create_instance(self, infrastructure: Infrastructure, instance: Instance) -> List[Instance]:
        """Provision ``instance.number`` VMs and return one Instance per VM.

        Args:
            infrastructure: Target infrastructure (used for tagging).
            instance: The request; ``tag`` and ``image`` are required.

        Returns:
            Created instances, each with its provider id and ``number == 1``.

        Raises:
            InvalidRequestError: If tag or image is missing, or the region is unknown.
            ImageNotFoundError: If the image matches neither by name nor id.
            ResourceGroupNotFoundError: If the resolved resource group is missing.
            UnsupportedOperatingSystemError: If the image OS is not Linux/Windows.
        """
        if not instance.tag:
            raise InvalidRequestError(
                f"missing instance tag/name from instance: '{instance.model_dump()}'"
            )
        if not instance.image:
            raise InvalidRequestError(
                f"missing image name/id from instance: '{instance.tag}'"
            )

        options = instance.options or Options()
        image = find_image(self._client, instance.image)

        resource_group_name = options.resource_group or image.resource_group
        resource_group = self._client.get_resource_group(resource_group_name)
        if resource_group is None:
            raise ResourceGroupNotFoundError(
                f"unable to find resource group '{resource_group_name}' "
                f"for instance: '{instance.tag}'"
            )

        region = (
            self._client.resolve_region(options.region)
            if options.region else image.region
        )

        plan = self._composer.plan(instance.tag, resource_group.name, region, options)
        tags = TagManager.as_dict(self._tags.collect_tags(infrastructure.id, options))

        specs = []
        for instance_number in range(1, instance.number + 1):
            replica_tag = naming.unique_instance_tag(instance.tag, instance_number)
            interface = self._composer.replica_interface(plan, replica_tag, instance_number)
            specs.append(
                self._prepare_virtual_machine(instance, image, plan, replica_tag, interface, tags)
            )

        logger.info(
            "Creating %d instance(s) %s (image=%s resource_group=%s region=%s)",
            len(specs), instance.tag, image.name, resource_group.name, region,
        )
        created = self._client.create_virtual_machines(specs)
        logger.info("Created instances %s", ", ".join(vm.name for vm in created))

        return [
            instance.model_copy(update={"id": vm.vm_id, "tag": vm.name, "number": 1})
            for vm in created
        ]

    def _prepare_virtual_machine(
        self,
        instance: Instance,
        image: RemoteImage,
        plan: NetworkPlan,
        replica_tag: str,
        interface: NetworkInterfaceSpec,
        tags: dict,
    ) -> VirtualMachineSpec:
        credentials = instance.credentials
        username = (credentials.username if credentials else None) or self._settings.default_username
        password = (credentials.password if credentials else None) or self._settings.default_password
        public_key = credentials.public_key if credentials else None

        os_type = (image.os_type or "").lower()
        if os_type == LINUX:
            # An SSH key replaces the password on Linux.
            admin_password = None if public_key else password
            ssh_public_key = public_key
        elif os_type == WINDOWS:
            admin_password = password
            ssh_public_key = None
        else:
            raise UnsupportedOperatingSystemError(
                f"operating system of type '{image.os_type}' is not yet supported "
                f"(image: '{image.name}')"
            )

        size = (
            instance.hardware.type
            if instance.hardware and instance.hardware.type
            else self._settings.default_vm_size
        )

        extensions = []
        scripts = instance.init_script.scripts if instance.init_script else []
        if scripts:
            extensions.append(
                script_extension(
                    naming.script_extension_name(replica_tag),
                    concatenate_scripts(scripts),
                )
            )

        return VirtualMachineSpec(
            name=replica_tag,
            region=plan.region,
            resource_group=plan.resource_group,
            image_id=image.id,
            os_type=os_type,
            admin_username=username,
            admin_password=admin_password,
            ssh_public_key=ssh_public_key,
            size=size,
            os_disk_name=naming.os_disk_name(replica_tag),
            network_interface=interface,
            extensions=extensions,
            tags=dict(tags),
        )
