"""
Public IP lifecycle on running instances.

Adding an address prefers an interface that has none; when every
interface already has one, a secondary interface is created. If the
provider refuses the secondary interface (Azure does for running VMs of
many sizes), the new address replaces the primary one instead. The
address ends up on the VM either way, but the topology differs from the
one requested.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .config import ConnectorSettings
from .errors import ProviderCommunicationError, PublicIpNotFoundError
from .lookup import find_public_ip_by_address, require_virtual_machine_by_id, same_resource
from .models import Infrastructure
from .networking import NetworkComposer
from .providers.base import ProviderClient
from .providers.resources import (
    RemoteNetworkInterface,
    RemotePublicIp,
    RemoteVirtualMachine,
)

logger = logging.getLogger(__name__)


class PublicIpManager:
    """Adds and removes public IPs on existing VMs.

    Args:
        client: Provider client for the target infrastructure.
        settings: Connector defaults.
    """

    def __init__(self, client: ProviderClient, settings: ConnectorSettings) -> None:
        self._client = client
        self._composer = NetworkComposer(client, settings)

    def add_public_ip(
        self,
        infrastructure: Infrastructure,
        instance_id: str,
        desired_ip: Optional[str] = None,
    ) -> Optional[str]:
        """Attach a public IP to the VM and return its address.

        Args:
            infrastructure: Target infrastructure.
            instance_id: Provider id of the VM.
            desired_ip: Existing unattached address to reuse; a new static
                address is allocated when omitted.

        Raises:
            InstanceNotFoundError: If no VM has that id.
            PublicIpNotFoundError: If ``desired_ip`` is not an unattached address.
        """
        vm = require_virtual_machine_by_id(self._client, instance_id)
        public_ip = self._resolve_public_ip(vm, desired_ip)

        interfaces = self._interfaces(vm)
        without_ip = [interface for interface in interfaces if not interface.primary_public_ip_id]

        if without_ip:
            target = without_ip[0]
            logger.info(
                "Attaching public IP %s to interface %s of instance %s",
                public_ip.ip_address, target.name, instance_id,
            )
            self._client.attach_public_ip(target.id, public_ip.id)
        else:
            self._add_with_secondary_interface(vm, public_ip)

        return public_ip.ip_address

    def _resolve_public_ip(
        self, vm: RemoteVirtualMachine, desired_ip: Optional[str],
    ) -> RemotePublicIp:
        if desired_ip:
            public_ip = find_public_ip_by_address(self._client, desired_ip)
            if public_ip is None or public_ip.attached:
                raise PublicIpNotFoundError(
                    f"unable to find an unattached public IP address: '{desired_ip}'"
                )
            return public_ip

        spec = NetworkComposer.public_ip(vm.name, vm.region, vm.resource_group, static=True)
        logger.info("Allocating public IP %s for instance %s", spec.name, vm.vm_id)
        return self._client.create_public_ip(spec)

    def _add_with_secondary_interface(
        self, vm: RemoteVirtualMachine, public_ip: RemotePublicIp,
    ) -> None:
        primary = self._primary_interface(vm)
        spec = self._composer.secondary_interface(vm, primary, public_ip)

        logger.info(
            "Creating secondary interface %s for public IP %s on instance %s",
            spec.name, public_ip.ip_address, vm.vm_id,
        )
        secondary = self._client.create_network_interface(spec)

        try:
            self._client.attach_secondary_network_interface(vm, secondary.id)
        except ProviderCommunicationError as exc:
            logger.warning(
                "Cannot add interface %s to instance %s (%s); "
                "replacing the primary public IP instead",
                secondary.name, vm.vm_id, exc,
            )
            self._client.detach_public_ip(secondary.id)
            self._client.delete_network_interface(secondary.id)
            self._replace_primary_public_ip(primary, public_ip)

    def _replace_primary_public_ip(
        self, primary: RemoteNetworkInterface, public_ip: RemotePublicIp,
    ) -> None:
        previous_ip_id = primary.primary_public_ip_id
        self._client.detach_public_ip(primary.id)
        if previous_ip_id:
            self._client.delete_public_ip(previous_ip_id)
        self._client.attach_public_ip(primary.id, public_ip.id)

    def remove_public_ip(
        self,
        infrastructure: Infrastructure,
        instance_id: str,
        desired_ip: Optional[str] = None,
    ) -> None:
        """Remove at most one public IP from the VM.

        A ``desired_ip`` that exists is deleted and nothing else is removed.
        Azure refuses to delete an address that is still bound, so when one
        of this VM's interfaces holds it, that interface is detached from it
        first; an address held elsewhere or by nothing is deleted as-is.
        Without a ``desired_ip``, or when it does not exist, a secondary
        interface's address goes first, then the primary's.

        Raises:
            InstanceNotFoundError: If no VM has that id.
        """
        vm = require_virtual_machine_by_id(self._client, instance_id)

        interfaces = self._interfaces(vm)

        if desired_ip:
            public_ip = find_public_ip_by_address(self._client, desired_ip)
            if public_ip is not None:
                holder = next(
                    (
                        interface for interface in interfaces
                        if same_resource(interface.primary_public_ip_id, public_ip.id)
                    ),
                    None,
                )
                if holder is not None:
                    self._detach_and_delete(holder, instance_id)
                else:
                    logger.info("Deleting public IP %s of instance %s", desired_ip, instance_id)
                    self._client.delete_public_ip(public_ip.id)
                return

        primary_id = self._primary_interface_id(vm)

        secondary = next(
            (
                interface for interface in interfaces
                if interface.primary_public_ip_id and not same_resource(interface.id, primary_id)
            ),
            None,
        )
        if secondary is not None:
            self._detach_and_delete(secondary, instance_id)
            return

        primary = next(
            (interface for interface in interfaces if same_resource(interface.id, primary_id)),
            None,
        )
        if primary is not None and primary.primary_public_ip_id:
            self._detach_and_delete(primary, instance_id)
        else:
            logger.debug("Instance %s has no public IP to remove", instance_id)

    def _detach_and_delete(self, interface: RemoteNetworkInterface, instance_id: str) -> None:
        public_ip_id = interface.primary_public_ip_id
        logger.info(
            "Removing public IP %s from interface %s of instance %s",
            public_ip_id, interface.name, instance_id,
        )
        self._client.detach_public_ip(interface.id)
        self._client.delete_public_ip(public_ip_id)

    def _interfaces(self, vm: RemoteVirtualMachine) -> List[RemoteNetworkInterface]:
        return [
            self._client.get_network_interface(interface_id)
            for interface_id in vm.network_interface_ids
        ]

    @staticmethod
    def _primary_interface_id(vm: RemoteVirtualMachine) -> Optional[str]:
        if vm.primary_network_interface_id:
            return vm.primary_network_interface_id
        return vm.network_interface_ids[0] if vm.network_interface_ids else None

    def _primary_interface(self, vm: RemoteVirtualMachine) -> RemoteNetworkInterface:
        return self._client.get_network_interface(self._primary_interface_id(vm))
