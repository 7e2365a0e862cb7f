"""Read-side views: VMs and images mapped back into domain models."""

from __future__ import annotations

from typing import List

from .lookup import require_virtual_machine_by_id, require_virtual_machine_by_name
from .models import Hardware, Image, Instance, Network
from .providers.base import ProviderClient
from .providers.resources import RemoteVirtualMachine
from .tags import TagManager


class InstanceInventory:
    """Lists instances and images of one infrastructure.

    Args:
        client: Provider client for the infrastructure.
        tag_manager: Identifies VMs created by this connector.
    """

    def __init__(self, client: ProviderClient, tag_manager: TagManager) -> None:
        self._client = client
        self._tags = tag_manager

    def all_instances(self) -> List[Instance]:
        return [self.to_instance(vm) for vm in self._client.list_virtual_machines()]

    def created_instances(self) -> List[Instance]:
        """Instances carrying this connector's identity tag."""
        return [
            self.to_instance(vm)
            for vm in self._client.list_virtual_machines()
            if self._tags.is_created_by_connector(vm.tags)
        ]

    def instance_by_id(self, instance_id: str) -> Instance:
        return self.to_instance(require_virtual_machine_by_id(self._client, instance_id))

    def instance_by_tag(self, tag: str) -> Instance:
        return self.to_instance(require_virtual_machine_by_name(self._client, tag))

    def images(self) -> List[Image]:
        return [
            Image(id=image.id, name=image.name)
            for image in self._client.list_custom_images()
        ]

    def to_instance(self, vm: RemoteVirtualMachine) -> Instance:
        """Map a provider VM to an Instance with its current addresses."""
        public_addresses: List[str] = []
        private_addresses: List[str] = []
        for interface_id in vm.network_interface_ids:
            interface = self._client.get_network_interface(interface_id)
            for ip_configuration in interface.ip_configurations:
                if ip_configuration.private_ip_address:
                    private_addresses.append(ip_configuration.private_ip_address)
            public_ip_id = interface.primary_public_ip_id
            if public_ip_id:
                address = self._client.get_public_ip(public_ip_id).ip_address
                if address:
                    public_addresses.append(address)

        return Instance(
            id=vm.vm_id,
            tag=vm.name,
            number=1,
            hardware=Hardware(type=vm.size),
            network=Network(
                public_addresses=public_addresses,
                private_addresses=private_addresses,
            ),
            status=vm.power_state,
        )
