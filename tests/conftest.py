"""Shared test fixtures for skiaas."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from skiaas.config import ConnectorSettings
from skiaas.connector import AzureConnector
from skiaas.errors import InvalidRequestError, ProviderCommunicationError
from skiaas.models import Infrastructure, InfrastructureCredentials
from skiaas.providers.base import ProviderClient
from skiaas.providers.cache import ClientCache
from skiaas.providers.resources import (
    ExtensionSpec,
    NetworkInterfaceSpec,
    PublicIpSpec,
    RemoteExtension,
    RemoteImage,
    RemoteIpConfiguration,
    RemoteNetwork,
    RemoteNetworkInterface,
    RemotePublicIp,
    RemoteResourceGroup,
    RemoteSecurityGroup,
    RemoteVirtualMachine,
    VirtualMachineSpec,
)
from skiaas.tags import TagManager

RESOURCE_GROUP = "rg-test"
REGION = "westeurope"


def resource_id(resource_group: str, kind: str, name: str) -> str:
    return f"/subscriptions/sub-1/resourceGroups/{resource_group}/providers/{kind}/{name}"


class FakeProviderClient(ProviderClient):
    """In-memory provider that records every call made to it."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.images: Dict[str, RemoteImage] = {}
        self.resource_groups: Dict[str, RemoteResourceGroup] = {}
        self.regions: Dict[str, str] = {"westeurope": "West Europe", "eastus": "East US"}
        self.vms: Dict[str, RemoteVirtualMachine] = {}
        self.networks: Dict[str, RemoteNetwork] = {}
        self.security_groups: Dict[str, RemoteSecurityGroup] = {}
        self.public_ips: Dict[str, RemotePublicIp] = {}
        self.interfaces: Dict[str, RemoteNetworkInterface] = {}
        self.disks: Dict[str, str] = {}
        self.created_specs: List[VirtualMachineSpec] = []
        self.fail_secondary_attach = False
        self._counter = 0

    # -- helpers ------------------------------------------------------------

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))

    def calls_named(self, name: str) -> List[tuple]:
        return [args for call, args in self.calls if call == name]

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def add_image(
        self, name: str, os_type: str = "Linux",
        resource_group: str = RESOURCE_GROUP, region: str = REGION,
    ) -> RemoteImage:
        image = RemoteImage(
            id=resource_id(resource_group, "Microsoft.Compute/images", name),
            name=name,
            resource_group=resource_group,
            region=region,
            os_type=os_type,
        )
        self.images[image.id] = image
        return image

    def add_resource_group(self, name: str, region: str = REGION) -> None:
        self.resource_groups[name] = RemoteResourceGroup(name=name, region=region)

    def add_network(self, name: str, resource_group: str = RESOURCE_GROUP) -> RemoteNetwork:
        network_id = resource_id(resource_group, "Microsoft.Network/virtualNetworks", name)
        network = RemoteNetwork(id=network_id, name=name, subnet_ids=[f"{network_id}/subnets/default"])
        self.networks[network_id] = network
        return network

    def add_security_group(
        self, name: str, resource_group: str = RESOURCE_GROUP,
    ) -> RemoteSecurityGroup:
        group = RemoteSecurityGroup(
            id=resource_id(resource_group, "Microsoft.Network/networkSecurityGroups", name),
            name=name,
        )
        self.security_groups[group.id] = group
        return group

    def add_public_ip(
        self, address: str, name: Optional[str] = None, resource_group: str = RESOURCE_GROUP,
    ) -> RemotePublicIp:
        name = name or f"ip-{address.replace('.', '-')}"
        public_ip = RemotePublicIp(
            id=resource_id(resource_group, "Microsoft.Network/publicIPAddresses", name),
            name=name,
            ip_address=address,
        )
        self.public_ips[public_ip.id] = public_ip
        return public_ip

    # -- lookups ------------------------------------------------------------

    def list_custom_images(self) -> List[RemoteImage]:
        self._record("list_custom_images")
        return copy.deepcopy(list(self.images.values()))

    def get_resource_group(self, name: str) -> Optional[RemoteResourceGroup]:
        self._record("get_resource_group", name)
        return copy.deepcopy(self.resource_groups.get(name))

    def resolve_region(self, label: str) -> str:
        self._record("resolve_region", label)
        wanted = label.replace(" ", "").lower()
        for name, display in self.regions.items():
            if wanted in (name, display.replace(" ", "").lower()):
                return name
        raise InvalidRequestError(f"unknown region: '{label}'")

    def list_virtual_machines(self) -> List[RemoteVirtualMachine]:
        self._record("list_virtual_machines")
        return copy.deepcopy(list(self.vms.values()))

    def get_virtual_machine(self, resource_id: str) -> RemoteVirtualMachine:
        self._record("get_virtual_machine", resource_id)
        if resource_id not in self.vms:
            raise ProviderCommunicationError(f"no virtual machine {resource_id}")
        return copy.deepcopy(self.vms[resource_id])

    def list_networks(self) -> List[RemoteNetwork]:
        self._record("list_networks")
        return copy.deepcopy(list(self.networks.values()))

    def list_security_groups(self) -> List[RemoteSecurityGroup]:
        self._record("list_security_groups")
        return copy.deepcopy(list(self.security_groups.values()))

    def list_public_ips(self) -> List[RemotePublicIp]:
        self._record("list_public_ips")
        return copy.deepcopy(list(self.public_ips.values()))

    def get_public_ip(self, resource_id: str) -> RemotePublicIp:
        self._record("get_public_ip", resource_id)
        return copy.deepcopy(self.public_ips[resource_id])

    def list_network_interfaces(self) -> List[RemoteNetworkInterface]:
        self._record("list_network_interfaces")
        return copy.deepcopy(list(self.interfaces.values()))

    def get_network_interface(self, resource_id: str) -> RemoteNetworkInterface:
        self._record("get_network_interface", resource_id)
        return copy.deepcopy(self.interfaces[resource_id])

    # -- creation -----------------------------------------------------------

    def create_public_ip(self, spec: PublicIpSpec) -> RemotePublicIp:
        self._record("create_public_ip", spec)
        public_ip = self.add_public_ip(f"20.0.0.{self._next()}", spec.name, spec.resource_group)
        return copy.deepcopy(public_ip)

    def _materialize_interface(
        self, spec: NetworkInterfaceSpec, materialized: Dict[str, str],
    ) -> RemoteNetworkInterface:
        if spec.existing_network is not None:
            network_id = spec.existing_network.id
        else:
            if spec.new_network.name not in materialized:
                materialized[spec.new_network.name] = self.add_network(
                    spec.new_network.name, spec.new_network.resource_group,
                ).id
            network_id = materialized[spec.new_network.name]

        security_group_id = None
        if spec.existing_security_group is not None:
            security_group_id = spec.existing_security_group.id
        elif spec.new_security_group is not None:
            if spec.new_security_group.name not in materialized:
                materialized[spec.new_security_group.name] = self.add_security_group(
                    spec.new_security_group.name, spec.new_security_group.resource_group,
                ).id
            security_group_id = materialized[spec.new_security_group.name]

        public_ip_id = None
        if spec.existing_public_ip is not None:
            public_ip_id = spec.existing_public_ip.id
        elif spec.new_public_ip is not None:
            public_ip_id = self.add_public_ip(
                f"20.0.0.{self._next()}", spec.new_public_ip.name, spec.resource_group,
            ).id

        interface_id = resource_id(
            spec.resource_group, "Microsoft.Network/networkInterfaces", spec.name,
        )
        configuration = RemoteIpConfiguration(
            name=f"{spec.name}-ipconfig",
            private_ip_address=f"10.0.0.{self._next()}",
            network_id=network_id,
            public_ip_id=public_ip_id,
            primary=True,
        )
        if public_ip_id:
            self.public_ips[public_ip_id].ip_configuration_id = (
                f"{interface_id}/ipConfigurations/{configuration.name}"
            )
        interface = RemoteNetworkInterface(
            id=interface_id,
            name=spec.name,
            region=spec.region,
            resource_group=spec.resource_group,
            security_group_id=security_group_id,
            ip_configurations=[configuration],
        )
        self.interfaces[interface_id] = interface
        return interface

    def create_network_interface(self, spec: NetworkInterfaceSpec) -> RemoteNetworkInterface:
        self._record("create_network_interface", spec)
        return copy.deepcopy(self._materialize_interface(spec, {}))

    def create_virtual_machines(
        self, specs: List[VirtualMachineSpec],
    ) -> List[RemoteVirtualMachine]:
        self._record("create_virtual_machines", specs)
        self.created_specs.extend(specs)
        materialized: Dict[str, str] = {}
        created = []
        for spec in specs:
            interface = self._materialize_interface(spec.network_interface, materialized)
            disk_id = resource_id(spec.resource_group, "Microsoft.Compute/disks", spec.os_disk_name)
            self.disks[disk_id] = spec.os_disk_name
            vm = RemoteVirtualMachine(
                id=resource_id(spec.resource_group, "Microsoft.Compute/virtualMachines", spec.name),
                vm_id=f"vm-id-{self._next()}",
                name=spec.name,
                resource_group=spec.resource_group,
                region=spec.region,
                size=spec.size,
                power_state="running",
                os_disk_id=disk_id,
                network_interface_ids=[interface.id],
                primary_network_interface_id=interface.id,
                extensions=[
                    RemoteExtension(
                        name=extension.name,
                        publisher=extension.publisher,
                        type=extension.type,
                        settings=dict(extension.settings),
                    )
                    for extension in spec.extensions
                ],
                tags=dict(spec.tags),
            )
            self.vms[vm.id] = vm
            created.append(copy.deepcopy(vm))
        return created

    # -- deletion -----------------------------------------------------------

    def delete_virtual_machine(self, resource_id: str) -> None:
        self._record("delete_virtual_machine", resource_id)
        del self.vms[resource_id]

    def delete_network_interface(self, resource_id: str) -> None:
        self._record("delete_network_interface", resource_id)
        interface = self.interfaces.pop(resource_id)
        for configuration in interface.ip_configurations:
            if configuration.public_ip_id in self.public_ips:
                self.public_ips[configuration.public_ip_id].ip_configuration_id = None

    def delete_public_ip(self, resource_id: str) -> None:
        self._record("delete_public_ip", resource_id)
        del self.public_ips[resource_id]
        for interface in self.interfaces.values():
            for configuration in interface.ip_configurations:
                if configuration.public_ip_id == resource_id:
                    configuration.public_ip_id = None

    def delete_disk(self, resource_id: str) -> None:
        self._record("delete_disk", resource_id)
        del self.disks[resource_id]

    def delete_security_group(self, resource_id: str) -> None:
        self._record("delete_security_group", resource_id)
        del self.security_groups[resource_id]

    def delete_network(self, resource_id: str) -> None:
        self._record("delete_network", resource_id)
        del self.networks[resource_id]

    # -- updates ------------------------------------------------------------

    def attach_public_ip(self, network_interface_id: str, public_ip_id: str) -> None:
        self._record("attach_public_ip", network_interface_id, public_ip_id)
        configuration = self.interfaces[network_interface_id].primary_ip_configuration
        configuration.public_ip_id = public_ip_id
        self.public_ips[public_ip_id].ip_configuration_id = (
            f"{network_interface_id}/ipConfigurations/{configuration.name}"
        )

    def detach_public_ip(self, network_interface_id: str) -> None:
        self._record("detach_public_ip", network_interface_id)
        configuration = self.interfaces[network_interface_id].primary_ip_configuration
        if configuration.public_ip_id in self.public_ips:
            self.public_ips[configuration.public_ip_id].ip_configuration_id = None
        configuration.public_ip_id = None

    def attach_secondary_network_interface(
        self, vm: RemoteVirtualMachine, network_interface_id: str,
    ) -> None:
        self._record("attach_secondary_network_interface", vm.id, network_interface_id)
        if self.fail_secondary_attach:
            raise ProviderCommunicationError("secondary interfaces need a stopped VM")
        self.vms[vm.id].network_interface_ids.append(network_interface_id)

    def install_extension(self, vm: RemoteVirtualMachine, spec: ExtensionSpec) -> None:
        self._record("install_extension", vm.id, spec)
        self.vms[vm.id].extensions.append(
            RemoteExtension(
                name=spec.name, publisher=spec.publisher, type=spec.type,
                settings=dict(spec.settings),
            )
        )

    def update_extension(
        self, vm: RemoteVirtualMachine, extension_name: str, settings: Dict[str, str],
    ) -> None:
        self._record("update_extension", vm.id, extension_name, settings)
        for extension in self.vms[vm.id].extensions:
            if extension.name == extension_name:
                extension.settings.update(settings)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_iaas_home(tmp_path: Path) -> Path:
    """Provide a temporary connector home directory."""
    home = tmp_path / ".skiaas"
    (home / "config").mkdir(parents=True)
    return home


@pytest.fixture
def settings() -> ConnectorSettings:
    return ConnectorSettings()


@pytest.fixture
def tag_manager(settings: ConnectorSettings) -> TagManager:
    return TagManager(settings)


@pytest.fixture
def infrastructure() -> Infrastructure:
    return Infrastructure(
        id="infra-1",
        credentials=InfrastructureCredentials(
            client_id="client",
            client_secret="secret",
            tenant_id="tenant",
            subscription_id="sub-1",
        ),
    )


@pytest.fixture
def fake_client() -> FakeProviderClient:
    """A provider holding one resource group, a Linux and a Windows image."""
    client = FakeProviderClient()
    client.add_resource_group(RESOURCE_GROUP)
    client.add_image("ubuntu-image", os_type="Linux")
    client.add_image("windows-image", os_type="Windows")
    return client


@pytest.fixture
def connector(fake_client: FakeProviderClient, settings: ConnectorSettings) -> AzureConnector:
    cache = ClientCache(factory=lambda infrastructure: fake_client)
    return AzureConnector(cache=cache, settings=settings)
