"""
Azure client — ProviderClient over the Azure management SDK.

Uses ``azure-identity`` for service principal auth and the
``azure-mgmt-compute`` / ``azure-mgmt-network`` / ``azure-mgmt-resource``
clients for everything else. Every SDK failure is re-raised as
``ProviderCommunicationError``; long-running operations are bounded by the
infrastructure's ``timeout`` when one is set.

The Azure SDK makes no thread-safety guarantees, so one AzureClient
should not be shared by callers that mutate the same resources
concurrently.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from azure.core.exceptions import AzureError
from azure.core.exceptions import ResourceNotFoundError as AzureResourceNotFoundError

from ..errors import InvalidRequestError, ProviderCommunicationError, ResourceNotFoundError
from ..models import Infrastructure
from .base import ProviderClient
from .resources import (
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
    SecurityGroupSpec,
    VirtualMachineSpec,
    VirtualNetworkSpec,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBNET_NAME = "default"
OS_DISK_STORAGE_TYPE = "Standard_LRS"
WINDOWS_COMPUTER_NAME_MAX = 15


@contextmanager
def _provider_call(action: str) -> Iterator[None]:
    """Re-raise Azure SDK errors as ProviderCommunicationError."""
    try:
        yield
    except AzureError as exc:
        raise ProviderCommunicationError(f"Azure {action} failed: {exc}") from exc


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value) or "")


def parse_resource_id(resource_id: str) -> Tuple[str, str]:
    """Return ``(resource_group, name)`` from an ARM resource id.

    Raises:
        ProviderCommunicationError: If the id is malformed.
    """
    parts = resource_id.strip("/").split("/")
    lowered = [part.lower() for part in parts]
    try:
        resource_group = parts[lowered.index("resourcegroups") + 1]
        name = parts[lowered.index("providers") + 3]
    except (ValueError, IndexError) as exc:
        raise ProviderCommunicationError(f"malformed Azure resource id: '{resource_id}'") from exc
    return resource_group, name


def network_id_from_subnet(subnet_id: str) -> str:
    return subnet_id.split("/subnets/")[0]


def _normalize_region(label: str) -> str:
    return label.replace(" ", "").lower()


# ---------------------------------------------------------------------------
# SDK object -> remote view
# ---------------------------------------------------------------------------


def _to_image(image: Any) -> RemoteImage:
    os_disk = image.storage_profile.os_disk if image.storage_profile else None
    return RemoteImage(
        id=image.id,
        name=image.name,
        resource_group=parse_resource_id(image.id)[0],
        region=image.location,
        os_type=_enum_value(os_disk.os_type) if os_disk else "",
    )


def _to_network(network: Any) -> RemoteNetwork:
    return RemoteNetwork(
        id=network.id,
        name=network.name,
        subnet_ids=[subnet.id for subnet in network.subnets or []],
    )


def _to_public_ip(public_ip: Any) -> RemotePublicIp:
    return RemotePublicIp(
        id=public_ip.id,
        name=public_ip.name,
        ip_address=public_ip.ip_address,
        ip_configuration_id=public_ip.ip_configuration.id if public_ip.ip_configuration else None,
    )


def _to_network_interface(interface: Any) -> RemoteNetworkInterface:
    ip_configurations = [
        RemoteIpConfiguration(
            name=ip_configuration.name,
            private_ip_address=ip_configuration.private_ip_address,
            network_id=(
                network_id_from_subnet(ip_configuration.subnet.id)
                if ip_configuration.subnet else None
            ),
            public_ip_id=(
                ip_configuration.public_ip_address.id
                if ip_configuration.public_ip_address else None
            ),
            primary=bool(ip_configuration.primary),
        )
        for ip_configuration in interface.ip_configurations or []
    ]
    return RemoteNetworkInterface(
        id=interface.id,
        name=interface.name,
        region=interface.location,
        resource_group=parse_resource_id(interface.id)[0],
        security_group_id=(
            interface.network_security_group.id if interface.network_security_group else None
        ),
        ip_configurations=ip_configurations,
    )


def _to_extension(extension: Any) -> RemoteExtension:
    return RemoteExtension(
        name=extension.name,
        publisher=extension.publisher or "",
        type=extension.type_properties_type or "",
        settings=dict(extension.settings or {}),
    )


def _primary_ip_configuration(interface: Any) -> Any:
    configurations = interface.ip_configurations or []
    for configuration in configurations:
        if configuration.primary:
            return configuration
    if not configurations:
        raise ProviderCommunicationError(f"interface '{interface.id}' has no IP configuration")
    return configurations[0]


class AzureClient(ProviderClient):
    """ProviderClient for one Azure subscription.

    Args:
        infrastructure: Infrastructure holding service principal credentials
            and an optional per-call timeout.
    """

    def __init__(self, infrastructure: Infrastructure) -> None:
        self._credentials = infrastructure.credentials
        self._timeout = infrastructure.timeout
        self._compute_client: Any = None
        self._network_client: Any = None
        self._resource_client: Any = None

    # -- SDK clients --------------------------------------------------------

    def _connect(self) -> None:
        """Create the management clients.

        Raises:
            RuntimeError: If the Azure SDK is not installed.
        """
        try:
            from azure.identity import ClientSecretCredential
            from azure.mgmt.compute import ComputeManagementClient
            from azure.mgmt.network import NetworkManagementClient
            from azure.mgmt.resource import ResourceManagementClient
        except ImportError:
            raise RuntimeError(
                "Azure client requires the Azure SDK: pip install azure-identity "
                "azure-mgmt-compute azure-mgmt-network azure-mgmt-resource"
            )

        credential = ClientSecretCredential(
            tenant_id=self._credentials.tenant_id,
            client_id=self._credentials.client_id,
            client_secret=self._credentials.client_secret,
        )
        subscription_id = self._credentials.subscription_id
        self._compute_client = ComputeManagementClient(credential, subscription_id)
        self._network_client = NetworkManagementClient(credential, subscription_id)
        self._resource_client = ResourceManagementClient(credential, subscription_id)

    @property
    def _compute(self) -> Any:
        if self._compute_client is None:
            self._connect()
        return self._compute_client

    @property
    def _network(self) -> Any:
        if self._network_client is None:
            self._connect()
        return self._network_client

    @property
    def _resource(self) -> Any:
        if self._resource_client is None:
            self._connect()
        return self._resource_client

    def _wait(self, poller: Any, action: str) -> Any:
        """Wait for a long-running operation, bounded by the timeout."""
        with _provider_call(action):
            result = poller.result(timeout=self._timeout)
            if not poller.done():
                raise ProviderCommunicationError(
                    f"Azure {action} timed out after {self._timeout}s"
                )
        return result

    # -- lookups ------------------------------------------------------------

    def list_custom_images(self) -> List[RemoteImage]:
        with _provider_call("list custom images"):
            return [_to_image(image) for image in self._compute.images.list()]

    def get_resource_group(self, name: str) -> Optional[RemoteResourceGroup]:
        with _provider_call(f"get resource group {name}"):
            if not self._resource.resource_groups.check_existence(name):
                return None
            group = self._resource.resource_groups.get(name)
        return RemoteResourceGroup(name=group.name, region=group.location)

    def resolve_region(self, label: str) -> str:
        wanted = _normalize_region(label)
        with _provider_call("list regions"):
            provider = self._resource.providers.get("Microsoft.Compute")
        for resource_type in provider.resource_types or []:
            if resource_type.resource_type != "virtualMachines":
                continue
            for location in resource_type.locations or []:
                if _normalize_region(location) == wanted:
                    return wanted
        raise InvalidRequestError(f"unknown region: '{label}'")

    def _power_state(self, resource_group: str, name: str) -> str:
        """Current power state, or ``unknown`` for a VM deleted since it was listed."""
        try:
            view = self._compute.virtual_machines.instance_view(resource_group, name)
        except AzureResourceNotFoundError:
            logger.debug("Virtual machine %s disappeared before its instance view was read", name)
            return "unknown"
        for status in view.statuses or []:
            if status.code and status.code.startswith("PowerState/"):
                return status.code.split("/", 1)[1]
        return "unknown"

    def _to_virtual_machine(self, vm: Any, extensions: Optional[List[Any]] = None) -> RemoteVirtualMachine:
        resource_group = parse_resource_id(vm.id)[0]
        references = vm.network_profile.network_interfaces if vm.network_profile else []
        interface_ids = [reference.id for reference in references or []]
        primary_id = next(
            (reference.id for reference in references or [] if reference.primary),
            interface_ids[0] if interface_ids else None,
        )
        os_disk = vm.storage_profile.os_disk if vm.storage_profile else None
        return RemoteVirtualMachine(
            id=vm.id,
            vm_id=vm.vm_id,
            name=vm.name,
            resource_group=resource_group,
            region=vm.location,
            size=_enum_value(vm.hardware_profile.vm_size) if vm.hardware_profile else "",
            power_state=self._power_state(resource_group, vm.name),
            os_disk_id=os_disk.managed_disk.id if os_disk and os_disk.managed_disk else None,
            network_interface_ids=interface_ids,
            primary_network_interface_id=primary_id,
            extensions=[
                _to_extension(extension)
                for extension in (extensions if extensions is not None else vm.resources or [])
            ],
            tags=dict(vm.tags or {}),
        )

    def list_virtual_machines(self) -> List[RemoteVirtualMachine]:
        with _provider_call("list virtual machines"):
            return [self._to_virtual_machine(vm) for vm in self._compute.virtual_machines.list_all()]

    def get_virtual_machine(self, resource_id: str) -> RemoteVirtualMachine:
        resource_group, name = parse_resource_id(resource_id)
        with _provider_call(f"get virtual machine {name}"):
            vm = self._compute.virtual_machines.get(resource_group, name)
            extensions = self._compute.virtual_machine_extensions.list(resource_group, name)
            return self._to_virtual_machine(vm, list(extensions.value or []))

    def list_networks(self) -> List[RemoteNetwork]:
        with _provider_call("list virtual networks"):
            return [_to_network(network) for network in self._network.virtual_networks.list_all()]

    def list_security_groups(self) -> List[RemoteSecurityGroup]:
        with _provider_call("list security groups"):
            return [
                RemoteSecurityGroup(id=group.id, name=group.name)
                for group in self._network.network_security_groups.list_all()
            ]

    def list_public_ips(self) -> List[RemotePublicIp]:
        with _provider_call("list public IP addresses"):
            return [_to_public_ip(ip) for ip in self._network.public_ip_addresses.list_all()]

    def get_public_ip(self, resource_id: str) -> RemotePublicIp:
        resource_group, name = parse_resource_id(resource_id)
        with _provider_call(f"get public IP address {name}"):
            return _to_public_ip(self._network.public_ip_addresses.get(resource_group, name))

    def list_network_interfaces(self) -> List[RemoteNetworkInterface]:
        with _provider_call("list network interfaces"):
            return [
                _to_network_interface(interface)
                for interface in self._network.network_interfaces.list_all()
            ]

    def get_network_interface(self, resource_id: str) -> RemoteNetworkInterface:
        resource_group, name = parse_resource_id(resource_id)
        with _provider_call(f"get network interface {name}"):
            return _to_network_interface(self._network.network_interfaces.get(resource_group, name))

    # -- creation -----------------------------------------------------------

    def _create_network(self, spec: VirtualNetworkSpec) -> str:
        """Create a virtual network with one subnet; return the subnet id."""
        logger.info("Creating virtual network %s (%s)", spec.name, spec.address_space)
        with _provider_call(f"create virtual network {spec.name}"):
            poller = self._network.virtual_networks.begin_create_or_update(
                spec.resource_group,
                spec.name,
                {
                    "location": spec.region,
                    "address_space": {"address_prefixes": [spec.address_space]},
                    "subnets": [
                        {"name": DEFAULT_SUBNET_NAME, "address_prefix": spec.address_space},
                    ],
                },
            )
        network = self._wait(poller, f"create virtual network {spec.name}")
        return network.subnets[0].id

    def _create_security_group(self, spec: SecurityGroupSpec) -> str:
        logger.info("Creating security group %s", spec.name)
        rules = [
            {
                "name": rule.name,
                "protocol": rule.protocol,
                "direction": "Inbound",
                "access": "Allow",
                "priority": rule.priority,
                "source_address_prefix": "*",
                "source_port_range": "*",
                "destination_address_prefix": "*",
                "destination_port_range": str(rule.port),
            }
            for rule in spec.rules
        ]
        with _provider_call(f"create security group {spec.name}"):
            poller = self._network.network_security_groups.begin_create_or_update(
                spec.resource_group,
                spec.name,
                {"location": spec.region, "security_rules": rules},
            )
        return self._wait(poller, f"create security group {spec.name}").id

    def create_public_ip(self, spec: PublicIpSpec) -> RemotePublicIp:
        logger.info("Creating public IP %s (static=%s)", spec.name, spec.static)
        with _provider_call(f"create public IP address {spec.name}"):
            poller = self._network.public_ip_addresses.begin_create_or_update(
                spec.resource_group,
                spec.name,
                {
                    "location": spec.region,
                    "public_ip_allocation_method": "Static" if spec.static else "Dynamic",
                },
            )
        return _to_public_ip(self._wait(poller, f"create public IP address {spec.name}"))

    def _materialize_interface(
        self, spec: NetworkInterfaceSpec, materialized: Dict[str, str],
    ) -> RemoteNetworkInterface:
        """Create an interface, reusing shared resources already created in this batch."""
        if spec.existing_network is not None:
            if not spec.existing_network.subnet_ids:
                raise ResourceNotFoundError(
                    f"virtual network '{spec.existing_network.name}' has no subnet"
                )
            subnet_id = spec.existing_network.subnet_ids[0]
        elif spec.new_network is not None:
            key = f"network:{spec.new_network.name}"
            if key not in materialized:
                materialized[key] = self._create_network(spec.new_network)
            subnet_id = materialized[key]
        else:
            raise InvalidRequestError(f"interface '{spec.name}' has no virtual network")

        security_group_id = None
        if spec.existing_security_group is not None:
            security_group_id = spec.existing_security_group.id
        elif spec.new_security_group is not None:
            key = f"security_group:{spec.new_security_group.name}"
            if key not in materialized:
                materialized[key] = self._create_security_group(spec.new_security_group)
            security_group_id = materialized[key]

        public_ip_id = None
        if spec.existing_public_ip is not None:
            public_ip_id = spec.existing_public_ip.id
        elif spec.new_public_ip is not None:
            public_ip_id = self.create_public_ip(spec.new_public_ip).id

        ip_configuration: Dict[str, Any] = {
            "name": f"{spec.name}-ipconfig",
            "primary": True,
            "subnet": {"id": subnet_id},
        }
        if public_ip_id:
            ip_configuration["public_ip_address"] = {"id": public_ip_id}
        parameters: Dict[str, Any] = {
            "location": spec.region,
            "ip_configurations": [ip_configuration],
        }
        if security_group_id:
            parameters["network_security_group"] = {"id": security_group_id}

        logger.info("Creating network interface %s", spec.name)
        with _provider_call(f"create network interface {spec.name}"):
            poller = self._network.network_interfaces.begin_create_or_update(
                spec.resource_group, spec.name, parameters,
            )
        return _to_network_interface(self._wait(poller, f"create network interface {spec.name}"))

    def create_network_interface(self, spec: NetworkInterfaceSpec) -> RemoteNetworkInterface:
        return self._materialize_interface(spec, {})

    @staticmethod
    def _vm_parameters(spec: VirtualMachineSpec, interface_id: str) -> Dict[str, Any]:
        os_profile: Dict[str, Any] = {
            "computer_name": spec.name,
            "admin_username": spec.admin_username,
        }
        if spec.os_type == "windows":
            os_profile["computer_name"] = spec.name[:WINDOWS_COMPUTER_NAME_MAX]
            os_profile["admin_password"] = spec.admin_password
        elif spec.ssh_public_key:
            os_profile["linux_configuration"] = {
                "disable_password_authentication": True,
                "ssh": {
                    "public_keys": [
                        {
                            "path": f"/home/{spec.admin_username}/.ssh/authorized_keys",
                            "key_data": spec.ssh_public_key,
                        }
                    ]
                },
            }
        else:
            os_profile["admin_password"] = spec.admin_password

        return {
            "location": spec.region,
            "tags": spec.tags,
            "hardware_profile": {"vm_size": spec.size},
            "storage_profile": {
                "image_reference": {"id": spec.image_id},
                "os_disk": {
                    "name": spec.os_disk_name,
                    "create_option": "FromImage",
                    "managed_disk": {"storage_account_type": OS_DISK_STORAGE_TYPE},
                },
            },
            "os_profile": os_profile,
            "network_profile": {
                "network_interfaces": [{"id": interface_id, "primary": True}],
            },
        }

    def create_virtual_machines(
        self, specs: List[VirtualMachineSpec],
    ) -> List[RemoteVirtualMachine]:
        materialized: Dict[str, str] = {}
        interfaces = [
            self._materialize_interface(spec.network_interface, materialized)
            for spec in specs
        ]

        # Start every VM before waiting on any so Azure creates them in parallel.
        pollers = []
        for spec, interface in zip(specs, interfaces):
            logger.info("Creating virtual machine %s (size=%s)", spec.name, spec.size)
            with _provider_call(f"create virtual machine {spec.name}"):
                pollers.append(
                    self._compute.virtual_machines.begin_create_or_update(
                        spec.resource_group, spec.name, self._vm_parameters(spec, interface.id),
                    )
                )

        created = []
        for spec, poller in zip(specs, pollers):
            vm = self._wait(poller, f"create virtual machine {spec.name}")
            for extension in spec.extensions:
                self._create_extension(spec.resource_group, spec.name, spec.region, extension)
            created.append(self.get_virtual_machine(vm.id))
        return created

    def _create_extension(
        self, resource_group: str, vm_name: str, region: str, spec: ExtensionSpec,
    ) -> None:
        logger.info("Installing extension %s on %s", spec.name, vm_name)
        with _provider_call(f"create extension {spec.name}"):
            poller = self._compute.virtual_machine_extensions.begin_create_or_update(
                resource_group,
                vm_name,
                spec.name,
                {
                    "location": region,
                    "publisher": spec.publisher,
                    "type_properties_type": spec.type,
                    "type_handler_version": spec.version,
                    "auto_upgrade_minor_version": spec.auto_upgrade_minor_version,
                    "settings": spec.settings,
                },
            )
        self._wait(poller, f"create extension {spec.name}")

    # -- deletion -----------------------------------------------------------

    def _delete(self, operations: Any, resource_id: str, kind: str) -> None:
        resource_group, name = parse_resource_id(resource_id)
        logger.info("Deleting %s %s", kind, name)
        with _provider_call(f"delete {kind} {name}"):
            poller = operations.begin_delete(resource_group, name)
        self._wait(poller, f"delete {kind} {name}")

    def delete_virtual_machine(self, resource_id: str) -> None:
        self._delete(self._compute.virtual_machines, resource_id, "virtual machine")

    def delete_network_interface(self, resource_id: str) -> None:
        self._delete(self._network.network_interfaces, resource_id, "network interface")

    def delete_public_ip(self, resource_id: str) -> None:
        self._delete(self._network.public_ip_addresses, resource_id, "public IP address")

    def delete_disk(self, resource_id: str) -> None:
        self._delete(self._compute.disks, resource_id, "disk")

    def delete_security_group(self, resource_id: str) -> None:
        self._delete(self._network.network_security_groups, resource_id, "security group")

    def delete_network(self, resource_id: str) -> None:
        self._delete(self._network.virtual_networks, resource_id, "virtual network")

    # -- updates ------------------------------------------------------------

    def _update_interface_public_ip(
        self, network_interface_id: str, public_ip_id: Optional[str],
    ) -> None:
        from azure.mgmt.network.models import PublicIPAddress

        resource_group, name = parse_resource_id(network_interface_id)
        with _provider_call(f"update network interface {name}"):
            interface = self._network.network_interfaces.get(resource_group, name)
            configuration = _primary_ip_configuration(interface)
            configuration.public_ip_address = (
                PublicIPAddress(id=public_ip_id) if public_ip_id else None
            )
            poller = self._network.network_interfaces.begin_create_or_update(
                resource_group, name, interface,
            )
        self._wait(poller, f"update network interface {name}")

    def attach_public_ip(self, network_interface_id: str, public_ip_id: str) -> None:
        logger.info("Attaching public IP %s to %s", public_ip_id, network_interface_id)
        self._update_interface_public_ip(network_interface_id, public_ip_id)

    def detach_public_ip(self, network_interface_id: str) -> None:
        logger.info("Detaching public IP from %s", network_interface_id)
        self._update_interface_public_ip(network_interface_id, None)

    def attach_secondary_network_interface(
        self, vm: RemoteVirtualMachine, network_interface_id: str,
    ) -> None:
        from azure.mgmt.compute.models import NetworkInterfaceReference

        logger.info("Attaching secondary interface %s to %s", network_interface_id, vm.name)
        with _provider_call(f"update virtual machine {vm.name}"):
            azure_vm = self._compute.virtual_machines.get(vm.resource_group, vm.name)
            references = azure_vm.network_profile.network_interfaces
            for reference in references:
                reference.primary = reference.id == vm.primary_network_interface_id
            references.append(NetworkInterfaceReference(id=network_interface_id, primary=False))
            poller = self._compute.virtual_machines.begin_create_or_update(
                vm.resource_group, vm.name, azure_vm,
            )
        self._wait(poller, f"update virtual machine {vm.name}")

    def install_extension(self, vm: RemoteVirtualMachine, spec: ExtensionSpec) -> None:
        self._create_extension(vm.resource_group, vm.name, vm.region, spec)

    def update_extension(
        self, vm: RemoteVirtualMachine, extension_name: str, settings: Dict[str, str],
    ) -> None:
        logger.info("Updating extension %s on %s", extension_name, vm.name)
        with _provider_call(f"update extension {extension_name}"):
            extension = self._compute.virtual_machine_extensions.get(
                vm.resource_group, vm.name, extension_name,
            )
            extension.settings = {**(extension.settings or {}), **settings}
            poller = self._compute.virtual_machine_extensions.begin_create_or_update(
                vm.resource_group, vm.name, extension_name, extension,
            )
        self._wait(poller, f"update extension {extension_name}")
