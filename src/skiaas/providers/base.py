"""
ProviderClient — the remote resource store, seen from the connector.

Each provider implements these methods. The orchestrators call them and
never touch an SDK directly. Every method either completes synchronously
or raises ``ProviderCommunicationError``; implementations do not retry.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .resources import (
    ExtensionSpec,
    NetworkInterfaceSpec,
    PublicIpSpec,
    RemoteImage,
    RemoteNetwork,
    RemoteNetworkInterface,
    RemotePublicIp,
    RemoteResourceGroup,
    RemoteSecurityGroup,
    RemoteVirtualMachine,
    VirtualMachineSpec,
)


class ProviderClient:
    """Abstract base for provider clients."""

    # -- lookups ------------------------------------------------------------

    def list_custom_images(self) -> List[RemoteImage]:
        raise NotImplementedError

    def get_resource_group(self, name: str) -> Optional[RemoteResourceGroup]:
        """Return the resource group, or None when it does not exist."""
        raise NotImplementedError

    def resolve_region(self, label: str) -> str:
        """Map a region label or name (``West Europe``, ``westeurope``) to its name.

        Raises:
            InvalidRequestError: If the provider knows no such region.
        """
        raise NotImplementedError

    def list_virtual_machines(self) -> List[RemoteVirtualMachine]:
        raise NotImplementedError

    def get_virtual_machine(self, resource_id: str) -> RemoteVirtualMachine:
        raise NotImplementedError

    def list_networks(self) -> List[RemoteNetwork]:
        raise NotImplementedError

    def list_security_groups(self) -> List[RemoteSecurityGroup]:
        raise NotImplementedError

    def list_public_ips(self) -> List[RemotePublicIp]:
        raise NotImplementedError

    def get_public_ip(self, resource_id: str) -> RemotePublicIp:
        raise NotImplementedError

    def list_network_interfaces(self) -> List[RemoteNetworkInterface]:
        raise NotImplementedError

    def get_network_interface(self, resource_id: str) -> RemoteNetworkInterface:
        raise NotImplementedError

    # -- creation -----------------------------------------------------------

    def create_public_ip(self, spec: PublicIpSpec) -> RemotePublicIp:
        raise NotImplementedError

    def create_network_interface(self, spec: NetworkInterfaceSpec) -> RemoteNetworkInterface:
        """Create a network interface and whatever new resources it references."""
        raise NotImplementedError

    def create_virtual_machines(
        self, specs: List[VirtualMachineSpec],
    ) -> List[RemoteVirtualMachine]:
        """Create all machines in one batch.

        The provider may create them concurrently. Shared new virtual
        networks and security groups are materialized once per batch.
        """
        raise NotImplementedError

    # -- deletion -----------------------------------------------------------

    def delete_virtual_machine(self, resource_id: str) -> None:
        raise NotImplementedError

    def delete_network_interface(self, resource_id: str) -> None:
        raise NotImplementedError

    def delete_public_ip(self, resource_id: str) -> None:
        raise NotImplementedError

    def delete_disk(self, resource_id: str) -> None:
        raise NotImplementedError

    def delete_security_group(self, resource_id: str) -> None:
        raise NotImplementedError

    def delete_network(self, resource_id: str) -> None:
        raise NotImplementedError

    # -- updates ------------------------------------------------------------

    def attach_public_ip(self, network_interface_id: str, public_ip_id: str) -> None:
        """Make ``public_ip_id`` the primary public IP of the interface."""
        raise NotImplementedError

    def detach_public_ip(self, network_interface_id: str) -> None:
        """Remove the primary public IP from the interface (the IP survives)."""
        raise NotImplementedError

    def attach_secondary_network_interface(
        self, vm: RemoteVirtualMachine, network_interface_id: str,
    ) -> None:
        raise NotImplementedError

    def install_extension(self, vm: RemoteVirtualMachine, spec: ExtensionSpec) -> None:
        raise NotImplementedError

    def update_extension(
        self, vm: RemoteVirtualMachine, extension_name: str, settings: Dict[str, str],
    ) -> None:
        raise NotImplementedError
