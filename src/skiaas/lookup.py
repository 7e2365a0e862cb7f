"""Searches over the provider's resource listings."""

from __future__ import annotations

import logging
from typing import List, Optional

from .errors import ImageNotFoundError, InstanceNotFoundError
from .providers.base import ProviderClient
from .providers.resources import (
    RemoteImage,
    RemoteNetwork,
    RemotePublicIp,
    RemoteSecurityGroup,
    RemoteVirtualMachine,
)

logger = logging.getLogger(__name__)

INSTANCE_NOT_FOUND_ERROR = "unable to find instance with ID"


def same_resource(first: Optional[str], second: Optional[str]) -> bool:
    """Compare two ARM resource ids, which are case-insensitive."""
    return first is not None and second is not None and first.lower() == second.lower()


def find_virtual_machine_by_id(
    client: ProviderClient, instance_id: str,
) -> Optional[RemoteVirtualMachine]:
    return next(
        (vm for vm in client.list_virtual_machines() if vm.vm_id == instance_id),
        None,
    )


def find_virtual_machine_by_name(
    client: ProviderClient, name: str,
) -> Optional[RemoteVirtualMachine]:
    return next(
        (vm for vm in client.list_virtual_machines() if vm.name == name),
        None,
    )


def require_virtual_machine_by_id(
    client: ProviderClient, instance_id: str,
) -> RemoteVirtualMachine:
    """Return the VM with provider id ``instance_id``.

    Raises:
        InstanceNotFoundError: If no VM has that id.
    """
    vm = find_virtual_machine_by_id(client, instance_id)
    if vm is None:
        raise InstanceNotFoundError(f"{INSTANCE_NOT_FOUND_ERROR}: '{instance_id}'")
    return vm


def require_virtual_machine_by_name(
    client: ProviderClient, name: str,
) -> RemoteVirtualMachine:
    """Return the VM named ``name``.

    Raises:
        InstanceNotFoundError: If no VM has that name.
    """
    vm = find_virtual_machine_by_name(client, name)
    if vm is None:
        raise InstanceNotFoundError(f"unable to find instance with name: '{name}'")
    return vm


def find_public_ip_by_address(
    client: ProviderClient, ip_address: str,
) -> Optional[RemotePublicIp]:
    return next(
        (ip for ip in client.list_public_ips() if ip.ip_address == ip_address),
        None,
    )


def find_network(client: ProviderClient, name_or_id: str) -> Optional[RemoteNetwork]:
    return next(
        (
            network for network in client.list_networks()
            if name_or_id in (network.name, network.id)
        ),
        None,
    )


def find_security_group(
    client: ProviderClient, name_or_id: str,
) -> Optional[RemoteSecurityGroup]:
    return next(
        (
            group for group in client.list_security_groups()
            if name_or_id in (group.name, group.id)
        ),
        None,
    )


def find_image(client: ProviderClient, name_or_id: str) -> RemoteImage:
    """Resolve a custom image by exact name first, then by exact id.

    Raises:
        ImageNotFoundError: If neither matches.
    """
    images = client.list_custom_images()
    for image in images:
        if image.name == name_or_id:
            logger.debug("Resolved image %s by name", name_or_id)
            return image
    for image in images:
        if image.id == name_or_id:
            logger.debug("Resolved image %s by id", image.name)
            return image
    raise ImageNotFoundError(f"unable to find custom image: '{name_or_id}'")


# ---------------------------------------------------------------------------
# Resources attached to a VM
# ---------------------------------------------------------------------------


def vm_networks(client: ProviderClient, vm: RemoteVirtualMachine) -> List[RemoteNetwork]:
    """Virtual networks referenced by any IP configuration of the VM."""
    network_ids: List[str] = []
    for interface_id in vm.network_interface_ids:
        interface = client.get_network_interface(interface_id)
        for ip_configuration in interface.ip_configurations:
            if ip_configuration.network_id and ip_configuration.network_id.lower() not in network_ids:
                network_ids.append(ip_configuration.network_id.lower())
    return [network for network in client.list_networks() if network.id.lower() in network_ids]


def vm_security_groups(
    client: ProviderClient, vm: RemoteVirtualMachine,
) -> List[RemoteSecurityGroup]:
    """Security groups bound to any network interface of the VM."""
    group_ids = set()
    for interface_id in vm.network_interface_ids:
        security_group_id = client.get_network_interface(interface_id).security_group_id
        if security_group_id:
            group_ids.add(security_group_id.lower())
    return [group for group in client.list_security_groups() if group.id.lower() in group_ids]


def vm_public_ips(client: ProviderClient, vm: RemoteVirtualMachine) -> List[RemotePublicIp]:
    """Public IPs bound to any IP configuration of the VM."""
    ip_ids: List[str] = []
    for interface_id in vm.network_interface_ids:
        interface = client.get_network_interface(interface_id)
        for ip_configuration in interface.ip_configurations:
            if ip_configuration.public_ip_id and ip_configuration.public_ip_id not in ip_ids:
                ip_ids.append(ip_configuration.public_ip_id)
    return [client.get_public_ip(ip_id) for ip_id in ip_ids]
