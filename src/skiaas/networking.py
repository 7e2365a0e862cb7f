"""
What must exist on the network side before a VM can be created.

A ``NetworkPlan`` is computed once per create call. Replicas share its
virtual network and security group; each replica gets its own network
interface and public IP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from . import naming
from .config import ConnectorSettings
from .errors import PublicIpNotFoundError, ResourceNotFoundError
from .lookup import find_network, find_public_ip_by_address, find_security_group
from .models import Options
from .providers.base import ProviderClient
from .providers.resources import (
    NetworkInterfaceSpec,
    PublicIpSpec,
    RemoteNetwork,
    RemoteNetworkInterface,
    RemotePublicIp,
    RemoteSecurityGroup,
    RemoteVirtualMachine,
    SecurityGroupSpec,
    VirtualNetworkSpec,
)

logger = logging.getLogger(__name__)


@dataclass
class NetworkPlan:
    """Shared networking for every replica of one create request."""

    region: str
    resource_group: str
    new_network: VirtualNetworkSpec
    new_security_group: SecurityGroupSpec
    static_public_ip: bool
    existing_network: Optional[RemoteNetwork] = None
    existing_security_group: Optional[RemoteSecurityGroup] = None
    existing_public_ip: Optional[RemotePublicIp] = None


class NetworkComposer:
    """Builds network descriptors, honoring caller overrides.

    Args:
        client: Provider client used to resolve existing resources.
        settings: Connector defaults (CIDR, static IP policy).
    """

    def __init__(self, client: ProviderClient, settings: ConnectorSettings) -> None:
        self._client = client
        self._settings = settings

    def plan(
        self,
        instance_tag: str,
        resource_group: str,
        region: str,
        options: Optional[Options] = None,
    ) -> NetworkPlan:
        """Compute the shared network plan for a create request.

        The new virtual network and security group descriptors are always
        built; existing resources named in ``options`` are resolved here
        and win at attachment time.

        Raises:
            ResourceNotFoundError: If a named network or security group is missing.
            PublicIpNotFoundError: If the named public IP does not exist.
        """
        options = options or Options()

        new_network = VirtualNetworkSpec(
            name=naming.virtual_network_name(instance_tag),
            region=region,
            resource_group=resource_group,
            address_space=(
                options.private_network_cidr
                or self._settings.default_private_network_cidr
            ),
        )
        new_security_group = SecurityGroupSpec(
            name=naming.security_group_name(instance_tag),
            region=region,
            resource_group=resource_group,
        )

        existing_network = None
        if options.subnet_id:
            existing_network = find_network(self._client, options.subnet_id)
            if existing_network is None:
                raise ResourceNotFoundError(
                    f"unable to find virtual network: '{options.subnet_id}'"
                )

        existing_security_group = None
        if options.security_group_names:
            group_name = options.security_group_names[0]
            existing_security_group = find_security_group(self._client, group_name)
            if existing_security_group is None:
                raise ResourceNotFoundError(
                    f"unable to find security group: '{group_name}'"
                )

        existing_public_ip = None
        if options.public_ip_address:
            existing_public_ip = find_public_ip_by_address(
                self._client, options.public_ip_address,
            )
            if existing_public_ip is None:
                raise PublicIpNotFoundError(
                    f"unable to find public IP address: '{options.public_ip_address}'"
                )

        static_public_ip = (
            options.static_public_ip
            if options.static_public_ip is not None
            else self._settings.default_static_public_ip
        )

        return NetworkPlan(
            region=region,
            resource_group=resource_group,
            new_network=new_network,
            new_security_group=new_security_group,
            static_public_ip=static_public_ip,
            existing_network=existing_network,
            existing_security_group=existing_security_group,
            existing_public_ip=existing_public_ip,
        )

    def replica_interface(
        self, plan: NetworkPlan, replica_tag: str, instance_number: int,
    ) -> NetworkInterfaceSpec:
        """Network interface descriptor for one replica.

        Only the first replica may bind the caller's existing public IP;
        later replicas always get a fresh address.
        """
        public_ip = self.public_ip(
            replica_tag, plan.region, plan.resource_group, plan.static_public_ip,
        )
        return NetworkInterfaceSpec(
            name=naming.network_interface_name(replica_tag),
            region=plan.region,
            resource_group=plan.resource_group,
            new_network=plan.new_network,
            existing_network=plan.existing_network,
            new_security_group=plan.new_security_group,
            existing_security_group=plan.existing_security_group,
            new_public_ip=public_ip,
            existing_public_ip=plan.existing_public_ip if instance_number == 1 else None,
        )

    @staticmethod
    def public_ip(
        tag: str, region: str, resource_group: str, static: bool = True,
    ) -> PublicIpSpec:
        return PublicIpSpec(
            name=naming.public_ip_name(tag),
            region=region,
            resource_group=resource_group,
            static=static,
        )

    def secondary_interface(
        self,
        vm: RemoteVirtualMachine,
        primary: RemoteNetworkInterface,
        public_ip: RemotePublicIp,
    ) -> NetworkInterfaceSpec:
        """Clone the primary interface's network and security group.

        Raises:
            ResourceNotFoundError: If the primary interface's network is gone.
        """
        ip_configuration = primary.primary_ip_configuration
        network_id = ip_configuration.network_id if ip_configuration else None
        network = find_network(self._client, network_id) if network_id else None
        if network is None:
            raise ResourceNotFoundError(
                f"unable to find the virtual network of interface: '{primary.id}'"
            )
        security_group = (
            find_security_group(self._client, primary.security_group_id)
            if primary.security_group_id else None
        )
        return NetworkInterfaceSpec(
            name=naming.network_interface_name(vm.name),
            region=vm.region,
            resource_group=vm.resource_group,
            existing_network=network,
            existing_security_group=security_group,
            existing_public_ip=public_ip,
        )
