"""
Instance decommissioning with reference-counted network cleanup.

Order: VM, its interfaces, its public IPs, its OS disk, then shared
security groups and virtual networks that no remaining interface uses.
Data disks are kept.
"""

from __future__ import annotations

import logging
from typing import List

from .lookup import (
    require_virtual_machine_by_id,
    same_resource,
    vm_networks,
    vm_public_ips,
    vm_security_groups,
)
from .models import Infrastructure
from .providers.base import ProviderClient
from .providers.resources import RemoteNetwork, RemoteSecurityGroup

logger = logging.getLogger(__name__)


class InstanceDecommissioner:
    """Deletes a VM and every dependent resource it alone was using."""

    def __init__(self, client: ProviderClient) -> None:
        self._client = client

    def delete_instance(self, infrastructure: Infrastructure, instance_id: str) -> None:
        """Delete the VM with provider id ``instance_id`` and its resources.

        Failures after the first deletion are raised as-is; nothing is
        rolled back.

        Raises:
            InstanceNotFoundError: If no VM has that id.
        """
        vm = require_virtual_machine_by_id(self._client, instance_id)

        logger.info(
            "Deleting all resources of instance %s (infrastructure: %s)",
            instance_id, infrastructure.id,
        )

        # Back-references become unreliable once dependents are gone.
        networks = vm_networks(self._client, vm)
        security_groups = vm_security_groups(self._client, vm)
        public_ips = vm_public_ips(self._client, vm)
        os_disk_id = vm.os_disk_id

        self._client.delete_virtual_machine(vm.id)

        for interface_id in vm.network_interface_ids:
            self._client.delete_network_interface(interface_id)

        for public_ip in public_ips:
            self._client.delete_public_ip(public_ip.id)

        if os_disk_id:
            self._client.delete_disk(os_disk_id)

        self.delete_unused_security_groups(security_groups)
        self.delete_unused_networks(networks)

        logger.info("Deletion of all resources of instance %s has been executed", instance_id)

    def delete_unused_security_groups(self, security_groups: List[RemoteSecurityGroup]) -> None:
        """Delete each group no remaining interface references.

        The interface listing is re-read for every group.
        """
        for group in security_groups:
            in_use = any(
                same_resource(interface.security_group_id, group.id)
                for interface in self._client.list_network_interfaces()
            )
            if in_use:
                logger.debug("Keeping security group %s, still referenced", group.name)
                continue
            logger.info("Deleting security group %s", group.name)
            self._client.delete_security_group(group.id)

    def delete_unused_networks(self, networks: List[RemoteNetwork]) -> None:
        """Delete each network no remaining IP configuration references."""
        for network in networks:
            in_use = any(
                same_resource(ip_configuration.network_id, network.id)
                for interface in self._client.list_network_interfaces()
                for ip_configuration in interface.ip_configurations
            )
            if in_use:
                logger.debug("Keeping virtual network %s, still referenced", network.name)
                continue
            logger.info("Deleting virtual network %s", network.name)
            self._client.delete_network(network.id)
