"""
Provider resource shapes.

Two families live here:

- ``*Spec`` descriptors describe a resource that does not exist yet. They
  are plain data handed to a ``ProviderClient`` to materialize.
- ``Remote*`` views describe a resource the provider already holds. Clients
  return them from list/get/create calls.

Keeping both as plain dataclasses decouples the orchestration code from
any SDK builder API, so tests can substitute an in-memory client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


# ---------------------------------------------------------------------------
# Creatable descriptors
# ---------------------------------------------------------------------------


@dataclass
class VirtualNetworkSpec:
    name: str
    region: str
    resource_group: str
    address_space: str


@dataclass
class SecurityRule:
    name: str
    port: int
    priority: int
    protocol: str = "Tcp"


DEFAULT_SECURITY_RULES = [
    SecurityRule(name="ssh", port=22, priority=100),
    SecurityRule(name="rdp", port=3389, priority=110),
]


@dataclass
class SecurityGroupSpec:
    name: str
    region: str
    resource_group: str
    rules: List[SecurityRule] = field(default_factory=lambda: list(DEFAULT_SECURITY_RULES))


@dataclass
class PublicIpSpec:
    name: str
    region: str
    resource_group: str
    static: bool = True


@dataclass
class NetworkInterfaceSpec:
    """A network interface to create, with its network dependencies.

    Existing resources take precedence over the ``new_*`` descriptors when
    both are set. The new virtual network and security group descriptors
    are shared between replicas of one request and must be materialized
    only once.
    """

    name: str
    region: str
    resource_group: str
    new_network: Optional[VirtualNetworkSpec] = None
    existing_network: Optional["RemoteNetwork"] = None
    new_security_group: Optional[SecurityGroupSpec] = None
    existing_security_group: Optional["RemoteSecurityGroup"] = None
    new_public_ip: Optional[PublicIpSpec] = None
    existing_public_ip: Optional["RemotePublicIp"] = None


@dataclass
class ExtensionSpec:
    name: str
    publisher: str
    type: str
    version: str
    auto_upgrade_minor_version: bool = True
    settings: Dict[str, str] = field(default_factory=dict)


@dataclass
class VirtualMachineSpec:
    name: str
    region: str
    resource_group: str
    image_id: str
    os_type: str
    admin_username: str
    size: str
    os_disk_name: str
    network_interface: NetworkInterfaceSpec
    admin_password: Optional[str] = None
    ssh_public_key: Optional[str] = None
    extensions: List[ExtensionSpec] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Remote views
# ---------------------------------------------------------------------------


@dataclass
class RemoteImage:
    id: str
    name: str
    resource_group: str
    region: str
    os_type: str


@dataclass
class RemoteResourceGroup:
    name: str
    region: str


@dataclass
class RemoteNetwork:
    id: str
    name: str
    subnet_ids: List[str] = field(default_factory=list)


@dataclass
class RemoteSecurityGroup:
    id: str
    name: str


@dataclass
class RemotePublicIp:
    id: str
    name: str
    ip_address: Optional[str] = None
    ip_configuration_id: Optional[str] = None

    @property
    def attached(self) -> bool:
        return self.ip_configuration_id is not None


@dataclass
class RemoteIpConfiguration:
    name: str
    private_ip_address: Optional[str] = None
    network_id: Optional[str] = None
    public_ip_id: Optional[str] = None
    primary: bool = False


@dataclass
class RemoteNetworkInterface:
    id: str
    name: str
    region: str
    resource_group: str
    security_group_id: Optional[str] = None
    ip_configurations: List[RemoteIpConfiguration] = field(default_factory=list)

    @property
    def primary_ip_configuration(self) -> Optional[RemoteIpConfiguration]:
        for ip_configuration in self.ip_configurations:
            if ip_configuration.primary:
                return ip_configuration
        return self.ip_configurations[0] if self.ip_configurations else None

    @property
    def primary_public_ip_id(self) -> Optional[str]:
        ip_configuration = self.primary_ip_configuration
        return ip_configuration.public_ip_id if ip_configuration else None


@dataclass
class RemoteExtension:
    name: str
    publisher: str
    type: str
    settings: Dict[str, str] = field(default_factory=dict)


@dataclass
class RemoteVirtualMachine:
    """A virtual machine as the provider reports it.

    ``id`` is the provider resource id used to address the VM in API
    calls; ``vm_id`` is the provider-assigned unique id exposed to callers
    as ``Instance.id``.
    """

    id: str
    vm_id: str
    name: str
    resource_group: str
    region: str
    size: str
    power_state: str = "unknown"
    os_disk_id: Optional[str] = None
    network_interface_ids: List[str] = field(default_factory=list)
    primary_network_interface_id: Optional[str] = None
    extensions: List[RemoteExtension] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
