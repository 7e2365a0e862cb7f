"""
Pydantic models for instances, infrastructures and their options.

These are the shapes exchanged with callers (CLI, REST layer, tests).
Nothing here talks to a provider; the orchestrators in this package
translate them into provider descriptors and back.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class Tag(BaseModel):
    """A key/value pair attached to every managed resource."""

    key: str
    value: Optional[str] = None


class Options(BaseModel):
    """Per-request overrides for instance creation."""

    resource_group: Optional[str] = Field(
        default=None, description="Target resource group (defaults to the image's)",
    )
    region: Optional[str] = Field(
        default=None, description="Target region label or name (defaults to the image's)",
    )
    subnet_id: Optional[str] = Field(
        default=None, description="Existing virtual network name or id to attach to",
    )
    private_network_cidr: Optional[str] = Field(
        default=None, description="CIDR block for a newly created private network",
    )
    security_group_names: List[str] = Field(
        default_factory=list, description="Existing security groups; the first one is used",
    )
    public_ip_address: Optional[str] = Field(
        default=None, description="Existing public IP bound to the first replica",
    )
    static_public_ip: Optional[bool] = Field(
        default=None, description="Static (True) or dynamic (False) public IP allocation",
    )
    tags: List[Tag] = Field(default_factory=list, description="Caller-supplied tags")


class Hardware(BaseModel):
    """Hardware profile; ``type`` is the provider size/SKU."""

    type: Optional[str] = None


class Network(BaseModel):
    """Addresses attached to an instance."""

    public_addresses: List[str] = Field(default_factory=list)
    private_addresses: List[str] = Field(default_factory=list)


class InstanceCredentials(BaseModel):
    """Optional login credentials for a new instance."""

    username: Optional[str] = None
    password: Optional[str] = None
    public_key: Optional[str] = None


class InstanceScript(BaseModel):
    """Ordered shell commands to run on an instance."""

    scripts: List[str] = Field(default_factory=list)


class Instance(BaseModel):
    """A provisioned (or to-be-provisioned) virtual machine."""

    id: Optional[str] = None
    tag: Optional[str] = Field(default=None, description="Name, unique within a resource group")
    number: int = Field(default=1, ge=1, description="Requested replica count")
    image: Optional[str] = Field(default=None, description="Custom image name or id")
    hardware: Optional[Hardware] = None
    network: Optional[Network] = None
    status: Optional[str] = None
    credentials: Optional[InstanceCredentials] = None
    init_script: Optional[InstanceScript] = None
    options: Optional[Options] = None


class Image(BaseModel):
    """A custom image available to the infrastructure."""

    id: str
    name: str


class InfrastructureCredentials(BaseModel):
    """Service principal credentials for an Azure subscription."""

    client_id: str
    client_secret: str
    tenant_id: str
    subscription_id: str


class Infrastructure(BaseModel):
    """A provider account the connector operates against."""

    id: str
    type: str = "azure"
    credentials: InfrastructureCredentials
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Seconds to wait on each blocking provider call",
    )


class ScriptResult(BaseModel):
    """Outcome of one script; output and error are best-effort."""

    instance_id: str
    output: str = ""
    error: str = ""
