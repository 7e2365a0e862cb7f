"""Error kinds raised by the connector.

Every message names the offending identifier (instance id or tag, image,
resource group) so operators can act on it without digging into logs.
"""

from __future__ import annotations


class IaasError(Exception):
    """Base class for every error the connector raises."""


class InvalidRequestError(IaasError):
    """Raised when a request is missing a required field."""


class ResourceNotFoundError(IaasError):
    """Raised when a named provider resource does not exist."""


class ImageNotFoundError(ResourceNotFoundError):
    """Raised when no custom image matches by name or id."""


class ResourceGroupNotFoundError(ResourceNotFoundError):
    """Raised when the resolved resource group does not exist remotely."""


class InstanceNotFoundError(ResourceNotFoundError):
    """Raised when no virtual machine matches the given id or tag."""


class PublicIpNotFoundError(ResourceNotFoundError):
    """Raised when a desired public IP is not among existing addresses."""


class UnsupportedOperatingSystemError(IaasError):
    """Raised for images whose OS type is neither Linux nor Windows."""


class ProviderCommunicationError(IaasError):
    """Raised when a remote call fails, times out, or returns bad data."""


class UnsupportedOperationError(IaasError):
    """Raised for operations this provider does not offer."""
