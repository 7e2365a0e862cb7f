"""
Provider clients, the connector's only path to a cloud API.

Orchestrators speak to ``ProviderClient``; ``AzureClient`` implements it
over the Azure management SDK and ``ClientCache`` keeps one per
infrastructure.
"""

from .base import ProviderClient
from .cache import ClientCache

__all__ = ["ProviderClient", "ClientCache"]
