"""One provider client per infrastructure, built on first use."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from ..models import Infrastructure
from .base import ProviderClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Infrastructure], ProviderClient]


class ClientCache:
    """Thread-safe cache of provider clients keyed by infrastructure id.

    Args:
        factory: Builds a client for an infrastructure. Defaults to
            ``AzureClient``.
    """

    def __init__(self, factory: Optional[ClientFactory] = None) -> None:
        if factory is None:
            from .azure import AzureClient

            factory = AzureClient
        self._factory = factory
        self._clients: Dict[str, ProviderClient] = {}
        self._lock = threading.Lock()

    def get(self, infrastructure: Infrastructure) -> ProviderClient:
        with self._lock:
            client = self._clients.get(infrastructure.id)
            if client is None:
                logger.debug("Creating provider client for infrastructure %s", infrastructure.id)
                client = self._factory(infrastructure)
                self._clients[infrastructure.id] = client
            return client

    def remove(self, infrastructure: Infrastructure) -> None:
        with self._lock:
            if self._clients.pop(infrastructure.id, None) is not None:
                logger.debug("Dropped provider client for infrastructure %s", infrastructure.id)

    def __contains__(self, infrastructure_id: str) -> bool:
        return infrastructure_id in self._clients
