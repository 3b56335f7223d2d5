"""Registry for storage gateways.

Maps backend names ('minio', 'nextcloud') to configured gateway instances so
routes can look up the storage they serve without knowing how it is built.
"""

import logging
from typing import Callable, Dict, List, Optional

from ponyknows.core.config import Settings, get_settings

from .base import StorageGateway

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[Settings], StorageGateway]


class UnknownBackendError(KeyError):
    """No gateway is registered under the requested name."""


class GatewayRegistry:
    """Registry of storage gateways keyed by backend name.

    Gateways are built lazily from their factory the first time they are
    requested; an instance registered directly is used as is.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._gateways: Dict[str, StorageGateway] = {}
        self._factories: Dict[str, GatewayFactory] = {}

    def register(self, gateway: StorageGateway) -> None:
        """Register a ready gateway under its backend name."""
        name = gateway.backend_name
        if name in self._gateways:
            logger.warning("Overwriting existing gateway: %s", name)
        self._gateways[name] = gateway
        logger.debug("Registered storage gateway: %s", name)

    def register_factory(self, name: str, factory: GatewayFactory) -> None:
        """Register a factory building the gateway on first use."""
        self._factories[name] = factory
        self._gateways.pop(name, None)

    def unregister(self, name: str) -> None:
        self._gateways.pop(name, None)
        self._factories.pop(name, None)

    def get(self, name: str) -> StorageGateway:
        """Get the gateway for a backend.

        Raises:
            UnknownBackendError: If nothing is registered under ``name``
        """
        gateway = self._gateways.get(name)
        if gateway is not None:
            return gateway

        factory = self._factories.get(name)
        if factory is None:
            raise UnknownBackendError(name)

        gateway = factory(self._settings or get_settings())
        self._gateways[name] = gateway
        logger.info("Initialized %s storage gateway", name)
        return gateway

    def list_backends(self) -> List[str]:
        return sorted(set(self._gateways) | set(self._factories))

    def clear(self) -> None:
        """Remove every gateway and factory (mainly for tests)."""
        self._gateways.clear()
        self._factories.clear()


def build_default_registry(settings: Optional[Settings] = None) -> GatewayRegistry:
    """Registry with the two configured backends."""
    from .object_storage import ObjectStorageGateway
    from .webdav import WebDAVGateway

    registry = GatewayRegistry(settings)
    registry.register_factory("minio", ObjectStorageGateway.from_settings)
    registry.register_factory("nextcloud", WebDAVGateway.from_settings)
    return registry


_registry: Optional[GatewayRegistry] = None


def get_registry() -> GatewayRegistry:
    """Process-wide registry, built on first use."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry


def get_gateway(name: str) -> StorageGateway:
    """Look up a configured gateway by backend name."""
    return get_registry().get(name)
