"""File storage gateways (object storage and WebDAV)."""

from .base import (
    EntryType,
    FileEntry,
    InvalidPathError,
    StorageError,
    StorageGateway,
    normalize_path,
)
from .registry import GatewayRegistry, UnknownBackendError, get_gateway, get_registry

__all__ = [
    "EntryType",
    "FileEntry",
    "InvalidPathError",
    "StorageError",
    "StorageGateway",
    "normalize_path",
    "GatewayRegistry",
    "UnknownBackendError",
    "get_gateway",
    "get_registry",
]
