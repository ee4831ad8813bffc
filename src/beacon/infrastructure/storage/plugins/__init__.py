"""
Storage plugins package.

This package provides the key-value backends behind the store:
- SQLite storage (durable)
- JSON filesystem storage (ephemeral)
- In-memory storage

Each plugin implements the StoragePlugin interface defined in the base
package. ``create_plugin`` maps a StorageConfig to the matching backend.
"""

from typing import Optional

from ....core.enums import StorageType
from ....core.exceptions import ConfigurationError
from .base import StoragePlugin
from .json_fs import JsonFileStoragePlugin
from .memory import MemoryStoragePlugin
from .sqlite import SqliteStoragePlugin, default_db_path


def create_plugin(storage_type: StorageType, path: Optional[str] = None) -> StoragePlugin:
    """
    Build the backend for a storage type.

    Args:
        storage_type: Requested persistence guarantee
        path: Database file (durable) or directory (ephemeral)

    Returns:
        StoragePlugin: Uninitialized backend

    Raises:
        ConfigurationError: If the storage type is unknown
    """
    if storage_type is StorageType.DURABLE:
        return SqliteStoragePlugin(path)
    if storage_type is StorageType.EPHEMERAL:
        return JsonFileStoragePlugin(path)
    if storage_type is StorageType.MEMORY:
        return MemoryStoragePlugin()
    raise ConfigurationError(f"Unknown storage type: {storage_type}")


__all__ = [
    # Base interface
    "StoragePlugin",
    # Implementations
    "SqliteStoragePlugin",
    "JsonFileStoragePlugin",
    "MemoryStoragePlugin",
    # Factory
    "create_plugin",
    "default_db_path",
]
