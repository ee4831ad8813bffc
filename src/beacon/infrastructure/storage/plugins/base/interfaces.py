"""
Core interface for key-value storage plugins.

Every backend stores opaque serialized strings under already-prefixed keys.
Expiry, prefixing and size limits are the responsibility of the store that
wraps the plugin, so backends stay small and interchangeable.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class StoragePlugin(ABC):
    """
    Abstract base class for storage plugins.

    Attributes:
        durable (bool): Whether stored data survives a process restart
    """

    durable: bool = False

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the storage plugin.

        This method should handle any setup required before the plugin can be used,
        such as creating directories or initializing databases.

        Raises:
            StorageError: If initialization fails
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """
        Release any resources used by the plugin.

        Non-durable plugins discard their data here.

        Raises:
            StorageError: If cleanup fails
        """
        pass

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw value stored under a key.

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Write a raw value, replacing any existing one."""
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete a key. Removing an absent key is a no-op."""
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        """List every key held by the backend."""
        pass
