"""In-memory storage plugin."""

import logging
from typing import Dict, List, Optional

from .base import StoragePlugin

logger = logging.getLogger(__name__)


class MemoryStoragePlugin(StoragePlugin):
    """
    Dictionary-backed storage that never leaves the process.

    Attributes:
        _items (Dict[str, str]): Stored values by key
    """

    durable = False

    def __init__(self):
        self._items: Dict[str, str] = {}

    async def initialize(self) -> None:
        logger.debug("Initialized in-memory storage")

    async def cleanup(self) -> None:
        """Clean up resources by clearing all items."""
        self._items.clear()

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def keys(self) -> List[str]:
        return list(self._items)
