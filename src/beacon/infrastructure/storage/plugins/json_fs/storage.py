"""JSON filesystem implementation for ephemeral key-value storage."""

import logging
import os
import shutil
import tempfile
from typing import Dict, List, Optional

from .....core.exceptions import StorageError
from ..base import StoragePlugin
from .utils import load_json_file, save_json_file

logger = logging.getLogger(__name__)

STORAGE_JSON = "storage.json"


class JsonFileStoragePlugin(StoragePlugin):
    """
    JSON filesystem implementation for ephemeral key-value storage.

    All items are kept in a single JSON document mirrored by an in-memory
    cache. The data lives as long as the plugin: ``cleanup`` deletes the
    document, and the whole directory when the plugin created it.

    Attributes:
        storage_dir (Optional[str]): Directory holding the JSON document
        storage_file (Optional[str]): Path to the JSON document
        _items (Dict[str, str]): In-memory cache of stored values
    """

    durable = False

    def __init__(self, storage_dir: Optional[str] = None):
        """
        Initialize JSON file storage.

        Args:
            storage_dir: Directory for the JSON document. A temporary directory
                owned by the plugin is created when omitted.
        """
        self.storage_dir = storage_dir
        self.storage_file: Optional[str] = None
        self._owns_dir = storage_dir is None
        self._items: Dict[str, str] = {}

    async def initialize(self) -> None:
        """
        Initialize storage and load existing data.

        Raises:
            StorageError: If the directory cannot be created or the document
                cannot be loaded
        """
        try:
            if self.storage_dir is None:
                self.storage_dir = tempfile.mkdtemp(prefix="beacon-")
            os.makedirs(self.storage_dir, exist_ok=True)
            self.storage_file = os.path.join(self.storage_dir, STORAGE_JSON)
            self._items = await load_json_file(self.storage_file, default={})
            logger.info(f"Loaded {len(self._items)} items from {self.storage_file}")
        except Exception as e:
            logger.error(f"Failed to load JSON storage: {str(e)}")
            raise StorageError(f"Failed to load JSON storage: {str(e)}")

    async def cleanup(self) -> None:
        """Discard all data held by the plugin."""
        self._items.clear()
        try:
            if self._owns_dir and self.storage_dir:
                shutil.rmtree(self.storage_dir, ignore_errors=True)
                self.storage_dir = None
            elif self.storage_file and os.path.exists(self.storage_file):
                os.remove(self.storage_file)
        except OSError as e:
            logger.error(f"Failed to remove JSON storage: {str(e)}")
            raise StorageError(f"Failed to remove JSON storage: {str(e)}")

    async def _persist(self) -> None:
        if self.storage_file is None:
            raise StorageError("JSON storage is not initialized")
        try:
            await save_json_file(self.storage_file, self._items)
        except Exception as e:
            logger.error(f"Failed to save JSON storage: {str(e)}")
            raise StorageError(f"Failed to save JSON storage: {str(e)}")

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        previous = self._items.get(key)
        self._items[key] = value
        try:
            await self._persist()
        except StorageError:
            if previous is None:
                self._items.pop(key, None)
            else:
                self._items[key] = previous
            raise

    async def remove_item(self, key: str) -> None:
        if key not in self._items:
            return
        previous = self._items.pop(key)
        try:
            await self._persist()
        except StorageError:
            self._items[key] = previous
            raise

    async def keys(self) -> List[str]:
        return list(self._items)
