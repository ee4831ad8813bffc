"""
Key-value store for the telemetry SDK.

This module provides the persistent key-value store shared by the identity
and session stores. It offers:
- Pluggable storage backends (SQLite, JSON file, in-memory)
- Key namespacing with a configured prefix
- Optional per-item expiry (TTL), checked lazily on read
- A byte-size ceiling for each stored item
- Explicit sweeping of expired items

The store acts as a facade over the backend plugins. Backends only see
serialized strings under prefixed keys; the store owns the item envelope
``{key, value, timestamp, ttl}`` and every failure is surfaced as a
StorageError whose code names the failing operation.
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ...core.config import StorageConfig
from ...core.constants import STORAGE_PROBE_KEY
from ...core.exceptions import CapacityExceededError, StorageError
from .plugins import StoragePlugin, create_plugin

logger = logging.getLogger(__name__)


class KeyValueStore:
    """
    Namespaced key-value store with expiry and size limits.

    Values may be anything JSON-serializable. Keys passed to and returned from
    the store are unprefixed; only keys carrying the configured prefix are ever
    listed, cleared or measured.

    Attributes:
        config (StorageConfig): Storage settings
        plugin (StoragePlugin): Backend holding the serialized items
    """

    def __init__(
        self,
        config: Optional[StorageConfig] = None,
        plugin: Optional[StoragePlugin] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the store.

        Args:
            config: Storage settings (defaults to durable storage)
            plugin: Backend to use instead of the one implied by ``config.type``
            clock: Time source returning epoch seconds
        """
        self.config = config or StorageConfig()
        self.plugin = plugin or create_plugin(self.config.type, self.config.path)
        self._clock = clock
        self._initialized = False

    @property
    def key_prefix(self) -> str:
        return self.config.key_prefix

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _details(self, key: Optional[str] = None) -> Dict[str, Any]:
        details = {"storage_type": self.config.type.value, "key_prefix": self.key_prefix}
        if key is not None:
            details["key"] = key
        return details

    def _is_expired(self, item: Dict[str, Any]) -> bool:
        ttl = item.get("ttl")
        if ttl is None:
            return False
        return self._now_ms() - item["timestamp"] > ttl

    def _decode(self, key: str, raw: str) -> Dict[str, Any]:
        item = json.loads(raw)
        if not isinstance(item, dict) or "value" not in item or "timestamp" not in item:
            raise ValueError(f"Malformed stored item for key {key}")
        return item

    async def initialize(self) -> None:
        """
        Initialize the backend and verify it is usable.

        A probe item is written, read back and removed before the store is
        declared ready.

        Raises:
            StorageError: If the backend is unavailable (STORAGE_INIT_ERROR)
        """
        try:
            await self.plugin.initialize()
            probe_key = self._full_key(STORAGE_PROBE_KEY)
            await self.plugin.set_item(probe_key, "1")
            if await self.plugin.get_item(probe_key) != "1":
                raise StorageError("Storage probe read back an unexpected value")
            await self.plugin.remove_item(probe_key)
            self._initialized = True
            logger.info(f"Initialized {self.config.type.value} storage")
        except Exception as e:
            logger.error(f"Failed to initialize storage: {str(e)}")
            raise StorageError(
                f"Failed to initialize storage: {str(e)}",
                code="STORAGE_INIT_ERROR",
                details=self._details(),
            ) from e

    async def close(self) -> None:
        """Release the backend. Non-durable backends discard their data."""
        try:
            await self.plugin.cleanup()
        finally:
            self._initialized = False

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store a value.

        Args:
            key: Unprefixed key
            value: JSON-serializable value
            ttl: Optional time-to-live in milliseconds

        Raises:
            CapacityExceededError: If the serialized item exceeds ``max_size``
            StorageError: If serialization or the backend write fails
                (STORAGE_SET_ERROR)
        """
        try:
            item = {"key": key, "value": value, "timestamp": self._now_ms(), "ttl": ttl}
            serialized = json.dumps(item)
            size = len(serialized.encode("utf-8"))
            if size > self.config.max_size:
                raise CapacityExceededError(size, self.config.max_size, self._details(key))
            await self.plugin.set_item(self._full_key(key), serialized)
            logger.debug(f"Stored {key} ({size} bytes)")
        except CapacityExceededError:
            raise
        except Exception as e:
            logger.error(f"Failed to set {key}: {str(e)}")
            raise StorageError(
                f"Failed to set {key}: {str(e)}",
                code="STORAGE_SET_ERROR",
                details=self._details(key),
            ) from e

    async def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Expired items are removed on read and reported as absent.

        Args:
            key: Unprefixed key
            default: Value returned when the key is absent or expired

        Returns:
            The stored value, or ``default``

        Raises:
            StorageError: If the backend read fails or the stored item is
                corrupt (STORAGE_GET_ERROR)
        """
        try:
            raw = await self.plugin.get_item(self._full_key(key))
            if raw is None:
                return default
            item = self._decode(key, raw)
            if self._is_expired(item):
                await self.plugin.remove_item(self._full_key(key))
                logger.debug(f"Purged expired item {key}")
                return default
            return item["value"]
        except Exception as e:
            logger.error(f"Failed to get {key}: {str(e)}")
            raise StorageError(
                f"Failed to get {key}: {str(e)}",
                code="STORAGE_GET_ERROR",
                details=self._details(key),
            ) from e

    async def remove(self, key: str) -> None:
        """
        Remove a value. Removing an absent key is a no-op.

        Raises:
            StorageError: If the backend delete fails (STORAGE_REMOVE_ERROR)
        """
        try:
            await self.plugin.remove_item(self._full_key(key))
        except Exception as e:
            logger.error(f"Failed to remove {key}: {str(e)}")
            raise StorageError(
                f"Failed to remove {key}: {str(e)}",
                code="STORAGE_REMOVE_ERROR",
                details=self._details(key),
            ) from e

    async def _prefixed_keys(self) -> List[str]:
        return [k for k in await self.plugin.keys() if k.startswith(self.key_prefix)]

    async def keys(self) -> List[str]:
        """
        List the unprefixed keys held under the configured prefix.

        Raises:
            StorageError: If the backend listing fails (STORAGE_KEYS_ERROR)
        """
        try:
            return [k[len(self.key_prefix):] for k in await self._prefixed_keys()]
        except Exception as e:
            logger.error(f"Failed to list keys: {str(e)}")
            raise StorageError(
                f"Failed to list keys: {str(e)}",
                code="STORAGE_KEYS_ERROR",
                details=self._details(),
            ) from e

    async def clear(self) -> None:
        """
        Remove every key under the configured prefix.

        Keys outside the prefix are left untouched.

        Raises:
            StorageError: If the backend fails (STORAGE_CLEAR_ERROR)
        """
        try:
            for full_key in await self._prefixed_keys():
                await self.plugin.remove_item(full_key)
        except Exception as e:
            logger.error(f"Failed to clear storage: {str(e)}")
            raise StorageError(
                f"Failed to clear storage: {str(e)}",
                code="STORAGE_CLEAR_ERROR",
                details=self._details(),
            ) from e

    async def size_bytes(self) -> int:
        """
        Total UTF-8 size of the prefixed keys and their serialized items.

        Raises:
            StorageError: If the backend fails (STORAGE_SIZE_ERROR)
        """
        try:
            total = 0
            for full_key in await self._prefixed_keys():
                raw = await self.plugin.get_item(full_key)
                if raw is not None:
                    total += len(full_key.encode("utf-8")) + len(raw.encode("utf-8"))
            return total
        except Exception as e:
            logger.error(f"Failed to measure storage: {str(e)}")
            raise StorageError(
                f"Failed to measure storage: {str(e)}",
                code="STORAGE_SIZE_ERROR",
                details=self._details(),
            ) from e

    async def cleanup(self) -> int:
        """
        Sweep every prefixed key and remove expired items.

        Corrupt items are removed as well.

        Returns:
            int: Number of items removed

        Raises:
            StorageError: If the backend fails (STORAGE_CLEANUP_ERROR)
        """
        removed = 0
        try:
            for full_key in await self._prefixed_keys():
                raw = await self.plugin.get_item(full_key)
                if raw is None:
                    continue
                try:
                    expired = self._is_expired(self._decode(full_key, raw))
                except (ValueError, KeyError, TypeError):
                    expired = True
                if expired:
                    await self.plugin.remove_item(full_key)
                    removed += 1
        except Exception as e:
            logger.error(f"Failed to clean up storage: {str(e)}")
            raise StorageError(
                f"Failed to clean up storage: {str(e)}",
                code="STORAGE_CLEANUP_ERROR",
                details=self._details(),
            ) from e
        if removed:
            logger.info(f"Removed {removed} expired items")
        return removed
