"""JSON filesystem storage plugin."""

from .storage import JsonFileStoragePlugin

__all__ = ["JsonFileStoragePlugin"]
