"""
Base plugin interface for storage implementations.

This package provides the interface all key-value storage plugins implement:
- StoragePlugin: async get/set/remove/keys over serialized strings
"""

from .interfaces import StoragePlugin

__all__ = [
    "StoragePlugin",
]
