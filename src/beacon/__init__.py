"""
Beacon - client-side telemetry SDK

This package captures application events (custom events, page views, clicks),
associates them with a user and a session, and delivers them to a remote
collector in batches. It includes:

- The BeaconSDK pipeline coordinator
- Local persistence with pluggable backends (SQLite, JSON file, memory)
- User and session identity stores
- An HTTP delivery client with exponential-backoff retry

Example:
    async with BeaconSDK(SDKConfig(api_key="key")) as sdk:
        await sdk.track("signup", {"plan": "pro"})
"""

__version__ = "1.0.0"

# Version compatibility check
import sys

if sys.version_info < (3, 10):
    raise RuntimeError("beacon-sdk requires Python 3.10 or higher")

# Import commonly used components for easier access
from .core.config import RetryConfig, SDKConfig, StorageConfig
from .core.enums import Notification, SDKState, StorageType
from .core.exceptions import BeaconError, SDKError, ValidationError
from .core.models import Event, Session, User
from .sdk import BeaconSDK

__all__ = [
    "BeaconSDK",
    "SDKConfig",
    "RetryConfig",
    "StorageConfig",
    "Notification",
    "SDKState",
    "StorageType",
    "BeaconError",
    "SDKError",
    "ValidationError",
    "Event",
    "Session",
    "User",
]
