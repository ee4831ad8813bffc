"""Core types of the telemetry SDK: errors, enumerations and constants."""

from .enums import LifecycleEvent, Notification, SDKState, StorageType
from .exceptions import (
    BeaconError,
    CapacityExceededError,
    ConfigurationError,
    DeliveryError,
    HttpError,
    InvalidOperationError,
    NetworkError,
    NotInitializedError,
    ResourceNotFoundError,
    SDKError,
    StorageError,
    ValidationError,
)

__all__ = [
    "BeaconError",
    "CapacityExceededError",
    "ConfigurationError",
    "DeliveryError",
    "HttpError",
    "InvalidOperationError",
    "LifecycleEvent",
    "NetworkError",
    "NotInitializedError",
    "Notification",
    "ResourceNotFoundError",
    "SDKError",
    "SDKState",
    "StorageError",
    "StorageType",
    "ValidationError",
]
