"""Enumerations shared across the SDK."""

from enum import Enum


class StorageType(Enum):
    """
    Persistence guarantees offered by the key-value store backends.

    DURABLE survives process restarts, EPHEMERAL lives as long as the owning
    store instance, MEMORY never leaves the process.
    """

    DURABLE = "durable"
    EPHEMERAL = "ephemeral"
    MEMORY = "memory"


class SDKState(Enum):
    """Lifecycle states of the SDK coordinator."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DESTROYED = "destroyed"


class Notification(Enum):
    """Kinds of notifications delivered to SDK listeners."""

    EVENT = "event"
    ERROR = "error"
    SUCCESS = "success"


class LifecycleEvent(Enum):
    """Names of the lifecycle events the event factory can build."""

    SESSION_START = "session_start"
    SESSION_END = "session_end"
    USER_IDENTIFY = "user_identify"
    USER_ALIAS = "user_alias"
    USER_RESET = "user_reset"
