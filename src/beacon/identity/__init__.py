"""
User and session identity for the telemetry SDK.

This package provides:
- UserStore: current user (anonymous or identified)
- SessionStore: current session with timeout-based resumption
- EnvironmentProbe / PlatformProbe: environment snapshots for new sessions
"""

from .probe import EnvironmentProbe, PlatformProbe
from .session_store import SessionStore
from .user_store import UserStore, anonymous_key

__all__ = [
    "EnvironmentProbe",
    "PlatformProbe",
    "SessionStore",
    "UserStore",
    "anonymous_key",
]
