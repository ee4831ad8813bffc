"""
Constants for the telemetry SDK.

This module defines:
- SDK and wire schema versions
- Configuration defaults
- Validation limits
- Storage key names
"""

# Versions
SDK_VERSION = "1.0.0"
EVENT_SOURCE = "sdk"

# Configuration defaults
DEFAULT_BASE_URL = "https://api.beacon.dev"
DEFAULT_ENVIRONMENT = "production"
DEFAULT_BATCH_SIZE = 50
DEFAULT_FLUSH_INTERVAL = 10000  # ms
DEFAULT_REQUEST_TIMEOUT = 30000  # ms per attempt
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1000  # ms
DEFAULT_MAX_DELAY = 10000  # ms
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_KEY_PREFIX = "beacon_"
DEFAULT_MAX_STORAGE_SIZE = 1024 * 1024  # bytes
DEFAULT_DB_FILENAME = "beacon.db"

# Validation limits
MAX_EVENT_PROPERTIES = 100
MAX_USER_PROPERTIES = 50
MAX_SESSION_PROPERTIES = 25
NAME_PATTERN = r"^[A-Za-z0-9_-]+$"

# Sessions
SESSION_TIMEOUT_MS = 30 * 60 * 1000
ANONYMOUS_SESSION_USER = "anonymous"

# Storage keys (prefixed by the configured key prefix)
USER_KEY = "user"
USER_PROPERTIES_KEY = "user_properties"
SESSION_KEY = "session"
SESSION_PROPERTIES_KEY = "session_properties"
ANONYMOUS_KEY_PREFIX = "anonymous_"
ANONYMOUS_RECORD_TTL = 30 * 24 * 60 * 60 * 1000  # ms
STORAGE_PROBE_KEY = "__probe__"

# Event names produced by normalization
PAGE_VIEW_EVENT = "page_view"
CLICK_EVENT = "click"
