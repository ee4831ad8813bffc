"""
Configuration for the telemetry SDK.

This module defines the configuration consumed by the SDK at construction:
- RetryConfig: exponential backoff policy for the delivery client
- StorageConfig: local persistence backend, key prefix and size ceiling
- SDKConfig: top level settings (API key, endpoint, batching, flags)

Configurations validate themselves on construction and raise
ConfigurationError for invalid values. They can be built from plain mappings
(snake_case or camelCase keys) or from ``BEACON_*`` environment variables.
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional

from ..utils.validation import RangeRule, RequiredRule
from .constants import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_BASE_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_ENVIRONMENT,
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_KEY_PREFIX,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_STORAGE_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
)
from .enums import StorageType
from .exceptions import ConfigurationError

ENV_PREFIX = "BEACON_"
TRUE_VALUES = {"1", "true", "yes", "on"}


def _camel_to_snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name)


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept camelCase keys (as used on the wire) alongside snake_case ones."""
    return {_camel_to_snake(key): value for key, value in data.items()}


def _check(rule: Any, value: Any, name: str) -> None:
    if not rule.validate(value):
        raise ConfigurationError(f"{name} {rule.error_message}")


@dataclass
class RetryConfig:
    """
    Retry policy for delivery requests.

    Attempt ``k`` (0-indexed) waits ``min(initial_delay * backoff_multiplier**k,
    max_delay)`` milliseconds before the next attempt.

    Attributes:
        max_retries (int): Retries after the first attempt
        initial_delay (float): Delay before the first retry, in ms
        max_delay (float): Ceiling for any single delay, in ms
        backoff_multiplier (float): Growth factor between delays
        retry_on_client_errors (bool): Whether 4xx responses are retried
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    retry_on_client_errors: bool = True

    def __post_init__(self):
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ConfigurationError("max_retries must be an integer")
        _check(RangeRule(min_value=0, error_message="must be >= 0"), self.max_retries, "max_retries")
        _check(
            RangeRule(min_value=0, error_message="must be >= 0"), self.initial_delay, "initial_delay"
        )
        _check(RangeRule(min_value=0, error_message="must be >= 0"), self.max_delay, "max_delay")
        _check(
            RangeRule(min_value=1, error_message="must be >= 1"),
            self.backoff_multiplier,
            "backoff_multiplier",
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RetryConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in _normalize_keys(data).items() if k in known})


@dataclass
class StorageConfig:
    """
    Local persistence settings.

    Attributes:
        type (StorageType): Backend persistence guarantee
        key_prefix (str): Namespace prepended to every key
        max_size (int): Maximum serialized size of one stored item, in bytes
        path (Optional[str]): Database file (durable) or directory (ephemeral)
    """

    type: StorageType = StorageType.DURABLE
    key_prefix: str = DEFAULT_KEY_PREFIX
    max_size: int = DEFAULT_MAX_STORAGE_SIZE
    path: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.type, StorageType):
            try:
                self.type = StorageType(str(self.type).lower())
            except ValueError:
                raise ConfigurationError(f"Unknown storage type: {self.type}")
        if not isinstance(self.key_prefix, str):
            raise ConfigurationError("key_prefix must be a string")
        _check(RangeRule(min_value=1, error_message="must be >= 1"), self.max_size, "max_size")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StorageConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in _normalize_keys(data).items() if k in known})


@dataclass
class SDKConfig:
    """
    Top level SDK configuration.

    Attributes:
        api_key (str): Collector API key (required)
        base_url (str): Collector base URL
        environment (str): Deployment environment label
        debug (bool): Attach a console handler to the SDK logger
        auto_track_page_views (bool): Flag for page-view auto-tracking collaborators
        auto_track_sessions (bool): Enqueue session_start when a new session begins
        batch_size (int): Queue length that triggers an immediate flush
        flush_interval (float): Periodic flush interval, in ms
        request_timeout (float): Per-attempt request timeout, in ms
        retry_config (RetryConfig): Delivery retry policy
        storage_config (StorageConfig): Local persistence settings
        user_properties (Dict[str, Any]): Properties merged into the user at initialize
    """

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    environment: str = DEFAULT_ENVIRONMENT
    debug: bool = False
    auto_track_page_views: bool = True
    auto_track_sessions: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE
    flush_interval: float = DEFAULT_FLUSH_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_config: RetryConfig = field(default_factory=RetryConfig)
    storage_config: StorageConfig = field(default_factory=StorageConfig)
    user_properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.api_key, str):
            raise ConfigurationError("api_key must be a string")
        _check(RequiredRule("is required"), self.api_key, "api_key")
        _check(RequiredRule("is required"), self.base_url, "base_url")
        self.base_url = self.base_url.rstrip("/")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int):
            raise ConfigurationError("batch_size must be an integer")
        _check(RangeRule(min_value=1, error_message="must be >= 1"), self.batch_size, "batch_size")
        _check(
            RangeRule(min_value=1, error_message="must be > 0"), self.flush_interval, "flush_interval"
        )
        _check(
            RangeRule(min_value=1, error_message="must be > 0"),
            self.request_timeout,
            "request_timeout",
        )
        if isinstance(self.retry_config, Mapping):
            self.retry_config = RetryConfig.from_dict(self.retry_config)
        if isinstance(self.storage_config, Mapping):
            self.storage_config = StorageConfig.from_dict(self.storage_config)
        if not isinstance(self.retry_config, RetryConfig):
            raise ConfigurationError("retry_config must be a RetryConfig")
        if not isinstance(self.storage_config, StorageConfig):
            raise ConfigurationError("storage_config must be a StorageConfig")
        self.user_properties = dict(self.user_properties or {})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SDKConfig":
        """
        Build a configuration from a plain mapping.

        Unknown keys are ignored so that configuration files shared with other
        SDKs can be loaded as-is.

        Args:
            data: Mapping with snake_case or camelCase keys

        Returns:
            SDKConfig: Validated configuration

        Raises:
            ConfigurationError: If a value is invalid
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in _normalize_keys(data).items() if k in known}
        if "api_key" not in values:
            raise ConfigurationError("api_key is required")
        return cls(**values)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "SDKConfig":
        """
        Build a configuration from ``BEACON_*`` environment variables.

        Keyword overrides take precedence over the environment; ``None``
        overrides are ignored.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
            **overrides: Explicit values for any SDKConfig field

        Returns:
            SDKConfig: Validated configuration

        Raises:
            ConfigurationError: If a value is missing or invalid
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        storage: Dict[str, Any] = {}

        def read(name: str) -> Optional[str]:
            value = env.get(f"{ENV_PREFIX}{name}")
            return value if value not in (None, "") else None

        if read("API_KEY"):
            values["api_key"] = read("API_KEY")
        if read("BASE_URL"):
            values["base_url"] = read("BASE_URL")
        if read("ENVIRONMENT"):
            values["environment"] = read("ENVIRONMENT")
        if read("DEBUG"):
            values["debug"] = read("DEBUG").lower() in TRUE_VALUES
        try:
            if read("BATCH_SIZE"):
                values["batch_size"] = int(read("BATCH_SIZE"))
            if read("FLUSH_INTERVAL"):
                values["flush_interval"] = float(read("FLUSH_INTERVAL"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric environment value: {str(e)}")
        if read("STORAGE_TYPE"):
            storage["type"] = read("STORAGE_TYPE")
        if read("STORAGE_PATH"):
            storage["path"] = read("STORAGE_PATH")

        storage_override = overrides.pop("storage_config", None)
        values.update({k: v for k, v in overrides.items() if v is not None})
        if isinstance(storage_override, StorageConfig):
            values["storage_config"] = storage_override
        else:
            storage.update(storage_override or {})
            values["storage_config"] = StorageConfig.from_dict(storage)
        return cls.from_dict(values)
