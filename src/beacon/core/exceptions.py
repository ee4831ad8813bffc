"""
Custom exceptions for the telemetry SDK.

This module defines the hierarchy of custom exceptions used throughout the SDK
to handle various error conditions in a structured and meaningful way. Each
exception type corresponds to a specific category of errors that may occur
while building, storing or delivering events, and carries a stable ``code``
that is safe to log or forward to error listeners.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class BeaconError(Exception):
    """
    Base class for all SDK errors.

    Attributes:
        code (str): Stable, machine-readable error code
        timestamp (datetime): When the error was raised (UTC)
    """

    code = "BEACON_ERROR"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.timestamp = datetime.now(timezone.utc)

    @property
    def message(self) -> str:
        """Plain error message without any formatting prefix."""
        return super().__str__()


class ValidationError(BeaconError):
    """
    Raised when data validation fails.

    This exception is raised when caller-supplied input fails to meet the
    required validation criteria, such as an event name with illegal
    characters, too many properties, or a property value that is not a
    string, number, boolean or null. Validation errors are never retried.

    Examples:
        * Invalid event name
        * Property key not matching the allowed pattern
        * Empty user id passed to identify

    Attributes:
        errors (List[str]): Individual validation failures
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "", errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]

    def __str__(self) -> str:
        """Format validation error message."""
        return f"Validation Error: {super().__str__()}"


class StorageError(BeaconError):
    """
    Raised when storage operations fail.

    This exception is raised when operations involving local persistence
    encounter errors, such as an unavailable backend, a corrupt stored item
    or a failing write. The ``code`` distinguishes the failing operation.

    Examples:
        * Backend unavailable at initialization (STORAGE_INIT_ERROR)
        * Corrupt item on read (STORAGE_GET_ERROR)
        * Write failure (STORAGE_SET_ERROR)
    """

    code = "STORAGE_ERROR"

    def __init__(
        self,
        message: str = "",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code)
        self.details = details or {}


class CapacityExceededError(StorageError):
    """
    Raised when a serialized value exceeds the configured storage ceiling.

    Attributes:
        size (int): Serialized size in bytes
        max_size (int): Configured maximum size in bytes
    """

    code = "STORAGE_CAPACITY_EXCEEDED"

    def __init__(self, size: int, max_size: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Value exceeds maximum storage size ({size} > {max_size} bytes)",
            details=details,
        )
        self.size = size
        self.max_size = max_size


class DeliveryError(BeaconError):
    """
    Base class for failures delivering data to the collector.

    Delivery errors are retried by the delivery client according to its retry
    policy and are only surfaced once retries are exhausted.
    """

    code = "DELIVERY_ERROR"


class NetworkError(DeliveryError):
    """
    Raised when the transport fails (connection error, timeout).

    Attributes:
        cause (Optional[BaseException]): Last underlying transport failure
        attempts (int): Number of attempts made before giving up
    """

    code = "NETWORK_ERROR"

    def __init__(self, message: str = "", cause: Optional[BaseException] = None, attempts: int = 0):
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


class HttpError(DeliveryError):
    """
    Raised when the collector answers with a non-success status code.

    Attributes:
        status (int): HTTP status code
        status_text (str): HTTP reason phrase
        response (Any): Parsed JSON body, or ``{"message": raw_text}``
        attempts (int): Number of attempts made before giving up
    """

    code = "HTTP_ERROR"

    def __init__(self, status: int, status_text: str = "", response: Any = None, attempts: int = 0):
        super().__init__(f"HTTP {status}: {status_text}")
        self.status = status
        self.status_text = status_text
        self.response = response
        self.attempts = attempts


class NotInitializedError(BeaconError):
    """
    Raised when an SDK operation is invoked outside the ready state.

    Examples:
        * track() before initialize()
        * flush() after destroy()
    """

    code = "SDK_NOT_INITIALIZED"


class ResourceNotFoundError(BeaconError):
    """
    Raised when a requested resource is not found.

    Examples:
        * Alias of an anonymous id with no stored record
        * Updating properties with no current user
        * Updating session properties with no active session
    """

    code = "NOT_FOUND"


class ConfigurationError(BeaconError):
    """
    Raised when configuration is invalid.

    Examples:
        * Missing API key
        * Non-positive batch size
        * Unknown storage type
    """

    code = "CONFIGURATION_ERROR"


class InvalidOperationError(BeaconError):
    """
    Raised when an operation is invalid in the current context.

    Examples:
        * Initializing an SDK instance that has been destroyed
        * Initializing twice concurrently
    """

    code = "INVALID_OPERATION"


class SDKError(BeaconError):
    """
    Coordinator-level error decorated with identity context.

    Every public SDK operation that fails wraps the underlying failure in an
    SDKError carrying a stable operation code (e.g. TRACKING_ERROR,
    FLUSH_ERROR) together with the current user and session ids, so that
    listeners can correlate failures without holding a reference to the SDK.

    Attributes:
        cause (Optional[BaseException]): Underlying failure
        user_id (Optional[str]): Current user id when the error occurred
        session_id (Optional[str]): Current session id when the error occurred
    """

    def __init__(
        self,
        code: str,
        message: str,
        cause: Optional[BaseException] = None,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.cause = cause
        self.user_id = user_id
        self.session_id = session_id

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the error for listeners and logs."""
        return {
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "session_id": self.session_id,
            "cause": type(self.cause).__name__ if self.cause is not None else None,
        }
