"""Custom exception hierarchy for the token manager.

This module defines a clear exception hierarchy that makes error handling
more precise and lets the renewal sweep contain failures per identity.
"""

from typing import Optional, Dict, Any


class TokenManagerError(Exception):
    """Base exception for all token manager errors.

    All custom exceptions in the package inherit from this base class,
    making it easy to catch every token-related error if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(TokenManagerError):
    """Raised when configuration is invalid or missing.

    Examples:
        - No identities configured at bootstrap
        - Invalid RENEWAL_TIME or threshold values
        - Credentials file not parseable
    """

    pass


class AuthenticationError(TokenManagerError):
    """Raised when no usable credential is available for an identity.

    Examples:
        - No stored credential for the requested app
    """

    pass


class APIError(TokenManagerError):
    """Raised when platform API requests fail.

    Examples:
        - HTTP 4xx/5xx errors
        - Network timeouts
        - Invalid API responses
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize API error with HTTP details.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            response_body: Raw response body
            details: Optional additional context
        """
        super().__init__(message, details)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        """Return string representation including HTTP status."""
        base = self.message
        if self.status_code:
            base = f"[HTTP {self.status_code}] {base}"
        if self.response_body:
            base = f"{base}\nResponse: {self.response_body[:500]}"
        if self.details:
            base = f"{base}\nDetails: {self.details}"
        return base


class ExchangeError(APIError):
    """Raised when the platform refuses or fails a token exchange.

    Examples:
        - Short-lived credential already expired
        - App id / secret pair rejected
        - Network failure during the exchange call
    """

    pass


class IntrospectionError(APIError):
    """Raised when a credential cannot be introspected.

    Examples:
        - debug_token call rejected or failed
        - Response without a data payload
        - Freshly exchanged credential reported as invalid
    """

    pass


class StorageError(TokenManagerError):
    """Base class for credential store failures."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize storage error with the backing file path.

        Args:
            message: Human-readable error message
            path: Path of the backing file
            details: Optional additional context
        """
        super().__init__(message, details)
        self.path = path

    def __str__(self) -> str:
        """Return string representation with the file path."""
        base = self.message
        if self.path:
            base = f"{base} (file: {self.path})"
        if self.details:
            base = f"{base}\nDetails: {self.details}"
        return base


class StorageReadError(StorageError):
    """Raised when the backing file is unreadable or corrupt.

    The store recovers from this locally by treating the data as empty.
    """

    pass


class StorageWriteError(StorageError):
    """Raised when the backing file cannot be written.

    Examples:
        - Disk full
        - Permission denied on the data directory
    """

    pass


class SchedulerStateError(TokenManagerError):
    """Raised when a scheduler lifecycle call is invalid for its state.

    Examples:
        - start() on a scheduler that is already running
        - start() on a stopped scheduler (instances are not restartable)
    """

    pass
