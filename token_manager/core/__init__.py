"""Core abstractions: exceptions and constants.

Protocols live in token_manager.core.protocols and are imported from there
directly, since they reference the domain models.
"""

from token_manager.core.exceptions import (
    TokenManagerError,
    ConfigurationError,
    AuthenticationError,
    APIError,
    ExchangeError,
    IntrospectionError,
    StorageError,
    StorageReadError,
    StorageWriteError,
    SchedulerStateError,
)
from token_manager.core.constants import RenewalStatus, SchedulerState

__all__ = [
    # Exceptions
    "TokenManagerError",
    "ConfigurationError",
    "AuthenticationError",
    "APIError",
    "ExchangeError",
    "IntrospectionError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    "SchedulerStateError",
    # Enumerations
    "RenewalStatus",
    "SchedulerState",
]
