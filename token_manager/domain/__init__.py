"""Domain layer: credential models and renewal policy."""

from token_manager.domain.models import (
    Identity,
    CredentialRecord,
    TokenIntrospection,
    RenewalOutcome,
    SweepResult,
)
from token_manager.domain.policy import RenewalPolicy

__all__ = [
    "Identity",
    "CredentialRecord",
    "TokenIntrospection",
    "RenewalOutcome",
    "SweepResult",
    "RenewalPolicy",
]
