"""Domain models for credential lifecycle management.

These models represent the core entities in a platform-agnostic way.
They use dataclasses for immutability and type safety.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from token_manager.core.constants import RenewalStatus


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting the trailing 'Z' form.

    Naive timestamps are assumed to be UTC.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Identity:
    """A configured Facebook app whose credential is managed.

    The initial credential is only needed for bootstrap; the scheduler always
    renews from the credential held in the store.
    """

    identity_id: str
    client_secret: str = field(repr=False)
    initial_credential: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        """Validate required fields."""
        if not self.identity_id:
            raise ValueError("Identity ID cannot be empty")
        if not self.client_secret:
            raise ValueError(f"Client secret cannot be empty for identity {self.identity_id}")


@dataclass(frozen=True)
class CredentialRecord:
    """Persisted credential state for one identity."""

    identity_id: str
    credential: str = field(repr=False)
    expires_at: int
    last_updated: datetime

    def __post_init__(self):
        """Validate required fields."""
        if not self.identity_id:
            raise ValueError("Identity ID cannot be empty")
        if not self.credential:
            raise ValueError(f"Credential cannot be empty for identity {self.identity_id}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON layout.

        Returns:
            Dictionary with identity_id, credential, expires_at and
            last_updated (ISO-8601)
        """
        return {
            "identity_id": self.identity_id,
            "credential": self.credential,
            "expires_at": int(self.expires_at),
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        """Build a record from its persisted JSON layout.

        Args:
            data: Dictionary as produced by to_dict()

        Returns:
            CredentialRecord instance

        Raises:
            ValueError: If a field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Credential record must be an object, got {type(data).__name__}")

        missing = [
            key for key in ("identity_id", "credential", "expires_at", "last_updated")
            if key not in data
        ]
        if missing:
            raise ValueError(f"Credential record missing fields: {', '.join(missing)}")

        return cls(
            identity_id=str(data["identity_id"]),
            credential=str(data["credential"]),
            expires_at=int(data["expires_at"]),
            last_updated=parse_timestamp(str(data["last_updated"])),
        )


@dataclass(frozen=True)
class TokenIntrospection:
    """Validity and expiry metadata for a credential, as reported by debug_token."""

    is_valid: bool
    identity_id: str
    expires_at: int
    issued_at: Optional[int] = None
    scopes: List[str] = field(default_factory=list)
    user_id: Optional[str] = None
    token_type: Optional[str] = None
    application: Optional[str] = None
    data_access_expires_at: Optional[int] = None

    @classmethod
    def from_graph(cls, data: Dict[str, Any]) -> "TokenIntrospection":
        """Build from the `data` object of a debug_token response.

        Args:
            data: The `data` payload of the response

        Returns:
            TokenIntrospection instance
        """

        def _optional_int(key: str) -> Optional[int]:
            value = data.get(key)
            return int(value) if value is not None else None

        return cls(
            is_valid=bool(data.get("is_valid", False)),
            identity_id=str(data.get("app_id", "")),
            expires_at=int(data.get("expires_at") or 0),
            issued_at=_optional_int("issued_at"),
            scopes=list(data.get("scopes") or []),
            user_id=data.get("user_id"),
            token_type=data.get("type"),
            application=data.get("application"),
            data_access_expires_at=_optional_int("data_access_expires_at"),
        )


@dataclass
class RenewalOutcome:
    """Result of processing one identity during a sweep or bootstrap."""

    identity_id: str
    status: RenewalStatus
    expires_at: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """True unless the attempt failed."""
        return self.status != RenewalStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "identity_id": self.identity_id,
            "status": self.status.value,
            "expires_at": self.expires_at,
            "error_message": self.error_message,
        }


@dataclass
class SweepResult:
    """Summary of one renewal sweep across all configured identities."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: List[RenewalOutcome] = field(default_factory=list)

    def _with_status(self, status: RenewalStatus) -> List[str]:
        return [o.identity_id for o in self.outcomes if o.status == status]

    @property
    def renewed(self) -> List[str]:
        return self._with_status(RenewalStatus.RENEWED)

    @property
    def failed(self) -> List[str]:
        return self._with_status(RenewalStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return [
            o.identity_id for o in self.outcomes
            if o.status in (RenewalStatus.NOT_DUE, RenewalStatus.NO_RECORD)
        ]

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def get(self, identity_id: str) -> Optional[RenewalOutcome]:
        """Outcome for one identity, or None if it was not processed."""
        for outcome in self.outcomes:
            if outcome.identity_id == identity_id:
                return outcome
        return None
