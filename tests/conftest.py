"""
Shared fixtures for token manager tests.

Collaborators of the scheduler (exchanger, timer, identity source) are
replaced with in-memory fakes; the credential store is the real JSON store
writing under pytest's tmp_path.
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

import pytest

from token_manager.core.constants import SECONDS_PER_DAY
from token_manager.core.exceptions import ExchangeError
from token_manager.domain.models import CredentialRecord, Identity, TokenIntrospection
from token_manager.domain.policy import RenewalPolicy
from token_manager.infrastructure.json_credential_store import JsonCredentialStore

# Fixed "now" for deterministic expiry arithmetic (2025-10-09T08:53:20Z)
NOW = 1_760_000_000
OLD_TIMESTAMP = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_record(identity_id: str, days_left: float, credential: Optional[str] = None) -> CredentialRecord:
    """Stored record expiring `days_left` days after NOW."""
    return CredentialRecord(
        identity_id=identity_id,
        credential=credential or f"stored-token-{identity_id}",
        expires_at=int(NOW + days_left * SECONDS_PER_DAY),
        last_updated=OLD_TIMESTAMP,
    )


def make_identity(identity_id: str, initial_credential: Optional[str] = None) -> Identity:
    return Identity(
        identity_id=identity_id,
        client_secret=f"secret-{identity_id}",
        initial_credential=initial_credential,
    )


class FakeExchanger:
    """In-memory stand-in for GraphTokenExchanger."""

    def __init__(self, lifetime_days: int = 60, clock: Callable[[], float] = lambda: NOW):
        self.lifetime_days = lifetime_days
        self.clock = clock
        self.exchange_calls: List[tuple] = []
        self.introspect_calls: List[str] = []
        self.fail_exchange_for: Set[str] = set()
        self.report_invalid_for: Set[str] = set()
        self._owners: Dict[str, str] = {}
        self.closed = False

    def exchange_for_long_lived(self, identity_id, client_secret, current_credential):
        self.exchange_calls.append((identity_id, client_secret, current_credential))
        if identity_id in self.fail_exchange_for:
            raise ExchangeError(
                f"Token exchange failed for app {identity_id}: Error validating access token",
                status_code=400,
            )
        credential = f"long-lived-{identity_id}-{len(self.exchange_calls)}"
        self._owners[credential] = identity_id
        return credential

    def introspect(self, credential):
        self.introspect_calls.append(credential)
        identity_id = self._owners[credential]
        now = int(self.clock())
        return TokenIntrospection(
            is_valid=identity_id not in self.report_invalid_for,
            identity_id=identity_id,
            expires_at=now + self.lifetime_days * SECONDS_PER_DAY,
            issued_at=now,
            scopes=["ads_read", "business_management"],
        )

    def exchanged_ids(self) -> List[str]:
        return [call[0] for call in self.exchange_calls]

    def close(self):
        self.closed = True


class FakeHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeTimer:
    """Timer that records registrations and fires them on demand."""

    def __init__(self):
        self.registrations: List[tuple] = []
        self.handles: List[FakeHandle] = []
        self.shut_down = False

    def schedule(self, spec, callback):
        handle = FakeHandle()
        self.registrations.append((spec, callback))
        self.handles.append(handle)
        return handle

    def fire(self):
        for (spec, callback), handle in zip(self.registrations, self.handles):
            if not handle.cancelled:
                callback()

    def shutdown(self, timeout=None):
        self.shut_down = True


class StaticIdentitySource:
    def __init__(self, identities: List[Identity]):
        self.identities = identities

    def load_identities(self) -> List[Identity]:
        return list(self.identities)


@pytest.fixture
def clock() -> Callable[[], float]:
    return lambda: NOW


@pytest.fixture
def policy() -> RenewalPolicy:
    return RenewalPolicy(threshold_days=7)


@pytest.fixture
def store(tmp_path) -> JsonCredentialStore:
    return JsonCredentialStore(tmp_path / "data" / "tokens.json")


@pytest.fixture
def exchanger(clock) -> FakeExchanger:
    return FakeExchanger(clock=clock)


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()
