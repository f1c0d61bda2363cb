"""Protocol definitions (interfaces) for the token manager.

This module defines all the abstract interfaces using Python's Protocol
to support dependency inversion and enable proper testing with mocks.
"""

from typing import Callable, List, Optional, Protocol

from token_manager.domain.models import CredentialRecord, Identity, TokenIntrospection


class CredentialStore(Protocol):
    """Interface for durable per-identity credential persistence."""

    def get(self, identity_id: str) -> Optional[CredentialRecord]:
        """Retrieve the stored record for an identity.

        Args:
            identity_id: Identity (app) identifier

        Returns:
            CredentialRecord, or None when nothing is stored
        """
        ...

    def get_all(self) -> List[CredentialRecord]:
        """Retrieve every stored record in insertion order.

        Returns:
            List of CredentialRecord
        """
        ...

    def put(self, record: CredentialRecord) -> None:
        """Insert or replace the record for record.identity_id.

        Args:
            record: Record to persist

        Raises:
            StorageWriteError: If the record could not be persisted
        """
        ...


class CredentialExchanger(Protocol):
    """Interface for the platform's token exchange and introspection endpoints."""

    def exchange_for_long_lived(
        self,
        identity_id: str,
        client_secret: str,
        current_credential: str,
    ) -> str:
        """Exchange a still-valid credential for a long-lived one.

        Args:
            identity_id: App identifier
            client_secret: App secret
            current_credential: Credential to exchange

        Returns:
            New credential string

        Raises:
            ExchangeError: If the platform rejects the call or the network fails
        """
        ...

    def introspect(self, credential: str) -> TokenIntrospection:
        """Query validity and expiry metadata of a credential.

        Args:
            credential: Credential to inspect

        Returns:
            TokenIntrospection

        Raises:
            IntrospectionError: If the platform rejects the call or the network fails
        """
        ...


class IdentitySource(Protocol):
    """Interface for the configuration collaborator listing identities."""

    def load_identities(self) -> List[Identity]:
        """Load the currently configured identities.

        Returns:
            List of well-formed identities (malformed entries are skipped)
        """
        ...


class CancellableHandle(Protocol):
    """Handle returned by a Timer registration."""

    def cancel(self) -> None:
        """Prevent any future run of the registered callback."""
        ...


class Timer(Protocol):
    """Interface for recurring task registration."""

    def schedule(self, spec: str, callback: Callable[[], None]) -> CancellableHandle:
        """Register a callback to run on a recurring schedule.

        Args:
            spec: Daily wall-clock time, "HH:MM" in local time
            callback: Function to call on every trigger

        Returns:
            Handle that cancels the registration
        """
        ...
