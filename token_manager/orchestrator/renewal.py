"""Single-identity credential refresh.

Exchange, introspection and the store write always run in this order:
introspection must see the new credential and the store must receive the
introspected expiry. Shared by the scheduler sweep and bootstrap.
"""

import time
from datetime import datetime, timezone
from typing import Callable

from token_manager.core.exceptions import IntrospectionError
from token_manager.core.protocols import CredentialExchanger, CredentialStore
from token_manager.domain.models import CredentialRecord, Identity


def exchange_and_store(
    identity: Identity,
    current_credential: str,
    exchanger: CredentialExchanger,
    store: CredentialStore,
    clock: Callable[[], float] = time.time,
) -> CredentialRecord:
    """Exchange a credential, introspect the result and persist it.

    Args:
        identity: Identity being refreshed
        current_credential: Credential handed to the exchange
        exchanger: Platform exchanger
        store: Credential store
        clock: Source of the current unix time

    Returns:
        The record written to the store

    Raises:
        ExchangeError: If the exchange fails
        IntrospectionError: If introspection fails or reports the new credential invalid
        StorageWriteError: If the record cannot be persisted
    """
    new_credential = exchanger.exchange_for_long_lived(
        identity.identity_id,
        identity.client_secret,
        current_credential,
    )

    introspection = exchanger.introspect(new_credential)
    if not introspection.is_valid:
        raise IntrospectionError(
            "Exchanged credential reported as invalid",
            details={"identity_id": identity.identity_id},
        )

    record = CredentialRecord(
        identity_id=identity.identity_id,
        credential=new_credential,
        expires_at=introspection.expires_at,
        last_updated=datetime.fromtimestamp(clock(), tz=timezone.utc),
    )
    store.put(record)
    return record
