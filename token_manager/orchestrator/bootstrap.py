"""Bootstrap of long-lived credentials.

Converts each configured identity's initial short-lived credential into a
long-lived one and stores it. The scheduler never bootstraps on its own;
this runs as an explicit operation (`token-manager init`).
"""

import time
from typing import Callable, List, Optional

from loguru import logger

from token_manager.core.constants import RenewalStatus
from token_manager.core.exceptions import ConfigurationError, TokenManagerError
from token_manager.core.protocols import CredentialExchanger, CredentialStore
from token_manager.domain.models import Identity, RenewalOutcome
from token_manager.domain.policy import RenewalPolicy
from token_manager.orchestrator.renewal import exchange_and_store


def bootstrap_identities(
    identities: List[Identity],
    exchanger: CredentialExchanger,
    store: CredentialStore,
    policy: Optional[RenewalPolicy] = None,
    clock: Callable[[], float] = time.time,
) -> List[RenewalOutcome]:
    """Exchange and store a long-lived credential for every identity.

    Identities without an initial credential are skipped. A failure for one
    identity is logged and processing continues with the next.

    Args:
        identities: Configured identities
        exchanger: Platform exchanger
        store: Credential store
        policy: Used for the days-remaining log line
        clock: Source of the current unix time

    Returns:
        One RenewalOutcome per identity

    Raises:
        ConfigurationError: If no identities are configured
    """
    if not identities:
        raise ConfigurationError(
            "No apps configured. Set APP1_ID, APP1_SECRET and APP1_TOKEN "
            "(APP2_..., etc.) or provide a credentials file"
        )

    policy = policy or RenewalPolicy()
    logger.info(f"Bootstrapping {len(identities)} configured app(s)")

    outcomes: List[RenewalOutcome] = []
    for identity in identities:
        identity_id = identity.identity_id

        if not identity.initial_credential:
            logger.warning(f"App {identity_id}: no initial token configured, skipping")
            outcomes.append(RenewalOutcome(identity_id, RenewalStatus.NO_INITIAL_CREDENTIAL))
            continue

        logger.info(f"App {identity_id}: converting initial token to a long-lived one")
        try:
            record = exchange_and_store(
                identity,
                identity.initial_credential,
                exchanger,
                store,
                clock=clock,
            )
        except TokenManagerError as e:
            logger.error(f"App {identity_id}: bootstrap failed, continuing with next app: {e}")
            outcomes.append(
                RenewalOutcome(identity_id, RenewalStatus.FAILED, error_message=str(e))
            )
            continue

        days_left = policy.days_until_expiration(record.expires_at, clock())
        logger.success(f"App {identity_id}: long-lived token stored, expires in {days_left} day(s)")
        outcomes.append(
            RenewalOutcome(identity_id, RenewalStatus.RENEWED, expires_at=record.expires_at)
        )

    stored = sum(1 for o in outcomes if o.status == RenewalStatus.RENEWED)
    logger.info(f"Bootstrap completed: {stored}/{len(identities)} app(s) stored")
    return outcomes
