"""Credential Renewal Scheduler Module.

This module keeps every configured identity's stored credential fresh
without operator intervention.

Key Features:
- One sweep immediately on start(), then a daily trigger (02:00 local)
- Per-identity failure containment: a sweep never fails as a whole
- Optional parallel processing across identities
- Idempotent stop(); stopped instances are not restartable

State machine:
    IDLE --start()--> RUNNING --stop()--> STOPPED
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from loguru import logger

from token_manager.core.constants import (
    RENEWAL_TRIGGER_TIME,
    RenewalStatus,
    SchedulerState,
)
from token_manager.core.exceptions import (
    ConfigurationError,
    SchedulerStateError,
    TokenManagerError,
)
from token_manager.core.protocols import (
    CancellableHandle,
    CredentialExchanger,
    CredentialStore,
    IdentitySource,
    Timer,
)
from token_manager.domain.models import (
    CredentialRecord,
    Identity,
    RenewalOutcome,
    SweepResult,
)
from token_manager.domain.policy import RenewalPolicy
from token_manager.orchestrator.renewal import exchange_and_store


class RenewalScheduler:
    """Unattended, recurring renewal of stored credentials.

    Example:
        ```python
        scheduler = RenewalScheduler(
            identity_source=EnvIdentitySource(),
            store=JsonCredentialStore("data/tokens.json"),
            exchanger=GraphTokenExchanger(),
            timer=ScheduleTimer(),
        )
        scheduler.start()
        ...
        scheduler.stop()
        ```
    """

    def __init__(
        self,
        identity_source: IdentitySource,
        store: CredentialStore,
        exchanger: CredentialExchanger,
        timer: Optional[Timer] = None,
        policy: Optional[RenewalPolicy] = None,
        trigger_time: str = RENEWAL_TRIGGER_TIME,
        max_workers: int = 1,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the scheduler.

        Args:
            identity_source: Configuration collaborator listing identities
            store: Credential store
            exchanger: Platform token exchanger
            timer: Recurring trigger registration (only needed by start())
            policy: Renewal policy (default: 7-day threshold)
            trigger_time: Daily local trigger time, "HH:MM"
            max_workers: Identities processed in parallel (1 = sequential)
            clock: Source of the current unix time
        """
        if max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {max_workers}")

        self.identity_source = identity_source
        self.store = store
        self.exchanger = exchanger
        self.timer = timer
        self.policy = policy or RenewalPolicy()
        self.trigger_time = trigger_time
        self.max_workers = max_workers
        self.clock = clock

        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._handle: Optional[CancellableHandle] = None
        self._initial_sweep: Optional[threading.Thread] = None
        self.last_result: Optional[SweepResult] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def start(self) -> None:
        """Run one sweep now (in the background) and register the daily trigger.

        Raises:
            SchedulerStateError: If the scheduler is not IDLE
            ConfigurationError: If no timer was provided
        """
        if self.timer is None:
            raise ConfigurationError("A timer is required to start the scheduler")

        with self._state_lock:
            if self._state != SchedulerState.IDLE:
                raise SchedulerStateError(
                    f"Cannot start scheduler in state '{self._state.value}'",
                    details={"hint": "create a new RenewalScheduler to resume"},
                )

            logger.info(
                f"Starting credential renewal scheduler (daily at {self.trigger_time})"
            )
            self._state = SchedulerState.RUNNING

            self._initial_sweep = threading.Thread(
                target=self._scheduled_sweep,
                name="credential-renewal-initial-sweep",
                daemon=True,
            )
            self._initial_sweep.start()

            self._handle = self.timer.schedule(self.trigger_time, self._scheduled_sweep)

        logger.success("Credential renewal scheduler started")

    def stop(self) -> None:
        """Cancel the daily trigger. In-flight sweeps run to completion.

        Idempotent: a no-op when the scheduler is IDLE or already STOPPED.
        """
        with self._state_lock:
            if self._state != SchedulerState.RUNNING:
                logger.debug(f"stop() ignored in state '{self._state.value}'")
                return

            self._state = SchedulerState.STOPPED
            handle, self._handle = self._handle, None

        if handle is not None:
            handle.cancel()
        logger.info("Credential renewal scheduler stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the start-up sweep to finish.

        Args:
            timeout: Seconds to wait (None waits indefinitely)

        Returns:
            True if no start-up sweep is in flight anymore
        """
        thread = self._initial_sweep
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _scheduled_sweep(self) -> None:
        if self._state != SchedulerState.RUNNING:
            logger.debug("Scheduler not running, sweep skipped")
            return
        try:
            self.check_and_renew_all()
        except Exception:
            # Next trigger still runs
            logger.exception("Renewal sweep aborted by an unexpected error")

    def check_and_renew_all(self) -> SweepResult:
        """Check every configured identity and renew credentials that are due.

        Returns:
            SweepResult with one outcome per configured identity
        """
        result = SweepResult(started_at=datetime.now(timezone.utc))
        logger.info("Starting credential renewal sweep")

        try:
            identities = self.identity_source.load_identities()
        except ConfigurationError as e:
            logger.error(f"Could not load configured identities, sweep skipped: {e}")
            identities = []

        records: Dict[str, CredentialRecord] = {
            record.identity_id: record for record in self.store.get_all()
        }

        if self.max_workers > 1 and len(identities) > 1:
            result.outcomes = self._renew_parallel(identities, records)
        else:
            result.outcomes = [
                self.renew_identity(identity, records.get(identity.identity_id))
                for identity in identities
            ]

        result.finished_at = datetime.now(timezone.utc)
        self.last_result = result

        logger.info(
            f"Renewal sweep completed in {result.duration_seconds:.1f}s: "
            f"{len(result.renewed)} renewed, {len(result.skipped)} skipped, "
            f"{len(result.failed)} failed"
        )
        if result.failed:
            logger.warning(f"Renewal failed for: {', '.join(result.failed)}")

        return result

    def renew_identity(
        self,
        identity: Identity,
        record: Optional[CredentialRecord],
    ) -> RenewalOutcome:
        """Renew one identity if due. Never raises.

        Args:
            identity: Configured identity
            record: Its stored record, or None

        Returns:
            RenewalOutcome describing what happened
        """
        identity_id = identity.identity_id

        if record is None:
            logger.warning(
                f"No stored credential for app {identity_id}, skipping (run bootstrap first)"
            )
            return RenewalOutcome(identity_id, RenewalStatus.NO_RECORD)

        now = self.clock()
        days_left = self.policy.days_until_expiration(record.expires_at, now)
        logger.info(f"App {identity_id}: credential expires in {days_left} day(s)")

        if not self.policy.needs_renewal(record.expires_at, now):
            logger.info(f"App {identity_id}: renewal not due yet")
            return RenewalOutcome(
                identity_id, RenewalStatus.NOT_DUE, expires_at=record.expires_at
            )

        logger.info(f"App {identity_id}: renewing credential")
        try:
            new_record = exchange_and_store(
                identity,
                record.credential,
                self.exchanger,
                self.store,
                clock=self.clock,
            )
        except TokenManagerError as e:
            logger.error(f"App {identity_id}: renewal failed: {e}")
            return RenewalOutcome(
                identity_id, RenewalStatus.FAILED, error_message=str(e)
            )
        except Exception as e:
            logger.exception(f"App {identity_id}: unexpected error during renewal")
            return RenewalOutcome(
                identity_id, RenewalStatus.FAILED, error_message=f"{type(e).__name__}: {e}"
            )

        new_days = self.policy.days_until_expiration(new_record.expires_at, self.clock())
        logger.success(
            f"App {identity_id}: credential renewed, expires in {new_days} day(s)"
        )
        return RenewalOutcome(
            identity_id, RenewalStatus.RENEWED, expires_at=new_record.expires_at
        )

    def _renew_parallel(
        self,
        identities: List[Identity],
        records: Dict[str, CredentialRecord],
    ) -> List[RenewalOutcome]:
        """Renew identities on a thread pool, keeping configuration order."""
        max_workers = min(len(identities), self.max_workers)
        logger.debug(f"Processing {len(identities)} identities in parallel (max workers: {max_workers})")

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self.renew_identity, identity, records.get(identity.identity_id))
                for identity in identities
            ]
            return [future.result() for future in futures]
