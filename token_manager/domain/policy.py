"""Renewal policy for long-lived credentials.

Pure decision logic: given an absolute expiry and the current time, decide
whether a credential is due for renewal. No I/O and no hidden state, so the
answer only depends on (expires_at, now).
"""

import math
import time
from typing import Optional

from token_manager.core.constants import RENEWAL_THRESHOLD_DAYS, SECONDS_PER_DAY


class RenewalPolicy:
    """Decides when a stored credential must be renewed.

    Example:
        ```python
        policy = RenewalPolicy(threshold_days=7)
        if policy.needs_renewal(record.expires_at):
            ...
        ```
    """

    def __init__(self, threshold_days: int = RENEWAL_THRESHOLD_DAYS):
        """Initialize the policy.

        Args:
            threshold_days: Renew when fewer than this many days remain
        """
        if threshold_days < 0:
            raise ValueError(f"threshold_days must be >= 0, got {threshold_days}")
        self.threshold_days = threshold_days

    @property
    def threshold_seconds(self) -> int:
        return self.threshold_days * SECONDS_PER_DAY

    def seconds_remaining(self, expires_at: int, now: Optional[float] = None) -> float:
        """Signed seconds until expiry (negative once expired)."""
        if now is None:
            now = time.time()
        return expires_at - now

    def needs_renewal(self, expires_at: int, now: Optional[float] = None) -> bool:
        """Check whether a credential is inside the renewal window.

        Args:
            expires_at: Absolute expiry, unix seconds
            now: Current time, unix seconds (defaults to time.time())

        Returns:
            True when less than the threshold remains, including when the
            credential has already expired
        """
        return self.seconds_remaining(expires_at, now) < self.threshold_seconds

    def days_until_expiration(self, expires_at: int, now: Optional[float] = None) -> int:
        """Whole days left before expiry, for display.

        Args:
            expires_at: Absolute expiry, unix seconds
            now: Current time, unix seconds (defaults to time.time())

        Returns:
            Floor of remaining days, clamped to 0
        """
        days = math.floor(self.seconds_remaining(expires_at, now) / SECONDS_PER_DAY)
        return max(days, 0)
