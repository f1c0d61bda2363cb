"""Tests for RenewalPolicy expiry decisions."""

import pytest

from conftest import NOW
from token_manager.core.constants import SECONDS_PER_DAY
from token_manager.domain.policy import RenewalPolicy

DAY = SECONDS_PER_DAY


class TestNeedsRenewal:
    """needs_renewal is a pure function of (expires_at, now)."""

    @pytest.mark.parametrize("seconds_left", [7 * DAY + 1, 8 * DAY, 30 * DAY, 60 * DAY])
    def test_more_than_threshold_left_is_not_due(self, policy, seconds_left):
        assert policy.needs_renewal(NOW + seconds_left, now=NOW) is False

    @pytest.mark.parametrize("seconds_left", [7 * DAY - 1, 6 * DAY, 3 * DAY, 1, 0])
    def test_less_than_threshold_left_is_due(self, policy, seconds_left):
        assert policy.needs_renewal(NOW + seconds_left, now=NOW) is True

    @pytest.mark.parametrize("seconds_ago", [1, DAY, 90 * DAY])
    def test_expired_credential_is_always_due(self, policy, seconds_ago):
        assert policy.needs_renewal(NOW - seconds_ago, now=NOW) is True

    def test_exactly_threshold_left_is_not_due(self, policy):
        assert policy.needs_renewal(NOW + 7 * DAY, now=NOW) is False

    def test_same_inputs_same_answer(self, policy):
        expires_at = NOW + 5 * DAY
        answers = {policy.needs_renewal(expires_at, now=NOW) for _ in range(10)}
        assert answers == {True}

    def test_threshold_is_configurable(self):
        policy = RenewalPolicy(threshold_days=14)
        assert policy.needs_renewal(NOW + 10 * DAY, now=NOW) is True
        assert policy.needs_renewal(NOW + 15 * DAY, now=NOW) is False

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            RenewalPolicy(threshold_days=-1)

    def test_defaults_to_current_time(self, policy):
        # 1970 expiry is in the past whatever the wall clock says
        assert policy.needs_renewal(0) is True


class TestDaysUntilExpiration:

    def test_floors_partial_days(self, policy):
        assert policy.days_until_expiration(NOW + int(3.9 * DAY), now=NOW) == 3

    def test_whole_days(self, policy):
        assert policy.days_until_expiration(NOW + 60 * DAY, now=NOW) == 60

    def test_less_than_a_day_is_zero(self, policy):
        assert policy.days_until_expiration(NOW + DAY - 1, now=NOW) == 0

    @pytest.mark.parametrize("seconds_ago", [1, DAY // 2, DAY, 365 * DAY])
    def test_never_negative(self, policy, seconds_ago):
        assert policy.days_until_expiration(NOW - seconds_ago, now=NOW) == 0
