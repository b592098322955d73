"""Tests for deadline arithmetic."""

from datetime import datetime, timedelta

import pytest

from patrolwatch.core.deadlines import (
    effective_minutes,
    expiry,
    remaining,
    staggered_start,
    validate_timing,
)
from patrolwatch.core.errors import InvalidRequest

START = datetime(2026, 3, 2, 22, 0, 0)


class TestExpiry:
    """Test expiry()."""

    def test_normal_mode(self):
        assert expiry(START, 5) == START + timedelta(minutes=5)

    def test_test_mode_multiplier(self):
        # 5 minutes at 0.1 is 30 seconds
        assert expiry(START, 5, 0.1) == START + timedelta(seconds=30)

    def test_fractional_minutes(self):
        assert expiry(START, 0.5) == START + timedelta(seconds=30)

    def test_one_minute_in_test_mode(self):
        assert expiry(START, 1, 0.1) == START + timedelta(seconds=6)


class TestEffectiveMinutes:
    """Test effective_minutes()."""

    def test_checkpoint_override_wins(self):
        assert effective_minutes(3, 5) == 3.0

    @pytest.mark.parametrize("override", [None, 0, -2])
    def test_missing_or_non_positive_override_falls_back(self, override):
        assert effective_minutes(override, 5) == 5.0


class TestValidateTiming:
    """Test validate_timing()."""

    def test_accepts_positive_values(self):
        validate_timing(5, 0.1)

    @pytest.mark.parametrize("minutes,multiplier", [(0, 1.0), (-1, 1.0), (5, 0), (5, -0.5)])
    def test_rejects_non_positive(self, minutes, multiplier):
        with pytest.raises(InvalidRequest):
            validate_timing(minutes, multiplier)


class TestStaggerAndRemaining:
    """Test staggered_start() and remaining()."""

    def test_stagger_by_index(self):
        assert staggered_start(START, 0) == START
        assert staggered_start(START, 3) == START + timedelta(seconds=3)

    def test_remaining_counts_down(self):
        deadline = START + timedelta(seconds=30)
        assert remaining(START + timedelta(seconds=10), deadline) == timedelta(seconds=20)

    def test_remaining_never_negative(self):
        assert remaining(START + timedelta(minutes=1), START) == timedelta(0)
