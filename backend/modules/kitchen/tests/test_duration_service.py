"""
Tests for the pure duration helpers and the clock sources.
"""

import pytest
from datetime import datetime, timedelta, timezone

from modules.kitchen.enums.kitchen_enums import DeadlineFlag, CountdownLevel
from modules.kitchen.services import duration_service
from modules.kitchen.services.clock import ManualClock, SystemClock

NOON = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestElapsedAndRemaining:
    """Elapsed/remaining minute arithmetic"""

    def test_elapsed_minutes_floors(self):
        assert duration_service.elapsed_minutes(NOON, NOON + timedelta(seconds=119)) == 1
        assert duration_service.elapsed_minutes(NOON, NOON + timedelta(minutes=7)) == 7

    def test_elapsed_minutes_clamped_when_now_before_start(self):
        assert duration_service.elapsed_minutes(NOON, NOON - timedelta(minutes=3)) == 0
        assert duration_service.elapsed_seconds(NOON, NOON - timedelta(seconds=5)) == 0

    def test_elapsed_minutes_never_decreases(self):
        previous = 0
        for seconds in range(0, 900, 17):
            current = duration_service.elapsed_minutes(NOON, NOON + timedelta(seconds=seconds))
            assert current >= previous
            previous = current

    def test_remaining_minutes_sign_matches_seconds(self):
        target = NOON
        assert duration_service.remaining_minutes(target, NOON - timedelta(seconds=59)) == 1
        assert duration_service.remaining_minutes(target, NOON - timedelta(minutes=5)) == 5
        assert duration_service.remaining_minutes(target, NOON) == 0
        assert duration_service.remaining_minutes(target, NOON + timedelta(seconds=10)) == -1
        assert duration_service.remaining_minutes(target, NOON + timedelta(seconds=125)) == -3

    def test_minutes_from_seconds(self):
        assert duration_service.minutes_from_seconds(0) == 0
        assert duration_service.minutes_from_seconds(60) == 1
        assert duration_service.minutes_from_seconds(61) == 2
        assert duration_service.minutes_from_seconds(-60) == -1
        assert duration_service.minutes_from_seconds(-61) == -2


class TestClassification:
    """Urgent/overdue flags derived from remaining minutes"""

    def test_is_urgent_window(self):
        assert duration_service.is_urgent(5)
        assert duration_service.is_urgent(1)
        assert not duration_service.is_urgent(6)
        assert not duration_service.is_urgent(0)
        assert not duration_service.is_urgent(-2)

    def test_is_urgent_custom_threshold(self):
        assert duration_service.is_urgent(8, threshold=10)

    def test_is_overdue(self):
        assert duration_service.is_overdue(0)
        assert duration_service.is_overdue(-4)
        assert not duration_service.is_overdue(1)
        assert not duration_service.is_overdue(-4, completed=True)

    def test_classify_deadline(self):
        assert duration_service.classify_deadline(-3, completed=True) == DeadlineFlag.DONE
        assert duration_service.classify_deadline(-3) == DeadlineFlag.OVERDUE
        assert duration_service.classify_deadline(0) == DeadlineFlag.OVERDUE
        assert duration_service.classify_deadline(4) == DeadlineFlag.URGENT
        assert duration_service.classify_deadline(10) == DeadlineFlag.ON_TRACK

    def test_countdown_level(self):
        assert duration_service.countdown_level(300) == CountdownLevel.NORMAL
        assert duration_service.countdown_level(121) == CountdownLevel.NORMAL
        assert duration_service.countdown_level(120) == CountdownLevel.WARNING
        assert duration_service.countdown_level(30) == CountdownLevel.CRITICAL
        assert duration_service.countdown_level(-15) == CountdownLevel.CRITICAL


class TestFormatting:
    """Countdown strings and progress"""

    @pytest.mark.parametrize(
        "seconds,expected",
        [(-125, "-2:05"), (65, "1:05"), (0, "0:00"), (-10, "-0:10"), (600, "10:00")],
    )
    def test_format_countdown(self, seconds, expected):
        assert duration_service.format_countdown(seconds) == expected

    def test_progress_percent(self):
        assert duration_service.progress_percent(300, 600) == 50.0
        assert duration_service.progress_percent(700, 600) == 100.0
        assert duration_service.progress_percent(0, 600) == 0.0
        assert duration_service.progress_percent(10, 0) == 100.0


class TestClocks:
    """Clock sources"""

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc

    def test_manual_clock_advances(self):
        clock = ManualClock(NOON)
        clock.advance(seconds=30, minutes=2)
        assert clock.now() == NOON + timedelta(minutes=2, seconds=30)

    def test_manual_clock_rejects_going_backwards(self):
        clock = ManualClock(NOON)
        with pytest.raises(ValueError):
            clock.advance(seconds=-1)
        with pytest.raises(ValueError):
            clock.set(NOON - timedelta(seconds=1))

    def test_manual_clock_treats_naive_start_as_utc(self):
        clock = ManualClock(datetime(2024, 1, 1, 12, 0, 0))
        assert clock.now() == NOON
