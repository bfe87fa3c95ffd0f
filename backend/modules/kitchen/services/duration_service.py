# backend/modules/kitchen/services/duration_service.py

"""
Pure duration arithmetic shared by orders and timers.

"now" is always passed in. Nothing here reads a clock or keeps state, so the
same inputs always classify the same way on every engine instance.
"""

import math
from datetime import datetime

from ..enums.kitchen_enums import DeadlineFlag, CountdownLevel

DEFAULT_URGENT_THRESHOLD_MINUTES = 5
DEFAULT_WARNING_SECONDS = 120
DEFAULT_CRITICAL_SECONDS = 30


def elapsed_seconds(start: datetime, now: datetime) -> int:
    """Whole seconds since ``start``, never negative"""
    return max(0, int((now - start).total_seconds()))


def remaining_seconds(target: datetime, now: datetime) -> int:
    """Whole seconds until ``target``; negative once it has passed"""
    return int((target - now).total_seconds())


def minutes_from_seconds(seconds: int) -> int:
    """
    Convert a signed second count to whole minutes.

    Partial minutes round away from zero so the result is zero only when the
    seconds are, and its sign always matches: 59 -> 1, -10 -> -1, 0 -> 0.
    """
    if seconds >= 0:
        return math.ceil(seconds / 60)
    return -math.ceil(-seconds / 60)


def elapsed_minutes(start: datetime, now: datetime) -> int:
    """Floor of the elapsed time in minutes, clamped to 0 if now < start"""
    return elapsed_seconds(start, now) // 60


def remaining_minutes(target: datetime, now: datetime) -> int:
    return minutes_from_seconds(remaining_seconds(target, now))


def is_urgent(
    remaining_minutes: int, threshold: int = DEFAULT_URGENT_THRESHOLD_MINUTES
) -> bool:
    return 0 < remaining_minutes <= threshold


def is_overdue(remaining_minutes: int, completed: bool = False) -> bool:
    return remaining_minutes <= 0 and not completed


def format_countdown(total_seconds: int) -> str:
    """Render seconds as ``m:ss`` with a leading ``-`` when negative"""
    total_seconds = int(total_seconds)
    sign = "-" if total_seconds < 0 else ""
    magnitude = abs(total_seconds)
    return f"{sign}{magnitude // 60}:{magnitude % 60:02d}"


def progress_percent(elapsed: float, duration: float) -> float:
    """Share of ``duration`` already elapsed, between 0 and 100"""
    if duration <= 0:
        return 100.0
    return max(0.0, min(100.0, elapsed / duration * 100))


def classify_deadline(
    remaining_minutes: int,
    completed: bool = False,
    urgent_threshold: int = DEFAULT_URGENT_THRESHOLD_MINUTES,
) -> DeadlineFlag:
    if completed:
        return DeadlineFlag.DONE
    if is_overdue(remaining_minutes):
        return DeadlineFlag.OVERDUE
    if is_urgent(remaining_minutes, urgent_threshold):
        return DeadlineFlag.URGENT
    return DeadlineFlag.ON_TRACK


def countdown_level(
    remaining_seconds: int,
    warning_seconds: int = DEFAULT_WARNING_SECONDS,
    critical_seconds: int = DEFAULT_CRITICAL_SECONDS,
) -> CountdownLevel:
    """Colour band the timer board uses for a countdown"""
    if remaining_seconds <= critical_seconds:
        return CountdownLevel.CRITICAL
    if remaining_seconds <= warning_seconds:
        return CountdownLevel.WARNING
    return CountdownLevel.NORMAL
