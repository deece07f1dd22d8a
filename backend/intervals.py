"""
Time-of-day arithmetic shared by conflict detection, slot finding,
duplicate detection and layout.
Times are HH:MM strings, intervals are (start, end) minute pairs, end exclusive.
"""
from datetime import date, timedelta
from typing import Optional

from models import Event, Task

DEFAULT_TASK_MINUTES = 30
DEFAULT_EVENT_MINUTES = 60
MINUTES_PER_DAY = 24 * 60


def to_minutes(time_str: str) -> int:
    """Convert HH:MM (seconds ignored) to minutes after midnight."""
    hours, minutes = time_str.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    """Format minutes after midnight as HH:MM."""
    return f"{total // 60:02d}:{total % 60:02d}"


def add_days(day: str, days: int) -> str:
    """Shift an ISO date by a number of days, negative for earlier."""
    return (date.fromisoformat(day) + timedelta(days=days)).isoformat()


def task_window(task: Task) -> Optional[tuple[int, int]]:
    """Occupied interval of a fixed-time task, None if the task is unscheduled."""
    if not task.fixed_time:
        return None
    start = to_minutes(task.fixed_time)
    duration = task.estimated_minutes if task.estimated_minutes is not None else DEFAULT_TASK_MINUTES
    return start, start + duration


def event_window(event: Event) -> Optional[tuple[int, int]]:
    return time_range(event.start_time, event.end_time)


def time_range(start: Optional[str], end: Optional[str]) -> Optional[tuple[int, int]]:
    """Interval for a start/end pair; a missing end means one hour."""
    if not start:
        return None
    start_minutes = to_minutes(start)
    end_minutes = to_minutes(end) if end else start_minutes + DEFAULT_EVENT_MINUTES
    return start_minutes, end_minutes


def overlaps(first: tuple[int, int], second: tuple[int, int]) -> bool:
    # Touching endpoints do not overlap
    return first[0] < second[1] and first[1] > second[0]
