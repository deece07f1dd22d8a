from datetime import date, timedelta
from typing import Optional

from models import RecurrenceType, RecurringTask

# Weekday numbers use 0=Sunday .. 6=Saturday
WEEKDAYS = {1, 2, 3, 4, 5}


def day_of_week(day: date) -> int:
    return day.isoweekday() % 7


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def matches_pattern(
    recurrence_type: RecurrenceType,
    recurrence_days: Optional[list[int]],
    anchor_date: Optional[str],
    target_date: str,
) -> bool:
    """
    Check if a recurrence pattern includes a specific date.
    anchor_date and target_date are in YYYY-MM-DD format.
    Weekly and monthly patterns repeat on the anchor's weekday / day of month;
    custom patterns list weekday numbers (0=Sunday).
    Returns False for unparseable dates.
    """
    target = _parse_date(target_date)
    if target is None:
        return False

    if recurrence_type == RecurrenceType.DAILY:
        return True

    if recurrence_type == RecurrenceType.WEEKDAYS:
        return day_of_week(target) in WEEKDAYS

    if recurrence_type == RecurrenceType.CUSTOM:
        if not recurrence_days:
            return False
        return day_of_week(target) in recurrence_days

    anchor = _parse_date(anchor_date)
    if anchor is None:
        return False

    if recurrence_type == RecurrenceType.WEEKLY:
        return day_of_week(target) == day_of_week(anchor)

    if recurrence_type == RecurrenceType.MONTHLY:
        # No month-end adjustment: an anchor on the 31st skips shorter months
        return target.day == anchor.day

    return False


def matches(rule: RecurringTask, target_date: str) -> bool:
    """Check if a recurring task's pattern includes target_date."""
    return matches_pattern(rule.recurrence_type, rule.recurrence_days, rule.start_date, target_date)


def next_occurrence(rule: RecurringTask, today: Optional[str] = None, horizon_days: int = 365) -> Optional[str]:
    """
    Find the first date strictly after today that matches the rule.
    Scans one day at a time for at most horizon_days days and gives up
    once the rule's end_date is passed.
    Returns the date in YYYY-MM-DD format, or None.
    """
    start = _parse_date(today) if today else date.today()
    if start is None:
        return None

    for offset in range(1, horizon_days + 1):
        candidate = (start + timedelta(days=offset)).isoformat()
        if rule.end_date and candidate > rule.end_date:
            return None
        if matches(rule, candidate):
            return candidate

    return None
