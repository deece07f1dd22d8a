"""Vertical positions for a day view, as percentages of the schedule window."""
from typing import Optional

from config import SCHEDULE_WINDOW, ScheduleWindow
from intervals import MINUTES_PER_DAY, from_minutes, to_minutes
from models import Event, ScheduleItem

MIN_VISUAL_MINUTES = 30


def top_percent(time_str: Optional[str], window: ScheduleWindow = SCHEDULE_WINDOW) -> float:
    if not time_str:
        return 0.0
    hours, minutes = divmod(to_minutes(time_str), 60)
    hours_from_start = max(0, hours - window.start_hour) + minutes / 60
    return hours_from_start / window.total_hours * 100


def height_percent(
    start: Optional[str],
    end: Optional[str],
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> float:
    """Height of an item; one hour when a bound is missing, never less than 30 minutes."""
    if not start or not end:
        return 1 / window.total_hours * 100
    duration = max(MIN_VISUAL_MINUTES, to_minutes(end) - to_minutes(start))
    return (duration / 60) / window.total_hours * 100


def build_schedule(events: list[Event], day: str, window: ScheduleWindow = SCHEDULE_WINDOW) -> list[ScheduleItem]:
    """The day's events in start-time order, with their layout."""
    day_events = sorted(
        (event for event in events if event.date == day),
        key=lambda event: event.start_time or "",
    )
    return [
        ScheduleItem(
            id=event.id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            date=event.date,
            top_percent=top_percent(event.start_time, window),
            height_percent=height_percent(event.start_time, event.end_time, window),
        )
        for event in day_events
    ]


def build_schedule_from_analysis(
    analysis_events: list[dict],
    day: str,
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> list[ScheduleItem]:
    """
    Layout for externally extracted events (dicts with startTime, and
    optionally endTime or duration in minutes, date and title).
    Entries without a valid start time or dated another day are skipped.
    """
    result = []
    for raw in analysis_events:
        start_time = raw.get("startTime")
        if not start_time:
            continue
        event_date = raw.get("date") or day
        if event_date != day:
            continue
        try:
            start_minutes = to_minutes(start_time)
        except (ValueError, AttributeError):
            continue

        end_time = raw.get("endTime")
        if not end_time and raw.get("duration") is not None:
            end_time = from_minutes((start_minutes + int(raw["duration"])) % MINUTES_PER_DAY)

        result.append(ScheduleItem(
            title=raw.get("title") or "",
            start_time=start_time,
            end_time=end_time,
            date=event_date,
            top_percent=top_percent(start_time, window),
            height_percent=height_percent(start_time, end_time, window),
        ))

    result.sort(key=lambda item: item.start_time)
    return result
