"""
Duplicate checks used when merging extracted items into a day.
Text is compared after stripping whitespace and lower-casing.
"""
from typing import Iterable, Optional

from intervals import overlaps, time_range
from models import Event


def normalize_text(value: str) -> str:
    return value.strip().lower()


def is_task_duplicate(new_title: str, existing_titles: Iterable[str]) -> bool:
    normalized = normalize_text(new_title)
    return any(normalize_text(title) == normalized for title in existing_titles)


def is_content_duplicate(new_content: str, existing_contents: Iterable[str]) -> bool:
    """Same check for journal entries and notes."""
    normalized = normalize_text(new_content)
    return any(normalize_text(content) == normalized for content in existing_contents)


def times_overlap(
    start1: Optional[str],
    end1: Optional[str],
    start2: Optional[str],
    end2: Optional[str],
) -> bool:
    """Ranges without a start never overlap; a missing end means one hour."""
    first = time_range(start1, end1)
    second = time_range(start2, end2)
    if first is None or second is None:
        return False
    return overlaps(first, second)


def is_event_duplicate(
    new_title: str,
    new_start: Optional[str],
    new_end: Optional[str],
    existing_events: Iterable[Event],
) -> bool:
    """An event is a duplicate when an existing one has the same title and overlapping times."""
    normalized = normalize_text(new_title)
    for existing in existing_events:
        if normalize_text(existing.title) != normalized:
            continue
        if times_overlap(new_start, new_end, existing.start_time, existing.end_time):
            return True
    return False
