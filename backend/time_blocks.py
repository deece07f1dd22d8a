from typing import Iterable

from models import ActiveBlock, TimeBlock, TimeBlockException
from recurrence import matches_pattern


def is_active_on(block: TimeBlock, target_date: str) -> bool:
    """Check if a time block's recurrence pattern includes target_date."""
    return matches_pattern(block.recurrence_type, block.recurrence_days, block.anchor_date, target_date)


def active_blocks_for(
    blocks: Iterable[TimeBlock],
    exceptions: Iterable[TimeBlockException],
    user_id: str,
    target_date: str,
) -> list[ActiveBlock]:
    """
    Resolve the time blocks a user has on target_date.

    Inactive blocks and blocks whose pattern does not include the date are
    left out, as are blocks skipped by an exception for that date. An
    exception with override times replaces the block's start/end; the
    original times are kept alongside.
    Sorted by effective start time.
    """
    exception_map = {exc.time_block_id: exc for exc in exceptions if exc.date == target_date}
    result = []

    for block in blocks:
        if block.user_id != user_id or not block.is_active:
            continue
        if not is_active_on(block, target_date):
            continue

        exception = exception_map.get(block.id)
        if exception is not None and exception.is_skipped:
            continue

        has_override = exception is not None and (
            exception.override_start_time is not None or exception.override_end_time is not None
        )
        start_time = block.start_time
        end_time = block.end_time
        if has_override:
            start_time = exception.override_start_time or block.start_time
            end_time = exception.override_end_time or block.end_time

        result.append(ActiveBlock(
            id=block.id,
            name=block.name,
            color=block.color,
            start_time=start_time,
            end_time=end_time,
            recurrence_type=block.recurrence_type,
            recurrence_days=block.recurrence_days,
            tags=list(block.tags),
            is_exception=exception is not None,
            original_start_time=block.start_time if has_override else None,
            original_end_time=block.end_time if has_override else None,
        ))

    # HH:MM strings sort chronologically
    result.sort(key=lambda active: active.start_time or "")
    return result
