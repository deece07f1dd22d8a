from typing import Literal, Union
from pydantic import BaseModel

from config import SCHEDULE_WINDOW, ScheduleWindow
from intervals import event_window, from_minutes, task_window
from models import Event, Slot, SplitPart, Task


class Filled(BaseModel):
    """The requested duration was fully placed."""
    kind: Literal["filled"] = "filled"
    parts: list[SplitPart] = []


class Insufficient(BaseModel):
    """Slots ran out; shortfall minutes are still unplaced."""
    kind: Literal["insufficient"] = "insufficient"
    parts: list[SplitPart] = []
    shortfall: int


FillResult = Union[Filled, Insufficient]


def find_available_slots(
    events: list[Event],
    planned_tasks: list[Task],
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> list[Slot]:
    """
    Free gaps inside the schedule window, in time order.

    Events (one hour when they have no end) and fixed-time tasks
    (estimated minutes, 30 by default) occupy time. Gaps shorter than
    window.min_slot_minutes are dropped.
    """
    occupied = []
    for event in events:
        interval = event_window(event)
        if interval is not None:
            occupied.append(interval)
    for task in planned_tasks:
        interval = task_window(task)
        if interval is not None:
            occupied.append(interval)
    occupied.sort(key=lambda interval: interval[0])

    slots = []
    cursor = window.start_minutes

    def emit(start: int, end: int) -> None:
        end = min(end, window.end_minutes)
        if end - start >= window.min_slot_minutes:
            slots.append(Slot(start_time=from_minutes(start), end_time=from_minutes(end), duration_minutes=end - start))

    for start, end in occupied:
        if start > cursor:
            emit(cursor, start)
        cursor = max(cursor, end)

    if cursor < window.end_minutes:
        emit(cursor, window.end_minutes)

    return slots


def total_minutes(slots: list[Slot]) -> int:
    return sum(slot.duration_minutes for slot in slots)


def fill_slots(
    slots: list[Slot],
    remaining: int,
    day: str,
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> FillResult:
    """
    Greedily place `remaining` minutes into time-ordered slots.

    A slot that could only take a fragment shorter than the minimum slot is
    skipped while at least a minimum slot's worth is still needed.
    """
    parts = []
    for slot in slots:
        if remaining <= 0:
            break
        use = min(slot.duration_minutes, remaining)
        if use <= 0:
            continue
        if use < window.min_slot_minutes and remaining >= window.min_slot_minutes:
            continue
        parts.append(SplitPart(start_time=slot.start_time, duration_minutes=use, date=day))
        remaining -= use

    if remaining > 0:
        return Insufficient(parts=parts, shortfall=remaining)
    return Filled(parts=parts)
