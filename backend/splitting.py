"""
Splitting tasks that do not fit into a single free slot.

propose_split() only computes a proposal; split_task() materialises parts
as new tasks and merge_subtasks() folds them back into the parent.
"""
import logging
import uuid
from typing import Sequence, Union
from pydantic import ValidationError

from config import SCHEDULE_WINDOW, ScheduleWindow
from daybook import DayBook
from intervals import add_days
from models import Slot, SplitPart, SplitProposal, Task
from slots import Insufficient, fill_slots, find_available_slots, total_minutes

logger = logging.getLogger(__name__)


class InvalidSplitError(ValueError):
    """The requested split cannot be applied to the task."""


def find_slots_for_day(
    book: DayBook,
    user_id: str,
    day: str,
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> list[Slot]:
    return find_available_slots(book.events_for(user_id, day), book.planned_tasks_for(user_id, day), window)


def propose_split(
    book: DayBook,
    task: Task,
    day: str,
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> SplitProposal:
    """
    Propose how to place a task's estimated time across the day's free slots.

    Not being able to split is a normal outcome (can_split=False with a
    reason), e.g. when the task fits a single slot or there is not enough
    time today and tomorrow together.
    """
    needed = task.estimated_minutes
    if needed is None or needed <= 0:
        return SplitProposal(can_split=False, reason="Task has no estimated duration")

    slots = find_slots_for_day(book, task.user_id, day, window)

    for slot in slots:
        if slot.duration_minutes >= needed:
            return SplitProposal(can_split=False, reason="Task fits in a single slot", suggested_slot=slot)

    available_today = total_minutes(slots)

    if available_today < needed:
        tomorrow = add_days(day, 1)
        tomorrow_slots = find_slots_for_day(book, task.user_id, tomorrow, window)
        available_tomorrow = total_minutes(tomorrow_slots)

        today_fill = fill_slots(slots, needed, day, window)
        parts = list(today_fill.parts)
        if isinstance(today_fill, Insufficient):
            tomorrow_fill = fill_slots(tomorrow_slots, today_fill.shortfall, tomorrow, window)
            if isinstance(tomorrow_fill, Insufficient):
                return SplitProposal(
                    can_split=False,
                    reason=(
                        f"Not enough time available (need {needed} min, have {available_today} min today"
                        f" + {available_tomorrow} min tomorrow)"
                    ),
                )
            parts.extend(tomorrow_fill.parts)

        return SplitProposal(
            can_split=True,
            reason="Not enough time today, split across days",
            parts=parts,
            overflow_to_next_day=True,
        )

    fill = fill_slots(slots, needed, day, window)
    return SplitProposal(can_split=True, reason="Task can be split across available slots", parts=fill.parts)


def _validate_parts(parts: Sequence[Union[SplitPart, dict]]) -> list[SplitPart]:
    validated = []
    for part in parts:
        if isinstance(part, SplitPart):
            validated.append(part)
            continue
        try:
            validated.append(SplitPart.model_validate(part))
        except ValidationError as e:
            raise InvalidSplitError(
                "Each part must have start_time (HH:MM), a positive duration_minutes and date (YYYY-MM-DD)"
            ) from e
    return validated


def split_task(book: DayBook, task: Task, parts: Sequence[Union[SplitPart, dict]]) -> list[Task]:
    """
    Replace a task's slot with parts, one new task per part.
    Parts land in the daily note of their own date, which is created if needed.
    The parent keeps its title and estimate but loses its fixed time.
    """
    if task.has_subtasks():
        raise InvalidSplitError("Task is already split")
    if task.is_part:
        raise InvalidSplitError("A task part cannot be split again")
    if not parts:
        raise InvalidSplitError("At least one part is required")

    subtasks = []
    for number, part in enumerate(_validate_parts(parts), start=1):
        subtask = Task(
            id=str(uuid.uuid4()),
            user_id=task.user_id,
            note_date=part.date,
            title=f"{task.title} (part {number})",
            category=task.category,
            parent_task_id=task.id,
            is_part=True,
            part_number=number,
            estimated_minutes=part.duration_minutes,
            fixed_time=part.start_time,
            tags=list(task.tags),
        )
        book.add_task(subtask)
        task.subtasks.append(subtask)
        subtasks.append(subtask)

    task.fixed_time = None
    logger.info("Split task %s into %d parts", task.id, len(subtasks))
    return subtasks


def merge_subtasks(book: DayBook, parent: Task) -> Task:
    """Fold parts back into the parent, summing their estimates."""
    if not parent.has_subtasks():
        return parent

    total = 0
    for subtask in list(parent.subtasks):
        total += subtask.estimated_minutes or 0
        book.remove_task(subtask)
    parent.subtasks = []

    if total > 0:
        parent.estimated_minutes = total

    logger.info("Merged parts back into task %s (%d min)", parent.id, total)
    return parent
