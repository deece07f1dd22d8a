"""
Planning mode: the data a day's planning view needs, PATCH-style planning
field updates, and merging an AI-proposed schedule back into tasks.
"""
from datetime import date, datetime
from typing import Any, Optional
from pydantic import ValidationError

from block_matching import first_available
from config import SCHEDULE_WINDOW, ScheduleWindow
from conflicts import find_conflicts
from daybook import DayBook
from models import PlanningSnapshot, ProposedScheduleItem, ScheduleProposal, Task
from time_blocks import active_blocks_for


def planning_snapshot(
    book: DayBook,
    user_id: str,
    day: str,
    now: datetime,
    window: ScheduleWindow = SCHEDULE_WINDOW,
) -> PlanningSnapshot:
    """Unplanned and planned tasks, events, blocks and conflicts for one day."""
    unplanned = book.unplanned_tasks_for(user_id, day)
    planned = book.planned_tasks_for(user_id, day)
    events = book.events_for(user_id, day)
    blocks = active_blocks_for(book.active_time_blocks(user_id), book.exceptions_for(user_id, day), user_id, day)

    matching = {}
    for task in unplanned:
        block = first_available(task, blocks, now)
        if block is not None:
            matching[task.id] = block

    return PlanningSnapshot(
        date=day,
        unplanned_tasks=unplanned,
        planned_tasks=planned,
        events=events,
        active_blocks=blocks,
        conflicts=find_conflicts(planned, events),
        matching_blocks=matching,
    )


def update_planning_fields(task: Task, data: dict[str, Any]) -> Task:
    """
    Apply planning fields present in data; absent keys are left alone and
    an explicit None clears the field.
    """
    if "estimated_minutes" in data:
        value = data["estimated_minutes"]
        task.estimated_minutes = int(value) if value is not None else None

    if "fixed_time" in data:
        task.fixed_time = data["fixed_time"] or None

    if "can_combine_with_events" in data:
        task.can_combine_with_events = data["can_combine_with_events"]

    if "needs_full_focus" in data:
        task.needs_full_focus = bool(data["needs_full_focus"])

    return task


def normalize_schedule_response(result: dict[str, Any]) -> ScheduleProposal:
    """
    Turn the schedule service's JSON into a ScheduleProposal.
    Keeps the first valid item per task id and drops items without one.
    Items with an unusable time or duration are dropped with a warning.
    Accepts camelCase keys as the service sends them.
    """
    schedule = []
    seen = set()

    raw_warnings = result.get("warnings")
    warnings = [str(warning) for warning in raw_warnings] if isinstance(raw_warnings, list) else []

    items = result.get("schedule")
    if not isinstance(items, list):
        items = []

    for item in items:
        if not isinstance(item, dict):
            continue
        task_id = item.get("taskId") or item.get("task_id")
        if not task_id:
            continue
        task_id = str(task_id)
        if task_id in seen:
            continue

        duration = item.get("durationMinutes", item.get("duration"))
        combined_with = item.get("combinedWithEventId")
        try:
            proposed = ProposedScheduleItem(
                task_id=task_id,
                suggested_time=item.get("suggestedTime") or None,
                duration_minutes=int(duration) if duration is not None else 30,
                combined_with_event_id=str(combined_with) if combined_with is not None else None,
                reasoning=str(item.get("reasoning") or ""),
            )
        except (ValueError, TypeError, ValidationError):
            warnings.append(f"Skipped invalid schedule item for task {task_id}")
            continue

        seen.add(task_id)
        schedule.append(proposed)

    return ScheduleProposal(schedule=schedule, warnings=warnings)


def accept_schedule(
    book: DayBook,
    user_id: str,
    items: list[ProposedScheduleItem],
    today: Optional[str] = None,
) -> list[Task]:
    """
    Apply accepted schedule items to the user's tasks.
    Unknown tasks and tasks of other users are skipped.
    Returns the updated tasks.
    """
    today = today or date.today().isoformat()
    updated = []

    for item in items:
        task = book.find_task(item.task_id)
        if task is None or task.user_id != user_id:
            continue

        if item.suggested_time:
            task.fixed_time = item.suggested_time

        # Overdue tasks move to today
        if task.due_date is not None and task.due_date < today:
            task.due_date = today

        task.estimated_minutes = item.duration_minutes

        if item.combined_with_event_id:
            combined = list(task.can_combine_with_events or [])
            if item.combined_with_event_id not in combined:
                combined.append(item.combined_with_event_id)
                task.can_combine_with_events = combined

        updated.append(task)

    return updated
