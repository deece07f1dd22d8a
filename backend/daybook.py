"""
In-memory snapshot of daily notes, events, recurring tasks and time blocks.

The planning algorithms read and mutate a DayBook; database.py loads one
from SQLite and writes it back in a single transaction.
"""
import uuid
from typing import Iterable, Iterator, Optional

from models import (
    DailyNote,
    Event,
    RecurringTask,
    Task,
    TaskCategory,
    TimeBlock,
    TimeBlockException,
)


class DayBook:
    def __init__(
        self,
        notes: Iterable[DailyNote] = (),
        events: Iterable[Event] = (),
        recurring_tasks: Iterable[RecurringTask] = (),
        time_blocks: Iterable[TimeBlock] = (),
        exceptions: Iterable[TimeBlockException] = (),
    ):
        self.notes: dict[tuple[str, str], DailyNote] = {}
        for note in notes:
            self.notes[(note.user_id, note.date)] = note
        self.events: list[Event] = list(events)
        self.recurring_tasks: list[RecurringTask] = list(recurring_tasks)
        self.time_blocks: list[TimeBlock] = list(time_blocks)
        self.exceptions: list[TimeBlockException] = list(exceptions)

        # Deletions pending persistence
        self.removed_task_ids: set[str] = set()
        self.removed_event_ids: set[str] = set()
        self.removed_recurring_ids: set[str] = set()

        self._link_subtasks()

    def _link_subtasks(self) -> None:
        """Attach parts to their parent task's subtasks list."""
        by_id = {task.id: task for task in self.all_tasks()}
        for task in by_id.values():
            parent = by_id.get(task.parent_task_id) if task.parent_task_id else None
            if parent is not None and all(sub.id != task.id for sub in parent.subtasks):
                parent.subtasks.append(task)
        for task in by_id.values():
            task.subtasks.sort(key=lambda sub: sub.part_number or 0)

    # Daily notes and tasks

    def note_for(self, user_id: str, day: str) -> Optional[DailyNote]:
        return self.notes.get((user_id, day))

    def get_or_create_note(self, user_id: str, day: str) -> DailyNote:
        note = self.note_for(user_id, day)
        if note is None:
            note = DailyNote(id=str(uuid.uuid4()), user_id=user_id, date=day)
            self.notes[(user_id, day)] = note
        return note

    def add_task(self, task: Task) -> Task:
        note = self.get_or_create_note(task.user_id, task.note_date)
        note.tasks.append(task)
        self.removed_task_ids.discard(task.id)
        return task

    def remove_task(self, task: Task) -> None:
        """Remove a task, its parts, and its link from a parent task."""
        for subtask in list(task.subtasks):
            self.remove_task(subtask)

        note = self.note_for(task.user_id, task.note_date)
        if note is not None:
            note.tasks = [t for t in note.tasks if t.id != task.id]

        if task.parent_task_id:
            parent = self.find_task(task.parent_task_id)
            if parent is not None:
                parent.subtasks = [t for t in parent.subtasks if t.id != task.id]

        self.removed_task_ids.add(task.id)

    def all_tasks(self, user_id: Optional[str] = None) -> Iterator[Task]:
        for (note_user, _), note in self.notes.items():
            if user_id is not None and note_user != user_id:
                continue
            yield from note.tasks

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((task for task in self.all_tasks() if task.id == task_id), None)

    def tasks_for_note(self, user_id: str, day: str) -> list[Task]:
        note = self.note_for(user_id, day)
        return list(note.tasks) if note else []

    def open_tasks_for_day(self, user_id: str, day: str) -> list[Task]:
        """
        Incomplete, not dropped tasks that belong to a day:
        due that day, or filed under "today" in that day's note.
        """
        return [
            task for task in self.all_tasks(user_id)
            if not task.completed
            and not task.dropped
            and (task.due_date == day or (task.category == TaskCategory.TODAY and task.note_date == day))
        ]

    def planned_tasks_for(self, user_id: str, day: str) -> list[Task]:
        return [task for task in self.open_tasks_for_day(user_id, day) if task.fixed_time]

    def unplanned_tasks_for(self, user_id: str, day: str) -> list[Task]:
        return [task for task in self.open_tasks_for_day(user_id, day) if not task.fixed_time]

    # Recurring task lookups

    def find_recurring_task(self, rule_id: str) -> Optional[RecurringTask]:
        return next((rule for rule in self.recurring_tasks if rule.id == rule_id), None)

    def add_recurring_task(self, rule: RecurringTask) -> RecurringTask:
        self.recurring_tasks.append(rule)
        return rule

    def remove_recurring_task(self, rule: RecurringTask) -> None:
        self.recurring_tasks = [r for r in self.recurring_tasks if r.id != rule.id]
        self.removed_recurring_ids.add(rule.id)

    def task_for_rule_and_date(self, rule: RecurringTask, day: str) -> Optional[Task]:
        return next(
            (task for task in self.all_tasks() if task.recurring_task_id == rule.id and task.note_date == day),
            None,
        )

    def has_incomplete_task_for_rule(self, rule: RecurringTask) -> bool:
        return any(
            task.recurring_task_id == rule.id and not task.completed and not task.dropped
            for task in self.all_tasks()
        )

    def future_tasks_for_rule(self, rule: RecurringTask, from_date: str) -> list[Task]:
        return [
            task for task in self.all_tasks()
            if task.recurring_task_id == rule.id and task.note_date >= from_date
        ]

    def rules_due_for_generation(self, day: str, user_id: Optional[str] = None) -> list[RecurringTask]:
        """Active rules whose date range covers day and that have not been generated up to it."""
        return [
            rule for rule in self.recurring_tasks
            if rule.is_active
            and (user_id is None or rule.user_id == user_id)
            and rule.start_date <= day
            and (rule.end_date is None or rule.end_date >= day)
            and (rule.last_generated_date is None or rule.last_generated_date < day)
        ]

    # Events

    def events_for(self, user_id: str, day: str) -> list[Event]:
        return [event for event in self.events if event.user_id == user_id and event.date == day]

    def find_event(self, event_id: str) -> Optional[Event]:
        return next((event for event in self.events if event.id == event_id), None)

    def add_event(self, event: Event) -> Event:
        self.events.append(event)
        return event

    def remove_event(self, event: Event) -> None:
        self.events = [e for e in self.events if e.id != event.id]
        self.removed_event_ids.add(event.id)

    # Time blocks

    def find_time_block(self, block_id: str) -> Optional[TimeBlock]:
        return next((block for block in self.time_blocks if block.id == block_id), None)

    def add_time_block(self, block: TimeBlock) -> TimeBlock:
        self.time_blocks.append(block)
        return block

    def active_time_blocks(self, user_id: str) -> list[TimeBlock]:
        return [block for block in self.time_blocks if block.user_id == user_id and block.is_active]

    def exceptions_for(self, user_id: str, day: str) -> list[TimeBlockException]:
        block_ids = {block.id for block in self.time_blocks if block.user_id == user_id}
        return [exc for exc in self.exceptions if exc.time_block_id in block_ids and exc.date == day]

    def set_exception(self, exception: TimeBlockException) -> TimeBlockException:
        """Store an exception, replacing any earlier one for the same block and date."""
        for index, existing in enumerate(self.exceptions):
            if existing.time_block_id == exception.time_block_id and existing.date == exception.date:
                exception.id = existing.id
                self.exceptions[index] = exception
                return exception
        self.exceptions.append(exception)
        return exception
