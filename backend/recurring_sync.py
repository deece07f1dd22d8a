"""
Generating concrete task instances from recurring task definitions.

Generation is check-then-create: generate_task() refuses a second instance
for the same (rule, date), and the tasks table carries a unique index on
(recurring_task_id, note_date) for writers racing past that check.
"""
import logging
import uuid
from datetime import date, datetime
from typing import Optional

from daybook import DayBook
from models import RecurringTask, Task
from recurrence import matches, next_occurrence

logger = logging.getLogger(__name__)


def _advance_last_generated(rule: RecurringTask, day: str) -> None:
    # High-water mark only moves forward
    if rule.last_generated_date is None or day > rule.last_generated_date:
        rule.last_generated_date = day


def should_generate(book: DayBook, rule: RecurringTask, day: str) -> bool:
    """
    Check if a recurring task should generate an instance for day.
    Dates are compared as YYYY-MM-DD strings, so only the calendar day counts.
    """
    if day < rule.start_date:
        return False

    if rule.end_date is not None and day > rule.end_date:
        return False

    if rule.last_generated_date is not None and day <= rule.last_generated_date[:10]:
        return False

    # One open instance at a time
    if book.has_incomplete_task_for_rule(rule):
        return False

    return matches(rule, day)


def generate_task(book: DayBook, rule: RecurringTask, day: str) -> Optional[Task]:
    """
    Create the instance of a recurring task for day in that day's note.
    Returns None when the rule has no owner or an instance already exists.
    Does not touch rule.last_generated_date; callers advance it once they
    keep the result.
    """
    if rule.user_id is None:
        return None

    if book.task_for_rule_and_date(rule, day) is not None:
        return None

    task = Task(
        id=str(uuid.uuid4()),
        user_id=rule.user_id,
        note_date=day,
        title=rule.title,
        category=rule.category,
        estimated_minutes=rule.estimated_minutes,
        fixed_time=rule.fixed_time,
        recurring_task_id=rule.id,
    )
    return book.add_task(task)


def sync_for_date(book: DayBook, day: str, user_id: Optional[str] = None) -> list[Task]:
    """Generate the day's instances for every due rule, optionally for one user only."""
    generated = []
    for rule in book.rules_due_for_generation(day, user_id):
        if not should_generate(book, rule, day):
            continue
        task = generate_task(book, rule, day)
        if task is not None:
            generated.append(task)
            _advance_last_generated(rule, day)

    logger.info("Recurring sync for %s generated %d task(s)", day, len(generated))
    return generated


def delete_future_generated_tasks(book: DayBook, rule: RecurringTask, from_date: str) -> int:
    """Remove the rule's instances dated from_date or later. Returns how many were removed."""
    tasks = book.future_tasks_for_rule(rule, from_date)
    for task in tasks:
        book.remove_task(task)
    return len(tasks)


def complete_task(
    book: DayBook,
    task: Task,
    completed: bool,
    today: Optional[str] = None,
) -> Optional[Task]:
    """
    Set a task's completion state.

    Completing an instance of a recurring task generates the rule's next
    occurrence after today. Returns that generated task, or None.
    """
    was_completed = task.completed
    task.completed = completed

    if completed and task.completed_at is None:
        task.completed_at = datetime.now().isoformat()
    elif not completed:
        task.completed_at = None

    if not completed or was_completed or task.recurring_task_id is None:
        return None

    rule = book.find_recurring_task(task.recurring_task_id)
    if rule is None or not rule.is_active:
        return None

    next_date = next_occurrence(rule, today=today or date.today().isoformat())
    if next_date is None:
        return None
    if rule.last_generated_date is not None and next_date <= rule.last_generated_date:
        return None

    generated = generate_task(book, rule, next_date)
    if generated is not None:
        _advance_last_generated(rule, next_date)
        logger.info("Generated next occurrence of %s for %s", rule.id, next_date)
    return generated
