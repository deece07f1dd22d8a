from models import Conflict, Event, Task
from intervals import event_window, overlaps, task_window


def conflicts(task: Task, event: Event) -> bool:
    """Check if a fixed-time task overlaps an event."""
    task_interval = task_window(task)
    event_interval = event_window(event)
    if task_interval is None or event_interval is None:
        return False
    return overlaps(task_interval, event_interval)


def find_conflicts(tasks: list[Task], events: list[Event]) -> list[Conflict]:
    """
    Flag open fixed-time tasks that overlap an event.
    Only the first conflicting event is reported per task.
    """
    result = []
    for task in tasks:
        if task.fixed_time is None or task.completed:
            continue
        for event in events:
            if conflicts(task, event):
                result.append(Conflict(task=task, conflicting_event=event))
                break
    return result
