from datetime import datetime, time
from typing import Optional, Union

from models import ActiveBlock, Task


def matching_blocks(task: Task, active_blocks: list[ActiveBlock]) -> list[ActiveBlock]:
    """Blocks sharing at least one tag with the task, in input order."""
    task_tag_ids = {tag.id for tag in task.tags}
    if not task_tag_ids:
        return []
    return [
        block for block in active_blocks
        if any(tag.id in task_tag_ids for tag in block.tags)
    ]


def first_available(
    task: Task,
    active_blocks: list[ActiveBlock],
    now: Union[datetime, time],
) -> Optional[ActiveBlock]:
    """
    The earliest matching block that has not ended yet.
    A block ending exactly now is over.
    """
    candidates = sorted(matching_blocks(task, active_blocks), key=lambda block: block.start_time or "")
    current = now.strftime("%H:%M")
    for block in candidates:
        if block.end_time is not None and block.end_time > current:
            return block
    return None
