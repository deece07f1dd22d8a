from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class TaskCategory(str, Enum):
    TODAY = "today"
    SCHEDULED = "scheduled"
    SOMEDAY = "someday"


class Tag(BaseModel):
    id: str
    name: str
    color: Optional[str] = None


class Task(BaseModel):
    id: str
    user_id: str
    note_date: str  # Date of the owning daily note: YYYY-MM-DD
    title: str
    completed: bool = False
    completed_at: Optional[str] = None  # ISO format datetime string
    dropped: bool = False
    due_date: Optional[str] = None
    category: TaskCategory = TaskCategory.TODAY
    fixed_time: Optional[str] = None  # HH:MM
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    can_combine_with_events: Optional[list[str]] = None  # Event ids
    needs_full_focus: bool = False
    tags: list[Tag] = []
    recurring_task_id: Optional[str] = None
    parent_task_id: Optional[str] = None
    is_part: bool = False
    part_number: Optional[int] = None
    subtasks: list["Task"] = []

    def has_subtasks(self) -> bool:
        return len(self.subtasks) > 0

    def is_fully_completed(self) -> bool:
        """A split task counts as done only when every part is done."""
        if not self.subtasks:
            return self.completed
        return all(subtask.completed for subtask in self.subtasks)

    def progress(self) -> Optional[str]:
        """Progress of a split task as "done/total", None for unsplit tasks."""
        if not self.subtasks:
            return None
        done = sum(1 for subtask in self.subtasks if subtask.completed)
        return f"{done}/{len(self.subtasks)}"


class DailyNote(BaseModel):
    id: str
    user_id: str
    date: str
    tasks: list[Task] = []


class RecurringTask(BaseModel):
    id: str
    user_id: Optional[str] = None
    title: str
    recurrence_type: RecurrenceType = RecurrenceType.DAILY
    recurrence_days: Optional[list[int]] = None  # 0=Sunday .. 6=Saturday, custom only
    start_date: str
    end_date: Optional[str] = None
    last_generated_date: Optional[str] = None
    category: TaskCategory = TaskCategory.TODAY
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    fixed_time: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None


class Event(BaseModel):
    id: str
    user_id: str
    title: str
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None  # Missing end time counts as one hour
    allow_overlap: bool = False


class TimeBlock(BaseModel):
    id: str
    user_id: str
    name: str
    color: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    recurrence_type: RecurrenceType = RecurrenceType.DAILY
    recurrence_days: Optional[list[int]] = None
    anchor_date: str  # Weekly/monthly blocks repeat relative to this date
    tags: list[Tag] = []
    is_active: bool = True
    created_at: Optional[str] = None


class TimeBlockException(BaseModel):
    id: str
    time_block_id: str
    date: str
    is_skipped: bool = False
    override_start_time: Optional[str] = None
    override_end_time: Optional[str] = None


class ActiveBlock(BaseModel):
    """A time block resolved for one date, with any exception applied."""
    id: str
    name: str
    color: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    recurrence_type: RecurrenceType
    recurrence_days: Optional[list[int]] = None
    tags: list[Tag] = []
    is_exception: bool = False
    original_start_time: Optional[str] = None
    original_end_time: Optional[str] = None


class Slot(BaseModel):
    start_time: str
    end_time: str
    duration_minutes: int


class SplitPart(BaseModel):
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int = Field(gt=0)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")


class SplitProposal(BaseModel):
    can_split: bool
    reason: str
    parts: list[SplitPart] = []
    overflow_to_next_day: bool = False
    suggested_slot: Optional[Slot] = None


class Conflict(BaseModel):
    task: Task
    conflicting_event: Event


class ScheduleItem(BaseModel):
    id: Optional[str] = None
    title: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    date: Optional[str] = None
    top_percent: float
    height_percent: float


class ProposedScheduleItem(BaseModel):
    task_id: str
    suggested_time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    duration_minutes: int = Field(default=30, ge=0)
    combined_with_event_id: Optional[str] = None
    reasoning: str = ""


class ScheduleProposal(BaseModel):
    schedule: list[ProposedScheduleItem] = []
    warnings: list[str] = []


class PlanningSnapshot(BaseModel):
    date: str
    unplanned_tasks: list[Task] = []
    planned_tasks: list[Task] = []
    events: list[Event] = []
    active_blocks: list[ActiveBlock] = []
    conflicts: list[Conflict] = []
    matching_blocks: dict[str, ActiveBlock] = {}  # Unplanned task id -> first available block


# Request bodies

class TaskCreate(BaseModel):
    title: str
    date: Optional[str] = None  # Daily note date, defaults to today
    category: TaskCategory = TaskCategory.TODAY
    due_date: Optional[str] = None
    fixed_time: Optional[str] = None
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    needs_full_focus: bool = False
    tags: list[Tag] = []

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    completed: Optional[bool] = None
    dropped: Optional[bool] = None
    due_date: Optional[str] = None
    category: Optional[TaskCategory] = None
    tags: Optional[list[Tag]] = None

class TaskUpdateResult(BaseModel):
    task: Task
    next_task: Optional[Task] = None  # Instance generated by completing a recurring task

class PlanningUpdate(BaseModel):
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    fixed_time: Optional[str] = None
    can_combine_with_events: Optional[list[str]] = None
    needs_full_focus: Optional[bool] = None

class SplitRequest(BaseModel):
    parts: list[dict] = []  # Validated into SplitPart by the splitter

class ProposeSplitRequest(BaseModel):
    task_id: str
    date: str

class EventCreate(BaseModel):
    title: str
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    allow_overlap: bool = False

class RecurringTaskCreate(BaseModel):
    title: str
    recurrence_type: RecurrenceType = RecurrenceType.DAILY
    recurrence_days: Optional[list[int]] = None
    start_date: Optional[str] = None  # Defaults to today
    end_date: Optional[str] = None
    category: TaskCategory = TaskCategory.TODAY
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    fixed_time: Optional[str] = None
    link_task_id: Optional[str] = None  # Existing task that becomes today's instance

class TimeBlockCreate(BaseModel):
    name: str
    color: Optional[str] = None
    start_time: str
    end_time: str
    recurrence_type: RecurrenceType = RecurrenceType.DAILY
    recurrence_days: Optional[list[int]] = None
    anchor_date: Optional[str] = None  # Defaults to the creation date
    tags: list[Tag] = []

class TimeBlockExceptionCreate(BaseModel):
    date: str
    is_skipped: bool = False
    override_start_time: Optional[str] = None
    override_end_time: Optional[str] = None

class SyncRequest(BaseModel):
    date: Optional[str] = None

class GenerateScheduleRequest(BaseModel):
    date: str
    language: str = "en"
    work_until_time: Optional[str] = None  # Set for a rebuild of the rest of the day

class AcceptScheduleRequest(BaseModel):
    schedule: list[ProposedScheduleItem]
