from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from datetime import date, datetime
from typing import Optional
import logging
import sqlite3
import uuid
import anthropic

from config import ANTHROPIC_API_KEY, LOG_LEVEL, SCHEDULE_WINDOW, USER_ID
from daybook import DayBook
from database import init_db, load_daybook, save_daybook
from duplicates import is_event_duplicate
from layout import build_schedule
from models import (
    AcceptScheduleRequest,
    ActiveBlock,
    Event,
    EventCreate,
    GenerateScheduleRequest,
    PlanningSnapshot,
    PlanningUpdate,
    ProposeSplitRequest,
    RecurringTask,
    RecurringTaskCreate,
    ScheduleItem,
    ScheduleProposal,
    Slot,
    SplitProposal,
    SplitRequest,
    SyncRequest,
    Task,
    TaskCreate,
    TaskUpdate,
    TaskUpdateResult,
    TimeBlock,
    TimeBlockCreate,
    TimeBlockException,
    TimeBlockExceptionCreate,
)
from planning import accept_schedule, planning_snapshot, update_planning_fields
from recurring_sync import complete_task, delete_future_generated_tasks, sync_for_date
from schedule_generator import generate_schedule
from splitting import InvalidSplitError, find_slots_for_day, merge_subtasks, propose_split, split_task
from time_blocks import active_blocks_for

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_client: Optional[anthropic.AsyncAnthropic] = None


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
    return _client


def today() -> str:
    return date.today().isoformat()


def save(book: DayBook) -> None:
    """Persist the day book, reporting a duplicate recurring instance as 409."""
    try:
        save_daybook(book)
    except sqlite3.IntegrityError as e:
        logger.warning("Rejected conflicting save: %s", e)
        raise HTTPException(status_code=409, detail=f"Conflicting change: {e}")


def get_task_or_404(book: DayBook, task_id: str) -> Task:
    task = book.find_task(task_id)
    if task is None or task.user_id != USER_ID:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


# Tasks

@app.get("/tasks")
def get_tasks(date: Optional[str] = None) -> list[Task]:
    book = load_daybook(USER_ID)
    if date:
        return book.tasks_for_note(USER_ID, date)
    return list(book.all_tasks(USER_ID))


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate) -> Task:
    book = load_daybook(USER_ID)
    task = book.add_task(Task(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        note_date=task_data.date or today(),
        title=task_data.title,
        category=task_data.category,
        due_date=task_data.due_date,
        fixed_time=task_data.fixed_time,
        estimated_minutes=task_data.estimated_minutes,
        needs_full_focus=task_data.needs_full_focus,
        tags=task_data.tags,
    ))
    save(book)
    return task


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> TaskUpdateResult:
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, task_id)

    # Only fields sent by the client change; an explicit null clears due_date
    for field in task_data.model_fields_set - {"completed"}:
        value = getattr(task_data, field)
        if value is not None or field == "due_date":
            setattr(task, field, value)

    next_task = None
    if task_data.completed is not None:
        next_task = complete_task(book, task, task_data.completed, today=today())

    save(book)
    return TaskUpdateResult(task=task, next_task=next_task)


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    book = load_daybook(USER_ID)
    book.remove_task(get_task_or_404(book, task_id))
    save(book)
    return {"status": "deleted"}


@app.post("/tasks/{task_id}/split")
def split_task_endpoint(task_id: str, split_data: SplitRequest) -> list[Task]:
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, task_id)
    try:
        parts = split_task(book, task, split_data.parts)
    except InvalidSplitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save(book)
    return parts


@app.post("/tasks/{task_id}/merge")
def merge_task_endpoint(task_id: str) -> Task:
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, task_id)
    if not task.has_subtasks():
        raise HTTPException(status_code=400, detail="Task has no subtasks to merge")
    merge_subtasks(book, task)
    save(book)
    return task


@app.get("/tasks/{task_id}/subtasks")
def get_subtasks(task_id: str) -> dict:
    """Parts of a split task with completion progress."""
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, task_id)
    return {
        "subtasks": [subtask.model_dump() for subtask in task.subtasks],
        "progress": task.progress(),
        "is_fully_completed": task.is_fully_completed(),
    }


# Schedule

@app.get("/schedule")
def get_schedule(date: str) -> list[ScheduleItem]:
    book = load_daybook(USER_ID)
    return build_schedule(book.events_for(USER_ID, date), date, SCHEDULE_WINDOW)


@app.get("/schedule/available-slots")
def get_available_slots(date: str) -> list[Slot]:
    book = load_daybook(USER_ID)
    return find_slots_for_day(book, USER_ID, date, SCHEDULE_WINDOW)


@app.post("/schedule/propose-split")
def propose_split_endpoint(request: ProposeSplitRequest) -> SplitProposal:
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, request.task_id)
    return propose_split(book, task, request.date, SCHEDULE_WINDOW)


# Events

@app.get("/events")
def get_events(date: str) -> list[Event]:
    book = load_daybook(USER_ID)
    return book.events_for(USER_ID, date)


@app.post("/events", status_code=201)
def create_event(event_data: EventCreate) -> Event:
    book = load_daybook(USER_ID)
    existing = book.events_for(USER_ID, event_data.date)
    if is_event_duplicate(event_data.title, event_data.start_time, event_data.end_time, existing):
        raise HTTPException(status_code=409, detail="Event already exists")

    event = book.add_event(Event(id=str(uuid.uuid4()), user_id=USER_ID, **event_data.model_dump()))
    save(book)
    return event


@app.delete("/events/{event_id}")
def delete_event(event_id: str) -> dict:
    book = load_daybook(USER_ID)
    event = book.find_event(event_id)
    if event is None or event.user_id != USER_ID:
        raise HTTPException(status_code=404, detail="Event not found")
    book.remove_event(event)
    save(book)
    return {"status": "deleted"}


# Recurring tasks

def get_rule_or_404(book: DayBook, rule_id: str) -> RecurringTask:
    rule = book.find_recurring_task(rule_id)
    if rule is None or rule.user_id != USER_ID:
        raise HTTPException(status_code=404, detail="Recurring task not found")
    return rule


@app.get("/recurring")
def get_recurring_tasks() -> list[RecurringTask]:
    book = load_daybook(USER_ID)
    return [rule for rule in book.recurring_tasks if rule.is_active]


@app.post("/recurring", status_code=201)
def create_recurring_task(rule_data: RecurringTaskCreate) -> RecurringTask:
    book = load_daybook(USER_ID)
    rule = book.add_recurring_task(RecurringTask(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        title=rule_data.title,
        recurrence_type=rule_data.recurrence_type,
        recurrence_days=rule_data.recurrence_days,
        start_date=rule_data.start_date or today(),
        end_date=rule_data.end_date,
        category=rule_data.category,
        estimated_minutes=rule_data.estimated_minutes,
        fixed_time=rule_data.fixed_time,
        created_at=datetime.now().isoformat(),
    ))

    # A linked task stands in for today's instance
    if rule_data.link_task_id:
        linked = book.find_task(rule_data.link_task_id)
        if linked is not None and linked.user_id == USER_ID:
            linked.recurring_task_id = rule.id
            rule.last_generated_date = today()

    save(book)
    return rule


@app.delete("/recurring/{rule_id}")
def delete_recurring_task(rule_id: str) -> dict:
    """Deactivate a recurring task; already generated tasks are kept."""
    book = load_daybook(USER_ID)
    rule = get_rule_or_404(book, rule_id)
    rule.is_active = False
    save(book)
    return {"status": "deactivated"}


@app.delete("/recurring/{rule_id}/all")
def delete_recurring_task_all(rule_id: str) -> dict:
    """Delete a recurring task together with its instances from today on."""
    book = load_daybook(USER_ID)
    rule = get_rule_or_404(book, rule_id)
    deleted = delete_future_generated_tasks(book, rule, today())
    book.remove_recurring_task(rule)
    save(book)
    return {"status": "deleted", "deleted_tasks": deleted}


@app.post("/recurring/sync")
def sync_recurring(request: SyncRequest) -> dict:
    book = load_daybook(USER_ID)
    generated = sync_for_date(book, request.date or today(), USER_ID)
    save(book)
    return {"generated": len(generated), "tasks": [task.model_dump() for task in generated]}


# Time blocks

@app.get("/time-blocks")
def get_time_blocks() -> list[TimeBlock]:
    book = load_daybook(USER_ID)
    return book.active_time_blocks(USER_ID)


@app.post("/time-blocks", status_code=201)
def create_time_block(block_data: TimeBlockCreate) -> TimeBlock:
    book = load_daybook(USER_ID)
    data = block_data.model_dump()
    data["anchor_date"] = block_data.anchor_date or today()
    block = book.add_time_block(TimeBlock(
        id=str(uuid.uuid4()),
        user_id=USER_ID,
        created_at=datetime.now().isoformat(),
        **data,
    ))
    save(book)
    return block


@app.get("/time-blocks/active")
def get_active_time_blocks(date: str) -> list[ActiveBlock]:
    book = load_daybook(USER_ID)
    return active_blocks_for(book.active_time_blocks(USER_ID), book.exceptions_for(USER_ID, date), USER_ID, date)


@app.post("/time-blocks/{block_id}/exceptions")
def set_time_block_exception(block_id: str, exception_data: TimeBlockExceptionCreate) -> TimeBlockException:
    book = load_daybook(USER_ID)
    block = book.find_time_block(block_id)
    if block is None or block.user_id != USER_ID:
        raise HTTPException(status_code=404, detail="Time block not found")

    exception = book.set_exception(TimeBlockException(
        id=str(uuid.uuid4()),
        time_block_id=block.id,
        **exception_data.model_dump(),
    ))
    save(book)
    return exception


# Planning

@app.get("/planning")
def get_planning(date: Optional[str] = None) -> PlanningSnapshot:
    book = load_daybook(USER_ID)
    return planning_snapshot(book, USER_ID, date or today(), datetime.now(), SCHEDULE_WINDOW)


@app.post("/planning/tasks/{task_id}")
def save_task_planning(task_id: str, planning_data: PlanningUpdate) -> Task:
    book = load_daybook(USER_ID)
    task = get_task_or_404(book, task_id)
    update_planning_fields(task, planning_data.model_dump(exclude_unset=True))
    save(book)
    return task


@app.post("/planning/generate")
async def generate_schedule_endpoint(request: GenerateScheduleRequest) -> ScheduleProposal:
    """Ask the AI service for a schedule of the day's unplanned tasks."""
    if not ANTHROPIC_API_KEY or ANTHROPIC_API_KEY == "your-api-key-here":
        return ScheduleProposal(warnings=["API key not configured"])

    book = load_daybook(USER_ID)
    return await generate_schedule(
        get_client(),
        book.unplanned_tasks_for(USER_ID, request.date),
        book.events_for(USER_ID, request.date),
        book.planned_tasks_for(USER_ID, request.date),
        request.date,
        language=request.language,
        work_until_time=request.work_until_time,
    )


@app.post("/planning/accept")
def accept_schedule_endpoint(request: AcceptScheduleRequest) -> dict:
    book = load_daybook(USER_ID)
    updated = accept_schedule(book, USER_ID, request.schedule, today=today())
    save(book)
    return {"updated": len(updated), "tasks": [task.model_dump() for task in updated]}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
