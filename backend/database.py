import json
import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from typing import Iterable, Optional
from pydantic import BaseModel

from daybook import DayBook
from models import DailyNote, Event, RecurringTask, Task, TimeBlock, TimeBlockException

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("DAYPLAN_DATABASE_PATH", "dayplan.db")

# Columns stored as JSON text
TASK_JSON_FIELDS = ("can_combine_with_events", "tags")
RULE_JSON_FIELDS = ("recurrence_days",)
BLOCK_JSON_FIELDS = ("recurrence_days", "tags")


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "-x", f"db_path={os.path.abspath(DATABASE_PATH)}", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


def _model_to_row(model: BaseModel, json_fields: Iterable[str], exclude: Iterable[str] = ()) -> dict:
    row = model.model_dump(mode="json", exclude=set(exclude))
    for field in json_fields:
        if row.get(field) is not None:
            row[field] = json.dumps(row[field])
    return row

def _row_to_model(row: sqlite3.Row, model_cls: type[BaseModel], json_fields: Iterable[str] = ()) -> BaseModel:
    # NULL columns fall back to the model defaults
    data = {key: row[key] for key in row.keys() if row[key] is not None}
    for field in json_fields:
        if field in data:
            data[field] = json.loads(data[field])
    return model_cls(**data)

def _upsert(conn: sqlite3.Connection, table: str, row: dict) -> None:
    """Insert a row or update it in place by id (unique indexes still apply)."""
    columns = list(row.keys())
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{column} = excluded.{column}" for column in columns if column != "id")
    conn.execute(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}",
        [row[column] for column in columns]
    )


def load_daybook(user_id: Optional[str] = None) -> DayBook:
    """
    Load a snapshot of notes, tasks, events, recurring tasks and time blocks.
    With user_id set, only that user's data is loaded.
    """
    where, params = ("WHERE user_id = ?", (user_id,)) if user_id else ("", ())
    with get_db() as conn:
        note_rows = conn.execute(f"SELECT * FROM daily_notes {where} ORDER BY date", params).fetchall()
        task_rows = conn.execute(f"SELECT * FROM tasks {where} ORDER BY rowid", params).fetchall()
        rule_rows = conn.execute(f"SELECT * FROM recurring_tasks {where} ORDER BY created_at", params).fetchall()
        event_rows = conn.execute(f"SELECT * FROM events {where} ORDER BY date, start_time", params).fetchall()
        block_rows = conn.execute(f"SELECT * FROM time_blocks {where} ORDER BY start_time", params).fetchall()
        exception_rows = conn.execute(
            "SELECT e.* FROM time_block_exceptions e JOIN time_blocks b ON b.id = e.time_block_id "
            + ("WHERE b.user_id = ?" if user_id else ""),
            params
        ).fetchall()

    notes = {}
    for row in note_rows:
        note = _row_to_model(row, DailyNote)
        notes[(note.user_id, note.date)] = note

    for row in task_rows:
        task = _row_to_model(row, Task, TASK_JSON_FIELDS)
        key = (task.user_id, task.note_date)
        if key not in notes:
            notes[key] = DailyNote(id=str(uuid.uuid4()), user_id=task.user_id, date=task.note_date)
        notes[key].tasks.append(task)

    return DayBook(
        notes=notes.values(),
        events=[_row_to_model(row, Event) for row in event_rows],
        recurring_tasks=[_row_to_model(row, RecurringTask, RULE_JSON_FIELDS) for row in rule_rows],
        time_blocks=[_row_to_model(row, TimeBlock, BLOCK_JSON_FIELDS) for row in block_rows],
        exceptions=[_row_to_model(row, TimeBlockException) for row in exception_rows],
    )


def save_daybook(book: DayBook) -> None:
    """
    Write a snapshot back in one transaction: pending deletions first,
    then every note, task, event, recurring task, block and exception.
    Raises sqlite3.IntegrityError (after rolling back) when a second
    instance of a recurring task for the same date would be stored.
    """
    with get_db() as conn:
        try:
            for task_id in book.removed_task_ids:
                conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            for event_id in book.removed_event_ids:
                conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
            for rule_id in book.removed_recurring_ids:
                conn.execute("DELETE FROM recurring_tasks WHERE id = ?", (rule_id,))

            # Tasks reference notes by (user_id, date); an existing note row is kept
            for note in book.notes.values():
                conn.execute(
                    "INSERT INTO daily_notes (id, user_id, date) VALUES (?, ?, ?) ON CONFLICT DO NOTHING",
                    (note.id, note.user_id, note.date)
                )
            for task in book.all_tasks():
                _upsert(conn, "tasks", _model_to_row(task, TASK_JSON_FIELDS, exclude=("subtasks",)))
            for event in book.events:
                _upsert(conn, "events", _model_to_row(event, ()))
            for rule in book.recurring_tasks:
                _upsert(conn, "recurring_tasks", _model_to_row(rule, RULE_JSON_FIELDS))
            for block in book.time_blocks:
                _upsert(conn, "time_blocks", _model_to_row(block, BLOCK_JSON_FIELDS))
            for exception in book.exceptions:
                _upsert(conn, "time_block_exceptions", _model_to_row(exception, ()))

            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            logger.exception("Saving day book failed, transaction rolled back")
            raise

    book.removed_task_ids.clear()
    book.removed_event_ids.clear()
    book.removed_recurring_ids.clear()
