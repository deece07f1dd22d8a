"""Initial schema - daily notes, tasks, recurring tasks, events and time blocks

Revision ID: 001
Revises: None
Create Date: 2025-01-21

"""
from typing import Sequence, Union

from alembic import op
from sqlalchemy import text

revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    conn = op.get_bind()

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS daily_notes (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            date TEXT NOT NULL,
            UNIQUE (user_id, date)
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            note_date TEXT NOT NULL,
            title TEXT NOT NULL,
            completed INTEGER DEFAULT 0,
            completed_at TEXT,
            dropped INTEGER DEFAULT 0,
            due_date TEXT,
            category TEXT NOT NULL DEFAULT 'today',
            fixed_time TEXT,
            estimated_minutes INTEGER,
            can_combine_with_events TEXT,
            needs_full_focus INTEGER DEFAULT 0,
            tags TEXT NOT NULL DEFAULT '[]',
            recurring_task_id TEXT,
            parent_task_id TEXT,
            is_part INTEGER DEFAULT 0,
            part_number INTEGER
        )
    """))

    # At most one generated instance per recurring task and date
    conn.execute(text("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_recurring_date
        ON tasks (recurring_task_id, note_date)
        WHERE recurring_task_id IS NOT NULL
    """))
    conn.execute(text("CREATE INDEX IF NOT EXISTS idx_tasks_user_date ON tasks (user_id, note_date)"))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS recurring_tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT,
            title TEXT NOT NULL,
            recurrence_type TEXT NOT NULL DEFAULT 'daily',
            recurrence_days TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT,
            last_generated_date TEXT,
            category TEXT NOT NULL DEFAULT 'today',
            estimated_minutes INTEGER,
            fixed_time TEXT,
            is_active INTEGER DEFAULT 1,
            created_at TEXT
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS events (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            date TEXT NOT NULL,
            start_time TEXT,
            end_time TEXT,
            allow_overlap INTEGER DEFAULT 0
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS time_blocks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            color TEXT,
            start_time TEXT,
            end_time TEXT,
            recurrence_type TEXT NOT NULL DEFAULT 'daily',
            recurrence_days TEXT,
            anchor_date TEXT NOT NULL,
            tags TEXT NOT NULL DEFAULT '[]',
            is_active INTEGER DEFAULT 1,
            created_at TEXT
        )
    """))

    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS time_block_exceptions (
            id TEXT PRIMARY KEY,
            time_block_id TEXT NOT NULL REFERENCES time_blocks (id) ON DELETE CASCADE,
            date TEXT NOT NULL,
            is_skipped INTEGER DEFAULT 0,
            override_start_time TEXT,
            override_end_time TEXT,
            UNIQUE (time_block_id, date)
        )
    """))


def downgrade() -> None:
    conn = op.get_bind()
    conn.execute(text("DROP TABLE IF EXISTS time_block_exceptions"))
    conn.execute(text("DROP TABLE IF EXISTS time_blocks"))
    conn.execute(text("DROP TABLE IF EXISTS events"))
    conn.execute(text("DROP TABLE IF EXISTS recurring_tasks"))
    conn.execute(text("DROP INDEX IF EXISTS idx_tasks_user_date"))
    conn.execute(text("DROP INDEX IF EXISTS idx_tasks_recurring_date"))
    conn.execute(text("DROP TABLE IF EXISTS tasks"))
    conn.execute(text("DROP TABLE IF EXISTS daily_notes"))
