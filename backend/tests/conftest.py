"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from daybook import DayBook

SCHEMA = """
    CREATE TABLE daily_notes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        UNIQUE (user_id, date)
    );

    CREATE TABLE tasks (
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
    );

    CREATE UNIQUE INDEX idx_tasks_recurring_date
    ON tasks (recurring_task_id, note_date)
    WHERE recurring_task_id IS NOT NULL;

    CREATE TABLE recurring_tasks (
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
    );

    CREATE TABLE events (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        date TEXT NOT NULL,
        start_time TEXT,
        end_time TEXT,
        allow_overlap INTEGER DEFAULT 0
    );

    CREATE TABLE time_blocks (
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
    );

    CREATE TABLE time_block_exceptions (
        id TEXT PRIMARY KEY,
        time_block_id TEXT NOT NULL,
        date TEXT NOT NULL,
        is_skipped INTEGER DEFAULT 0,
        override_start_time TEXT,
        override_end_time TEXT,
        UNIQUE (time_block_id, date)
    );
"""


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def app_client(test_db, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Mocks init_db to skip alembic migrations.
    """
    from fastapi.testclient import TestClient
    import main

    # main imports init_db by name, so patch it there too
    monkeypatch.setattr(main, "init_db", lambda: None)
    monkeypatch.setattr(main, "USER_ID", "user-1")

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def book():
    """An empty in-memory day book."""
    return DayBook()
