"""
Tests for FastAPI endpoints in main.py.
The AI schedule endpoint is tested with a fake client.
"""
import pytest
import sys
import os
from types import SimpleNamespace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main

DAY = "2025-01-06"
TOMORROW = "2025-01-07"


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    monkeypatch.setattr(main, "today", lambda: DAY)


def create_task(client, title="Write report", **fields):
    response = client.post("/tasks", json={"title": title, "date": DAY, **fields})
    assert response.status_code == 201
    return response.json()


def create_event(client, start, end, title="Meeting", date=DAY):
    response = client.post("/events", json={"title": title, "date": date, "start_time": start, "end_time": end})
    assert response.status_code == 201
    return response.json()


class TestTaskEndpoints:
    """Tests for /tasks endpoints."""

    def test_get_tasks_empty(self, app_client):
        """GET /tasks returns empty list when no tasks."""
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == []

    def test_create_task(self, app_client):
        """POST /tasks creates a task in the given day's note."""
        task = create_task(app_client, estimated_minutes=45, tags=[{"id": "tag-1", "name": "work"}])

        assert task["title"] == "Write report"
        assert task["note_date"] == DAY
        assert task["user_id"] == "user-1"
        assert task["estimated_minutes"] == 45
        assert task["category"] == "today"

        tasks = app_client.get("/tasks", params={"date": DAY}).json()
        assert [t["id"] for t in tasks] == [task["id"]]
        assert app_client.get("/tasks", params={"date": TOMORROW}).json() == []

    def test_create_task_defaults_to_today(self, app_client):
        response = app_client.post("/tasks", json={"title": "No date"})
        assert response.json()["note_date"] == DAY

    def test_create_task_rejects_negative_estimate(self, app_client):
        response = app_client.post("/tasks", json={"title": "Bad", "estimated_minutes": -5})
        assert response.status_code == 422

    def test_update_task_title(self, app_client):
        """PATCH /tasks/{id} updates title."""
        task = create_task(app_client, title="Old title")

        response = app_client.patch(f"/tasks/{task['id']}", json={"title": "New title"})

        assert response.status_code == 200
        assert response.json()["task"]["title"] == "New title"
        assert response.json()["next_task"] is None

    def test_update_clears_due_date(self, app_client):
        """An explicit null due date clears it; omitted fields stay."""
        task = create_task(app_client, due_date=TOMORROW)

        response = app_client.patch(f"/tasks/{task['id']}", json={"due_date": None})

        assert response.json()["task"]["due_date"] is None
        assert response.json()["task"]["title"] == "Write report"

    def test_update_task_completed(self, app_client):
        """PATCH /tasks/{id} marks task completed."""
        task = create_task(app_client, title="Complete me")

        response = app_client.patch(f"/tasks/{task['id']}", json={"completed": True})

        assert response.status_code == 200
        assert response.json()["task"]["completed"] is True
        assert response.json()["task"]["completed_at"] is not None

    def test_update_task_not_found(self, app_client):
        """PATCH /tasks/{id} returns 404 for nonexistent task."""
        response = app_client.patch("/tasks/nonexistent", json={"title": "New title"})
        assert response.status_code == 404

    def test_delete_task(self, app_client):
        """DELETE /tasks/{id} removes task."""
        task = create_task(app_client, title="Delete me")

        response = app_client.delete(f"/tasks/{task['id']}")
        assert response.status_code == 200
        assert response.json()["status"] == "deleted"

        # Verify task is gone
        assert app_client.get("/tasks").json() == []

    def test_delete_task_not_found(self, app_client):
        """DELETE /tasks/{id} returns 404 for nonexistent task."""
        response = app_client.delete("/tasks/nonexistent")
        assert response.status_code == 404


class TestSplitEndpoints:
    """Tests for splitting and merging tasks."""

    def test_split_and_merge(self, app_client):
        """Split a task into parts, read progress, then merge back."""
        task = create_task(app_client, estimated_minutes=90, fixed_time="10:00")

        response = app_client.post(f"/tasks/{task['id']}/split", json={"parts": [
            {"start_time": "09:00", "duration_minutes": 40, "date": DAY},
            {"start_time": "21:30", "duration_minutes": 50, "date": TOMORROW},
        ]})
        assert response.status_code == 200
        parts = response.json()
        assert [part["title"] for part in parts] == ["Write report (part 1)", "Write report (part 2)"]
        assert parts[1]["note_date"] == TOMORROW

        subtasks = app_client.get(f"/tasks/{task['id']}/subtasks").json()
        assert subtasks["progress"] == "0/2"
        assert subtasks["is_fully_completed"] is False

        response = app_client.post(f"/tasks/{task['id']}/merge")
        assert response.status_code == 200
        assert response.json()["estimated_minutes"] == 90
        assert response.json()["subtasks"] == []
        assert len(app_client.get("/tasks").json()) == 1

    def test_split_twice_is_rejected(self, app_client):
        """Splitting an already split task returns 400."""
        task = create_task(app_client, estimated_minutes=60)
        parts = {"parts": [{"start_time": "09:00", "duration_minutes": 60, "date": DAY}]}
        app_client.post(f"/tasks/{task['id']}/split", json=parts)

        response = app_client.post(f"/tasks/{task['id']}/split", json=parts)

        assert response.status_code == 400
        assert response.json()["detail"] == "Task is already split"

    def test_malformed_parts(self, app_client):
        task = create_task(app_client, estimated_minutes=60)
        response = app_client.post(f"/tasks/{task['id']}/split", json={"parts": [{"start_time": "09:00"}]})
        assert response.status_code == 400

    def test_merge_without_parts(self, app_client):
        """Merging a task that was never split returns 400."""
        task = create_task(app_client)
        response = app_client.post(f"/tasks/{task['id']}/merge")
        assert response.status_code == 400
        assert response.json()["detail"] == "Task has no subtasks to merge"


class TestScheduleEndpoints:
    """Tests for /schedule and /events endpoints."""

    def test_schedule_layout(self, app_client):
        create_event(app_client, "14:00", "15:00", title="Review")
        create_event(app_client, "06:00", "07:00", title="Gym")

        items = app_client.get("/schedule", params={"date": DAY}).json()

        assert [item["title"] for item in items] == ["Gym", "Review"]
        assert items[0]["top_percent"] == 0
        assert items[1]["top_percent"] == pytest.approx(50.0)

    def test_available_slots(self, app_client):
        """Free slots exclude events and planned tasks."""
        create_event(app_client, "06:00", "12:00")
        create_task(app_client, fixed_time="12:00", estimated_minutes=60)

        slots = app_client.get("/schedule/available-slots", params={"date": DAY}).json()

        assert slots == [{"start_time": "13:00", "end_time": "22:00", "duration_minutes": 540}]

    def test_propose_split(self, app_client):
        create_event(app_client, "06:00", "08:00")
        create_event(app_client, "09:00", "21:00")
        task = create_task(app_client, estimated_minutes=90)

        response = app_client.post("/schedule/propose-split", json={"task_id": task["id"], "date": DAY})

        proposal = response.json()
        assert proposal["can_split"] is True
        assert proposal["overflow_to_next_day"] is False
        assert [part["duration_minutes"] for part in proposal["parts"]] == [60, 30]

    def test_propose_split_unknown_task(self, app_client):
        response = app_client.post("/schedule/propose-split", json={"task_id": "missing", "date": DAY})
        assert response.status_code == 404

    def test_duplicate_event_rejected(self, app_client):
        """An event with the same title and overlapping time is a duplicate."""
        create_event(app_client, "10:00", "11:00", title="Team sync")

        response = app_client.post("/events", json={
            "title": "team sync", "date": DAY, "start_time": "10:30", "end_time": "11:30",
        })

        assert response.status_code == 409
        assert len(app_client.get("/events", params={"date": DAY}).json()) == 1

    def test_delete_event(self, app_client):
        event = create_event(app_client, "10:00", "11:00")
        assert app_client.delete(f"/events/{event['id']}").status_code == 200
        assert app_client.get("/events", params={"date": DAY}).json() == []
        assert app_client.delete(f"/events/{event['id']}").status_code == 404


class TestRecurringEndpoints:
    """Tests for /recurring endpoints."""

    def create_rule(self, client, **fields):
        response = client.post("/recurring", json={"title": "Water plants", "start_date": DAY, **fields})
        assert response.status_code == 201
        return response.json()

    def test_sync_generates_once(self, app_client):
        """POST /recurring/sync generates the day's instance once."""
        rule = self.create_rule(app_client, estimated_minutes=10)

        first = app_client.post("/recurring/sync", json={"date": DAY}).json()
        second = app_client.post("/recurring/sync", json={"date": DAY}).json()

        assert first["generated"] == 1
        assert first["tasks"][0]["recurring_task_id"] == rule["id"]
        assert first["tasks"][0]["estimated_minutes"] == 10
        assert second["generated"] == 0

    def test_completing_instance_generates_next(self, app_client):
        """Completing a generated task returns the next occurrence."""
        self.create_rule(app_client)
        task = app_client.post("/recurring/sync", json={"date": DAY}).json()["tasks"][0]

        response = app_client.patch(f"/tasks/{task['id']}", json={"completed": True})

        next_task = response.json()["next_task"]
        assert next_task["note_date"] == TOMORROW
        assert next_task["title"] == "Water plants"

    def test_linked_task_counts_as_todays_instance(self, app_client):
        """Linking an existing task prevents a second instance today."""
        task = create_task(app_client, title="Water plants")
        rule = self.create_rule(app_client, link_task_id=task["id"])

        assert rule["last_generated_date"] == DAY
        assert app_client.post("/recurring/sync", json={"date": DAY}).json()["generated"] == 0
        linked = app_client.get("/tasks", params={"date": DAY}).json()[0]
        assert linked["recurring_task_id"] == rule["id"]

    def test_soft_delete(self, app_client):
        """DELETE /recurring/{id} deactivates the rule and keeps its tasks."""
        rule = self.create_rule(app_client)
        app_client.post("/recurring/sync", json={"date": DAY})

        response = app_client.delete(f"/recurring/{rule['id']}")

        assert response.status_code == 200
        assert app_client.get("/recurring").json() == []
        assert len(app_client.get("/tasks").json()) == 1
        assert app_client.post("/recurring/sync", json={"date": TOMORROW}).json()["generated"] == 0

    def test_delete_all(self, app_client):
        """DELETE /recurring/{id}/all removes the rule and its instances from today on."""
        rule = self.create_rule(app_client)
        app_client.post("/recurring/sync", json={"date": DAY})

        response = app_client.delete(f"/recurring/{rule['id']}/all")

        assert response.json()["deleted_tasks"] == 1
        assert app_client.get("/tasks").json() == []
        assert app_client.delete(f"/recurring/{rule['id']}").status_code == 404

    def test_unknown_rule(self, app_client):
        assert app_client.delete("/recurring/missing").status_code == 404


class TestTimeBlockEndpoints:
    """Tests for /time-blocks endpoints."""

    def create_block(self, client, **fields):
        response = client.post("/time-blocks", json={
            "name": "Gym",
            "start_time": "18:00",
            "end_time": "19:00",
            "recurrence_type": "weekly",
            **fields,
        })
        assert response.status_code == 201
        return response.json()

    def test_anchor_defaults_to_today(self, app_client):
        block = self.create_block(app_client)
        assert block["anchor_date"] == DAY
        assert len(app_client.get("/time-blocks").json()) == 1

    def test_active_blocks(self, app_client):
        """A weekly block is active on its anchor weekday only."""
        self.create_block(app_client, anchor_date=DAY)

        assert len(app_client.get("/time-blocks/active", params={"date": "2025-01-13"}).json()) == 1
        assert app_client.get("/time-blocks/active", params={"date": "2025-01-14"}).json() == []

    def test_exceptions(self, app_client):
        """Exceptions skip or move a block on one date; the latest one wins."""
        block = self.create_block(app_client, anchor_date=DAY)
        url = f"/time-blocks/{block['id']}/exceptions"

        app_client.post(url, json={"date": "2025-01-13", "is_skipped": True})
        assert app_client.get("/time-blocks/active", params={"date": "2025-01-13"}).json() == []

        app_client.post(url, json={"date": "2025-01-13", "override_start_time": "17:00"})
        active = app_client.get("/time-blocks/active", params={"date": "2025-01-13"}).json()
        assert active[0]["start_time"] == "17:00"
        assert active[0]["original_start_time"] == "18:00"

    def test_exception_unknown_block(self, app_client):
        response = app_client.post("/time-blocks/missing/exceptions", json={"date": DAY, "is_skipped": True})
        assert response.status_code == 404


class FakeMessages:
    def __init__(self, text):
        self.text = text

    async def create(self, **kwargs):
        return SimpleNamespace(content=[SimpleNamespace(text=self.text)])


class TestPlanningEndpoints:
    """Tests for /planning endpoints."""

    def test_planning_snapshot(self, app_client):
        unplanned = create_task(app_client, title="Unplanned")
        planned = create_task(app_client, title="Planned", fixed_time="10:00")
        create_event(app_client, "10:00", "11:00")

        snapshot = app_client.get("/planning", params={"date": DAY}).json()

        assert [task["id"] for task in snapshot["unplanned_tasks"]] == [unplanned["id"]]
        assert [task["id"] for task in snapshot["planned_tasks"]] == [planned["id"]]
        assert snapshot["conflicts"][0]["task"]["id"] == planned["id"]

    def test_save_task_planning(self, app_client):
        """Only the sent planning fields change."""
        task = create_task(app_client, estimated_minutes=30, fixed_time="09:00")

        response = app_client.post(f"/planning/tasks/{task['id']}", json={"estimated_minutes": 50})

        assert response.json()["estimated_minutes"] == 50
        assert response.json()["fixed_time"] == "09:00"

    def test_generate_without_api_key(self, app_client, monkeypatch):
        monkeypatch.setattr(main, "ANTHROPIC_API_KEY", None)
        create_task(app_client)

        response = app_client.post("/planning/generate", json={"date": DAY})

        assert response.status_code == 200
        assert response.json()["warnings"] == ["API key not configured"]

    def test_generate_and_accept(self, app_client, monkeypatch):
        """A generated proposal can be accepted into the tasks."""
        task = create_task(app_client, due_date="2025-01-01")
        text = '{"schedule": [{"taskId": "%s", "suggestedTime": "11:00", "durationMinutes": 40}]}' % task["id"]
        monkeypatch.setattr(main, "ANTHROPIC_API_KEY", "test-key")
        monkeypatch.setattr(main, "get_client", lambda: SimpleNamespace(messages=FakeMessages(text)))

        proposal = app_client.post("/planning/generate", json={"date": DAY}).json()
        assert proposal["schedule"][0]["suggested_time"] == "11:00"

        response = app_client.post("/planning/accept", json={"schedule": proposal["schedule"]})

        assert response.json()["updated"] == 1
        updated = response.json()["tasks"][0]
        assert updated["fixed_time"] == "11:00"
        assert updated["estimated_minutes"] == 40
        assert updated["due_date"] == DAY

    def test_accept_rejects_negative_duration(self, app_client):
        """A negative duration is refused and the task keeps its estimate."""
        task = create_task(app_client, estimated_minutes=30)

        response = app_client.post("/planning/accept", json={"schedule": [
            {"task_id": task["id"], "suggested_time": "10:00", "duration_minutes": -15},
        ]})

        assert response.status_code == 422
        assert app_client.get("/tasks", params={"date": DAY}).json()[0]["estimated_minutes"] == 30
