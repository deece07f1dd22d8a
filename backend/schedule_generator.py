"""
Client for the AI schedule proposal.

The model proposes a full-day schedule; its answer is only parsed and
normalised here, never recomputed. Failures come back as warnings.
"""
import json
import logging
from datetime import date, datetime
from typing import Optional

import anthropic

from config import SCHEDULE_MODEL
from models import Event, ScheduleProposal, Task
from planning import normalize_schedule_response
from prompts import LANGUAGE_NAMES, POLISH_DAY_NAMES, REBUILD_RULES, SCHEDULE_PROMPT

logger = logging.getLogger(__name__)


def _day_of_week(day: str, language: str) -> str:
    name = date.fromisoformat(day).strftime("%A")
    if language == "pl":
        return POLISH_DAY_NAMES.get(name, name)
    return name


def build_schedule_prompt(
    tasks: list[Task],
    events: list[Event],
    existing_planned: list[Task],
    day: str,
    language: str = "en",
    work_until_time: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    now = now or datetime.now()
    task_data = [
        {
            "id": task.id,
            "title": task.title,
            "estimatedMinutes": task.estimated_minutes,
            "fixedTime": task.fixed_time,
            "canCombineWithEvents": task.can_combine_with_events,
            "needsFullFocus": task.needs_full_focus,
        }
        for task in tasks
    ]
    event_data = [
        {
            "id": event.id,
            "title": event.title,
            "startTime": event.start_time,
            "endTime": event.end_time,
            "allowOverlap": event.allow_overlap,
        }
        for event in events
    ]
    planned_data = [
        {
            "id": task.id,
            "title": task.title,
            "fixedTime": task.fixed_time,
            "estimatedMinutes": task.estimated_minutes if task.estimated_minutes is not None else 30,
        }
        for task in existing_planned
    ]
    rebuild_rules = REBUILD_RULES.format(work_until_time=work_until_time) if work_until_time else ""

    return SCHEDULE_PROMPT.format(
        current_date=day,
        day_of_week=_day_of_week(day, language),
        current_time=now.strftime("%H:%M"),
        tasks=json.dumps(task_data, ensure_ascii=False, indent=2),
        events=json.dumps(event_data, ensure_ascii=False, indent=2),
        existing_planned_tasks=json.dumps(planned_data, ensure_ascii=False, indent=2),
        rebuild_rules=rebuild_rules,
        language_name=LANGUAGE_NAMES.get(language, "English"),
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


async def generate_schedule(
    client: anthropic.AsyncAnthropic,
    tasks: list[Task],
    events: list[Event],
    existing_planned: list[Task],
    day: str,
    language: str = "en",
    work_until_time: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ScheduleProposal:
    """Ask the model for a schedule of tasks around events and already planned tasks."""
    if not tasks:
        return ScheduleProposal()

    prompt = build_schedule_prompt(tasks, events, existing_planned, day, language, work_until_time, now)

    try:
        response = await client.messages.create(
            model=SCHEDULE_MODEL,
            max_tokens=2048,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        logger.warning("Schedule generation failed: %s", e)
        return ScheduleProposal(warnings=[f"Failed to generate schedule: {e}"])

    text = getattr(response.content[0], "text", None) if response.content else None
    if not isinstance(text, str):
        return ScheduleProposal(warnings=["Failed to parse AI response"])

    ai_text = strip_code_fence(text)
    logger.debug("Schedule response: %s", ai_text)

    try:
        parsed = json.loads(ai_text)
    except json.JSONDecodeError:
        return ScheduleProposal(warnings=["Failed to parse AI response"])
    if not isinstance(parsed, dict):
        return ScheduleProposal(warnings=["Failed to parse AI response"])

    return normalize_schedule_response(parsed)
