import os
from dotenv import load_dotenv
from pydantic import BaseModel, model_validator

load_dotenv()


class ScheduleWindow(BaseModel):
    """
    Visible/working part of the day shared by slot finding and layout.
    Hours are whole hours on a 24h clock, end exclusive.
    """
    start_hour: int = 6
    end_hour: int = 22
    min_slot_minutes: int = 30

    @model_validator(mode="after")
    def _check_bounds(self):
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError("schedule window needs 0 <= start_hour < end_hour <= 24")
        if self.min_slot_minutes < 1:
            raise ValueError("min_slot_minutes must be positive")
        return self

    @property
    def total_hours(self) -> int:
        return self.end_hour - self.start_hour

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60

    @property
    def end_minutes(self) -> int:
        return self.end_hour * 60


def load_schedule_window() -> ScheduleWindow:
    """Build the schedule window from SCHEDULE_* environment variables."""
    return ScheduleWindow(
        start_hour=int(os.getenv("SCHEDULE_START_HOUR", "6")),
        end_hour=int(os.getenv("SCHEDULE_END_HOUR", "22")),
        min_slot_minutes=int(os.getenv("SCHEDULE_MIN_SLOT_MINUTES", "30")),
    )


SCHEDULE_WINDOW = load_schedule_window()

USER_ID = os.getenv("DAYPLAN_USER_ID", "local")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
SCHEDULE_MODEL = os.getenv("SCHEDULE_MODEL", "claude-sonnet-4-5")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
