"""
Program position and schedule domain models.

Part of STR-104: Program position advancement

A user enrolled in a program has exactly one position: the week, the day
index inside that week and the cycle iteration. The schedule describes how
many weeks a cycle has and which days each week contains.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DayAssignment(BaseModel):
    """A training day slotted into a week."""

    day_id: str = Field(..., description="Training day identifier")
    day_of_week: Optional[str] = Field(
        default=None,
        description="Calendar day label (MONDAY..SUNDAY), informational only",
    )
    day_slug: Optional[str] = Field(default=None, description="Human-readable day slug")


class WeekSchedule(BaseModel):
    """The ordered training days of one week of a cycle."""

    week_number: int = Field(..., ge=1)
    days: List[DayAssignment] = Field(default_factory=list)


class CycleSchedule(BaseModel):
    """
    The cycle a program repeats.

    Only ``length_weeks`` and the number of days per week matter for
    advancement; the rest is carried for display.
    """

    cycle_id: str
    length_weeks: int = Field(..., ge=1, description="Number of weeks in one cycle")
    weeks: List[WeekSchedule] = Field(default_factory=list)

    def days_in_week(self, week_number: int) -> int:
        """
        Number of training days configured for a week.

        A week with no configured days (or a missing week) counts as one day
        so that advancement always makes progress.
        """
        for week in self.weeks:
            if week.week_number == week_number:
                return len(week.days) or 1
        return 1


class ProgramPosition(BaseModel):
    """
    A user's current place inside a program.

    ``current_day_index`` is ``None`` until the first advance; that sentinel is
    distinct from index 0.
    """

    user_id: str
    program_id: str
    current_week: int = Field(default=1, ge=1)
    current_day_index: Optional[int] = Field(default=None, ge=0)
    current_cycle_iteration: int = Field(default=1, ge=1)
    enrolled_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def has_advanced(self) -> bool:
        """True once the user has advanced at least once."""
        return self.current_day_index is not None

    @property
    def position_key(self) -> str:
        """Stable identifier of this position, e.g. ``c2-w1-d0``."""
        day = "start" if self.current_day_index is None else str(self.current_day_index)
        return f"c{self.current_cycle_iteration}-w{self.current_week}-d{day}"
