"""
Supabase Program Position and Schedule Repositories.

Part of STR-104: Program position advancement

Positions live in ``user_program_states`` (one row per user). The cycle
schedule is assembled from ``programs`` -> ``cycles`` -> ``weeks`` ->
``week_days``.
"""
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from supabase import Client

from application.exceptions import AlreadyEnrolledError, StalePositionError
from domain.models.position import (
    CycleSchedule,
    DayAssignment,
    ProgramPosition,
    WeekSchedule,
)
from infrastructure.db.errors import is_unique_violation, translate_error

logger = logging.getLogger(__name__)


def _row_to_position(row: Dict[str, Any]) -> ProgramPosition:
    return ProgramPosition(
        user_id=row["user_id"],
        program_id=row["program_id"],
        current_week=row["current_week"],
        current_day_index=row.get("current_day_index"),
        current_cycle_iteration=row["current_cycle_iteration"],
        enrolled_at=row["enrolled_at"],
        updated_at=row["updated_at"],
    )


def _position_to_row(position: ProgramPosition) -> Dict[str, Any]:
    return {
        "user_id": position.user_id,
        "program_id": position.program_id,
        "current_week": position.current_week,
        "current_day_index": position.current_day_index,
        "current_cycle_iteration": position.current_cycle_iteration,
        "enrolled_at": position.enrolled_at.isoformat(),
        "updated_at": position.updated_at.isoformat(),
    }


class SupabasePositionRepository:
    """Supabase implementation of PositionRepository."""

    TABLE = "user_program_states"

    def __init__(self, client: Client):
        """
        Initialize with Supabase client.

        Args:
            client: Supabase client instance (injected)
        """
        self._client = client

    def get(self, user_id: str) -> Optional[ProgramPosition]:
        try:
            result = self._client.table(self.TABLE) \
                .select("*") \
                .eq("user_id", user_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to get position for user {user_id}: {e}")
            raise translate_error(e, "load program position") from e

        if not result.data:
            return None
        return _row_to_position(result.data[0])

    def create(self, position: ProgramPosition) -> ProgramPosition:
        try:
            result = self._client.table(self.TABLE) \
                .insert(_position_to_row(position)) \
                .execute()
        except Exception as e:
            if is_unique_violation(e):
                raise AlreadyEnrolledError(position.user_id) from e
            logger.error(f"Failed to enroll user {position.user_id}: {e}")
            raise translate_error(e, "create program position") from e

        return _row_to_position(result.data[0]) if result.data else position

    def save(
        self,
        position: ProgramPosition,
        *,
        expected_updated_at: datetime,
    ) -> ProgramPosition:
        """Conditional update keyed on the previously read updated_at."""
        row = _position_to_row(position)
        row.pop("enrolled_at")
        try:
            result = self._client.table(self.TABLE) \
                .update(row) \
                .eq("user_id", position.user_id) \
                .eq("program_id", position.program_id) \
                .eq("updated_at", expected_updated_at.isoformat()) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to save position for user {position.user_id}: {e}")
            raise translate_error(e, "save program position") from e

        if not result.data:
            raise StalePositionError(position.user_id, position.program_id)
        return _row_to_position(result.data[0])

    def delete(self, user_id: str) -> bool:
        try:
            result = self._client.table(self.TABLE) \
                .delete() \
                .eq("user_id", user_id) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to delete position for user {user_id}: {e}")
            raise translate_error(e, "delete program position") from e
        return bool(result.data)


class SupabaseScheduleRepository:
    """Supabase implementation of ScheduleRepository."""

    def __init__(self, client: Client):
        self._client = client

    def get_cycle_schedule(self, program_id: str) -> Optional[CycleSchedule]:
        """
        Load a program's cycle with its weeks and week days in one query.

        Week days are ordered by insertion; day_of_week is informational.
        """
        try:
            result = self._client.table("programs") \
                .select(
                    "id, cycles(id, length_weeks, "
                    "weeks(week_number, week_days(day_id, day_of_week, created_at, days(slug))))"
                ) \
                .eq("id", program_id) \
                .limit(1) \
                .execute()
        except Exception as e:
            logger.error(f"Failed to load schedule for program {program_id}: {e}")
            raise translate_error(e, "load cycle schedule") from e

        if not result.data:
            return None

        cycle = result.data[0].get("cycles")
        if not cycle:
            return None

        weeks = []
        for week in cycle.get("weeks") or []:
            week_days = sorted(week.get("week_days") or [], key=lambda d: d.get("created_at") or "")
            weeks.append(
                WeekSchedule(
                    week_number=week["week_number"],
                    days=[
                        DayAssignment(
                            day_id=d["day_id"],
                            day_of_week=d.get("day_of_week"),
                            day_slug=(d.get("days") or {}).get("slug"),
                        )
                        for d in week_days
                    ],
                )
            )

        return CycleSchedule(
            cycle_id=cycle["id"],
            length_weeks=cycle["length_weeks"],
            weeks=sorted(weeks, key=lambda w: w.week_number),
        )
