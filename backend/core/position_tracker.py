"""
Position Tracker for Program Enrollment.

Part of STR-104: Program position advancement

This module provides:
- advance_position(): the pure week/day/cycle transition
- PositionService: enrollment, lookup and the advance operation with
  authorization, per-user serialization and optimistic persistence
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from application.exceptions import (
    AlreadyEnrolledError,
    InternalError,
    NotFoundError,
)
from application.ports.position_repository import PositionRepository, ScheduleRepository
from backend.core.access import authorize_target_user
from backend.core.locks import KeyedLocks, position_locks
from domain.models.identity import CallerIdentity
from domain.models.position import CycleSchedule, ProgramPosition

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Pure Transition
# =============================================================================


@dataclass
class AdvanceResult:
    """Outcome of one advance. ``cycle_completed`` is never persisted."""
    position: ProgramPosition
    cycle_completed: bool = False


def advance_position(
    position: ProgramPosition,
    schedule: CycleSchedule,
    now: Optional[datetime] = None,
) -> AdvanceResult:
    """
    Move a position forward by one training day.

    The never-advanced sentinel (``current_day_index is None``) counts as
    index 0, so the first advance lands on day 1 of week 1. Past the last day
    of a week the index wraps to 0 and the week increments; past the last
    week of the cycle the week wraps to 1 and the cycle iteration increments.

    Args:
        position: Current position (not modified)
        schedule: Cycle schedule of the enrolled program
        now: Timestamp for ``updated_at``; defaults to the current UTC time

    Returns:
        AdvanceResult with the new position and whether a cycle completed
    """
    week = position.current_week
    cycle = position.current_cycle_iteration
    day_index = (position.current_day_index or 0) + 1
    cycle_completed = False

    if day_index >= schedule.days_in_week(week):
        day_index = 0
        week += 1
        if week > schedule.length_weeks:
            week = 1
            cycle += 1
            cycle_completed = True

    advanced = position.model_copy(
        update={
            "current_week": week,
            "current_day_index": day_index,
            "current_cycle_iteration": cycle,
            "updated_at": now or _utcnow(),
        }
    )
    return AdvanceResult(position=advanced, cycle_completed=cycle_completed)


# =============================================================================
# Service
# =============================================================================


class PositionService:
    """Enrollment and advancement of a user's program position."""

    def __init__(
        self,
        position_repo: PositionRepository,
        schedule_repo: ScheduleRepository,
        *,
        locks: KeyedLocks = position_locks,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._positions = position_repo
        self._schedules = schedule_repo
        self._locks = locks
        self._clock = clock

    def enroll(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        program_id: str,
    ) -> ProgramPosition:
        """
        Enroll a user in a program at the never-advanced start position.

        Raises:
            NotFoundError: If the program has no schedule
            AlreadyEnrolledError: If the user is already enrolled
        """
        authorize_target_user(caller, user_id)

        if self._schedules.get_cycle_schedule(program_id) is None:
            raise NotFoundError("program", program_id)

        with self._locks.hold(user_id, program_id):
            if self._positions.get(user_id) is not None:
                raise AlreadyEnrolledError(user_id)

            now = self._clock()
            position = ProgramPosition(
                user_id=user_id,
                program_id=program_id,
                enrolled_at=now,
                updated_at=now,
            )
            created = self._positions.create(position)

        logger.info(f"Enrolled user {user_id} in program {program_id}")
        return created

    def get(self, caller: Optional[CallerIdentity], user_id: str) -> ProgramPosition:
        """
        Get the user's current position.

        Raises:
            NotFoundError: If the user is not enrolled
        """
        authorize_target_user(caller, user_id)
        position = self._positions.get(user_id)
        if position is None:
            raise NotFoundError("enrollment", user_id)
        return position

    def unenroll(self, caller: Optional[CallerIdentity], user_id: str) -> None:
        """Remove the user's enrollment."""
        authorize_target_user(caller, user_id)
        if not self._positions.delete(user_id):
            raise NotFoundError("enrollment", user_id)
        logger.info(f"Unenrolled user {user_id}")

    def advance(self, caller: Optional[CallerIdentity], user_id: str) -> AdvanceResult:
        """
        Advance the user to the next training day.

        The read-advance-write sequence runs under the (user, program) lock
        and the write is conditional on the position not having changed.

        Raises:
            UnauthorizedError: If no caller identity is present
            ForbiddenError: If a non-admin targets another user
            NotFoundError: If the user is not enrolled
            InternalError: If the program schedule cannot be loaded
            StalePositionError: If the position changed concurrently
        """
        authorize_target_user(caller, user_id)

        position = self._positions.get(user_id)
        if position is None:
            raise NotFoundError("enrollment", user_id)

        with self._locks.hold(user_id, position.program_id):
            # Re-read inside the lock so a queued advance sees the latest state
            position = self._positions.get(user_id)
            if position is None:
                raise NotFoundError("enrollment", user_id)

            schedule = self._schedules.get_cycle_schedule(position.program_id)
            if schedule is None:
                raise InternalError(
                    f"schedule for program {position.program_id} could not be loaded"
                )

            result = advance_position(position, schedule, now=self._clock())
            stored = self._positions.save(
                result.position,
                expected_updated_at=position.updated_at,
            )

        if result.cycle_completed:
            logger.info(
                f"User {user_id} completed cycle "
                f"{position.current_cycle_iteration} of program {position.program_id}"
            )
        return AdvanceResult(position=stored, cycle_completed=result.cycle_completed)
