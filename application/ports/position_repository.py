"""
Program Position Repository Interface (Port).

Part of STR-104: Program position advancement

Defines the contracts for reading and writing a user's program position and
for loading the cycle schedule a program repeats.
"""
from datetime import datetime
from typing import Optional, Protocol

from domain.models.position import CycleSchedule, ProgramPosition


class PositionRepository(Protocol):
    """
    Abstract interface for program position persistence.

    A user is enrolled in at most one program at a time, so positions are
    addressed by user_id.
    """

    def get(self, user_id: str) -> Optional[ProgramPosition]:
        """
        Get the user's current position.

        Args:
            user_id: User ID

        Returns:
            The position, or None when the user is not enrolled
        """
        ...

    def create(self, position: ProgramPosition) -> ProgramPosition:
        """
        Persist a new enrollment.

        Raises:
            AlreadyEnrolledError: If the user already has a position
        """
        ...

    def save(
        self,
        position: ProgramPosition,
        *,
        expected_updated_at: datetime,
    ) -> ProgramPosition:
        """
        Replace the stored position if it has not changed since it was read.

        Args:
            position: New position values
            expected_updated_at: ``updated_at`` of the position that was read

        Returns:
            The stored position

        Raises:
            StalePositionError: If another writer updated the position first
        """
        ...

    def delete(self, user_id: str) -> bool:
        """
        Remove the user's enrollment.

        Returns:
            True if a position was deleted, False if none existed
        """
        ...


class ScheduleRepository(Protocol):
    """Abstract interface for loading a program's cycle schedule."""

    def get_cycle_schedule(self, program_id: str) -> Optional[CycleSchedule]:
        """
        Load the cycle schedule for a program.

        Returns:
            The schedule, or None if the program does not exist
        """
        ...
