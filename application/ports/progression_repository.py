"""
Progression Repository Interfaces (Ports).

Part of STR-118: Progression rule engine

Contracts for progression definitions, their per-program configuration and
the log of applied progressions.
"""
from typing import List, Optional, Protocol

from domain.models.progression import (
    ProgressionConfig,
    ProgressionDefinition,
    ProgressionLogEntry,
)


class ProgressionRepository(Protocol):
    """Read access to progression definitions."""

    def get_definition(self, progression_id: str) -> Optional[ProgressionDefinition]:
        """
        Get a progression definition by ID.

        Returns:
            The definition, or None if not found
        """
        ...


class ProgressionConfigRepository(Protocol):
    """
    Abstract interface for program progression configuration.

    At most one config exists per (program_id, progression_id, lift_id),
    where a missing lift_id is its own program-wide value.
    """

    def list_for_program(self, program_id: str) -> List[ProgressionConfig]:
        """List every config of a program, enabled or not."""
        ...

    def create(self, config: ProgressionConfig) -> ProgressionConfig:
        """
        Persist a new config.

        Raises:
            DuplicateProgressionConfigError: If the scope is already configured
        """
        ...


class ProgressionLogRepository(Protocol):
    """Abstract interface for the applied-progression log."""

    def has_entry(
        self,
        user_id: str,
        progression_id: str,
        lift_id: str,
        position_key: str,
    ) -> bool:
        """Check whether a progression was already applied at a position."""
        ...

    def record(self, entry: ProgressionLogEntry) -> ProgressionLogEntry:
        """
        Append an entry to the log.

        At most one unforced entry exists per (user_id, progression_id,
        lift_id, position_key); the store enforces it.

        Raises:
            DuplicateProgressionLogError: If an unforced entry already exists
                for that key
        """
        ...

    def remove(self, entry_id: str) -> None:
        """Delete an entry, releasing its position key."""
        ...

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ProgressionLogEntry]:
        """List a user's entries, newest first."""
        ...
