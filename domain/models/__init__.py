"""
Domain models for the Strength Program API.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).

These models represent the core training concepts:
- ProgramPosition / CycleSchedule: where a user is inside a repeating cycle
- ProgressionDefinition / ProgressionConfig: rules that raise recorded maxes
- LiftMax: a user's one-rep or training max for a lift
- Prescription / LoggedSet / NextSetResult: live-session set decisions
- CallerIdentity: the authenticated caller

Usage:
    >>> from domain.models import ProgramPosition

    >>> position = ProgramPosition(user_id="u1", program_id="p1")
    >>> position.has_advanced
    False
"""

from domain.models.identity import CallerIdentity
from domain.models.lift_max import Lift, LiftMax
from domain.models.position import (
    CycleSchedule,
    DayAssignment,
    ProgramPosition,
    WeekSchedule,
)
from domain.models.progression import (
    MaxType,
    OutcomeStatus,
    ProgressionConfig,
    ProgressionDefinition,
    ProgressionLogEntry,
    ProgressionOutcome,
    TriggerResult,
    TriggerEvent,
    TriggerType,
)
from domain.models.session import (
    LoggedSet,
    NextSet,
    NextSetResult,
    Prescription,
    WorkoutSession,
)

__all__ = [
    "CallerIdentity",
    "Lift",
    "LiftMax",
    "CycleSchedule",
    "DayAssignment",
    "ProgramPosition",
    "WeekSchedule",
    "MaxType",
    "OutcomeStatus",
    "ProgressionConfig",
    "ProgressionDefinition",
    "ProgressionLogEntry",
    "ProgressionOutcome",
    "TriggerResult",
    "TriggerEvent",
    "TriggerType",
    "LoggedSet",
    "NextSet",
    "NextSetResult",
    "Prescription",
    "WorkoutSession",
]
