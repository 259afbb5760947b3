"""
Domain layer for the Strength Program API.

This package contains pure domain models that are independent of
infrastructure concerns (database, API, external services).
"""

from domain.models import (
    CycleSchedule,
    LiftMax,
    ProgramPosition,
    ProgressionConfig,
    ProgressionDefinition,
    TriggerResult,
)

__all__ = [
    "CycleSchedule",
    "LiftMax",
    "ProgramPosition",
    "ProgressionConfig",
    "ProgressionDefinition",
    "TriggerResult",
]
