"""
Repository Interfaces (Ports) for the Strength Program API.

Part of STR-101: Service skeleton

This package defines abstract interfaces that decouple the core services from
infrastructure (database). Implementations are provided in the
infrastructure layer.

Architecture follows the Ports & Adapters (Hexagonal) pattern:
- Ports: Abstract interfaces defined here (what the core needs)
- Adapters: Concrete implementations in infrastructure/ (how it's provided)

Usage:
    from application.ports import PositionRepository, ScheduleRepository

    class PositionService:
        def __init__(self, position_repo: PositionRepository, schedule_repo: ScheduleRepository):
            ...
"""

# Program position and schedule (STR-104)
from application.ports.position_repository import (
    PositionRepository,
    ScheduleRepository,
)

# Progression definitions, configs and log (STR-118)
from application.ports.progression_repository import (
    ProgressionRepository,
    ProgressionConfigRepository,
    ProgressionLogRepository,
)

# Lifts and recorded maxes (STR-111)
from application.ports.lift_max_repository import (
    LiftRepository,
    LiftMaxRepository,
)

# Sessions, prescriptions and logged sets (STR-126)
from application.ports.session_repository import SessionRepository

__all__ = [
    "PositionRepository",
    "ScheduleRepository",
    "ProgressionRepository",
    "ProgressionConfigRepository",
    "ProgressionLogRepository",
    "LiftRepository",
    "LiftMaxRepository",
    "SessionRepository",
]
