"""
Fake Repository Implementations for Testing.

Part of STR-101: Service skeleton

This package provides in-memory fake implementations of repository interfaces
for fast, isolated testing. No database or external dependencies required.

Features:
- All fakes implement the same Protocol interfaces as real implementations
- Supports seeding with test data
- Supports reset() for test isolation
- Factory functions for common test scenarios

Usage:
    from tests.fakes import create_fake_repositories, linear_progression

    repos = create_fake_repositories()
    repos.progressions.seed(linear_progression("prog-1", increment=5))
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from domain.models.lift_max import Lift, LiftMax
from domain.models.progression import MaxType, ProgressionConfig, ProgressionDefinition

from tests.fakes.position_repository import (
    FakePositionRepository,
    FakeScheduleRepository,
    build_schedule,
)
from tests.fakes.progression_repository import (
    FakeProgressionRepository,
    FakeProgressionConfigRepository,
    FakeProgressionLogRepository,
)
from tests.fakes.lift_max_repository import FakeLiftRepository, FakeLiftMaxRepository
from tests.fakes.session_repository import FakeSessionRepository


# =============================================================================
# Bundle
# =============================================================================


@dataclass
class FakeRepositories:
    """Every fake repository, sharing nothing but the test."""
    positions: FakePositionRepository = field(default_factory=FakePositionRepository)
    schedules: FakeScheduleRepository = field(default_factory=FakeScheduleRepository)
    progressions: FakeProgressionRepository = field(default_factory=FakeProgressionRepository)
    configs: FakeProgressionConfigRepository = field(default_factory=FakeProgressionConfigRepository)
    logs: FakeProgressionLogRepository = field(default_factory=FakeProgressionLogRepository)
    lifts: FakeLiftRepository = field(default_factory=FakeLiftRepository)
    maxes: FakeLiftMaxRepository = field(default_factory=FakeLiftMaxRepository)
    sessions: FakeSessionRepository = field(default_factory=FakeSessionRepository)

    def reset(self) -> None:
        for repo in (
            self.positions, self.schedules, self.progressions, self.configs,
            self.logs, self.lifts, self.maxes, self.sessions,
        ):
            repo.reset()


# =============================================================================
# Factory Functions
# =============================================================================


def create_fake_repositories() -> FakeRepositories:
    """Create an empty set of fake repositories."""
    return FakeRepositories()


def linear_progression(
    progression_id: str = "linear-5",
    *,
    increment: float = 5.0,
    max_type: MaxType = MaxType.TRAINING_MAX,
    trigger_type: str = "AFTER_SESSION",
    lift_ids: Optional[List[str]] = None,
) -> ProgressionDefinition:
    """Create a LINEAR_PROGRESSION definition."""
    return ProgressionDefinition(
        id=progression_id,
        name=f"Linear +{increment:g}",
        type="LINEAR_PROGRESSION",
        parameters={
            "increment": increment,
            "maxType": max_type.value,
            "triggerType": trigger_type,
        },
        lift_ids=lift_ids or [],
    )


def cycle_progression(
    progression_id: str = "cycle-10",
    *,
    increment: float = 10.0,
    max_type: MaxType = MaxType.TRAINING_MAX,
    lift_ids: Optional[List[str]] = None,
) -> ProgressionDefinition:
    """Create a CYCLE_PROGRESSION definition."""
    return ProgressionDefinition(
        id=progression_id,
        name=f"Cycle +{increment:g}",
        type="CYCLE_PROGRESSION",
        parameters={"increment": increment, "maxType": max_type.value},
        lift_ids=lift_ids or [],
    )


def amrap_progression(
    progression_id: str = "amrap",
    *,
    thresholds: Optional[List[tuple]] = None,
    max_type: MaxType = MaxType.TRAINING_MAX,
    lift_ids: Optional[List[str]] = None,
) -> ProgressionDefinition:
    """Create an AMRAP_PROGRESSION definition from (min_reps, increment) pairs."""
    pairs = thresholds or [(1, 5.0), (5, 10.0), (10, 15.0)]
    return ProgressionDefinition(
        id=progression_id,
        name="AMRAP",
        type="AMRAP_PROGRESSION",
        parameters={
            "maxType": max_type.value,
            "triggerType": "AFTER_SET",
            "thresholds": [{"minReps": r, "increment": i} for r, i in pairs],
        },
        lift_ids=lift_ids or [],
    )


def deload_progression(
    progression_id: str = "deload",
    *,
    failure_threshold: int = 3,
    deload_type: str = "percent",
    deload_percent: Optional[float] = 0.1,
    deload_amount: Optional[float] = None,
    max_type: MaxType = MaxType.TRAINING_MAX,
    lift_ids: Optional[List[str]] = None,
) -> ProgressionDefinition:
    """Create a DELOAD_ON_FAILURE definition."""
    parameters = {
        "maxType": max_type.value,
        "failureThreshold": failure_threshold,
        "deloadType": deload_type,
    }
    if deload_percent is not None:
        parameters["deloadPercent"] = deload_percent
    if deload_amount is not None:
        parameters["deloadAmount"] = deload_amount
    return ProgressionDefinition(
        id=progression_id,
        name="Deload on failure",
        type="DELOAD_ON_FAILURE",
        parameters=parameters,
        lift_ids=lift_ids or [],
    )


def program_config(
    config_id: str,
    progression_id: str,
    *,
    program_id: str = "program-1",
    lift_id: Optional[str] = None,
    priority: int = 0,
    enabled: bool = True,
    override_increment: Optional[float] = None,
) -> ProgressionConfig:
    """Create a ProgressionConfig."""
    return ProgressionConfig(
        id=config_id,
        program_id=program_id,
        progression_id=progression_id,
        lift_id=lift_id,
        priority=priority,
        enabled=enabled,
        override_increment=override_increment,
    )


def lift(lift_id: str) -> Lift:
    return Lift(id=lift_id, name=lift_id.replace("-", " ").title(), slug=lift_id)


def lift_max(
    max_id: str,
    *,
    user_id: str = "user-1",
    lift_id: str = "squat",
    value: float = 300.0,
    max_type: MaxType = MaxType.TRAINING_MAX,
    effective_date: Optional[datetime] = None,
) -> LiftMax:
    """Create a LiftMax, effective at 2026-01-01 UTC by default."""
    return LiftMax(
        id=max_id,
        user_id=user_id,
        lift_id=lift_id,
        type=max_type,
        value=value,
        effective_date=effective_date or datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


__all__ = [
    "FakeRepositories",
    "FakePositionRepository",
    "FakeScheduleRepository",
    "FakeProgressionRepository",
    "FakeProgressionConfigRepository",
    "FakeProgressionLogRepository",
    "FakeLiftRepository",
    "FakeLiftMaxRepository",
    "FakeSessionRepository",
    "build_schedule",
    "create_fake_repositories",
    "linear_progression",
    "cycle_progression",
    "amrap_progression",
    "deload_progression",
    "program_config",
    "lift",
    "lift_max",
]
