"""
Progression domain models.

Part of STR-118: Progression rule engine

A ProgressionDefinition is a reusable rule (type tag plus opaque
parameters). A ProgressionConfig links a definition to a program, optionally
scoped to one lift, with priority, enabled flag and an override increment.
Applying configs yields a TriggerResult with one outcome per attempted item.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field


class MaxType(str, Enum):
    """Kind of recorded max a progression adjusts."""

    ONE_RM = "ONE_RM"
    TRAINING_MAX = "TRAINING_MAX"


class TriggerType(str, Enum):
    """Event after which a progression becomes due."""

    AFTER_SESSION = "AFTER_SESSION"
    AFTER_WEEK = "AFTER_WEEK"
    AFTER_CYCLE = "AFTER_CYCLE"
    AFTER_SET = "AFTER_SET"
    ON_FAILURE = "ON_FAILURE"
    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"


class OutcomeStatus(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    ERROR = "error"


class ProgressionDefinition(BaseModel):
    """
    A reusable progression rule.

    ``parameters`` is interpreted only by the strategy registered for
    ``type``. ``lift_ids`` lists the lifts a program-wide config expands to.
    """

    id: str
    name: str
    type: str = Field(..., description="Strategy tag, e.g. LINEAR_PROGRESSION")
    parameters: Dict[str, Any] = Field(default_factory=dict)
    lift_ids: List[str] = Field(default_factory=list)


class ProgressionConfig(BaseModel):
    """A progression attached to a program, optionally for a single lift."""

    id: str
    program_id: str
    progression_id: str
    lift_id: Optional[str] = Field(
        default=None,
        description="Lift scope; None applies program-wide",
    )
    priority: int = Field(default=0, ge=0, description="Lower values apply first")
    enabled: bool = True
    override_increment: Optional[float] = Field(default=None, gt=0)

    @property
    def scope_key(self) -> tuple:
        """Uniqueness key of a config within its program."""
        return (self.program_id, self.progression_id, self.lift_id)


class TriggerEvent(BaseModel):
    """
    Performance data reported with a manual trigger.

    AMRAP progressions read ``reps_performed``; deload-on-failure reads
    ``consecutive_failures``. Position-driven progressions ignore both.
    """

    reps_performed: Optional[int] = Field(default=None, ge=0)
    consecutive_failures: Optional[int] = Field(default=None, ge=0)


class ProgressionOutcome(BaseModel):
    """Result of attempting one (config, lift) item."""

    progression_id: str
    config_id: Optional[str] = None
    lift_id: Optional[str] = None
    status: OutcomeStatus
    reason: Optional[str] = Field(default=None, description="Why the item was skipped")
    error: Optional[str] = None
    max_type: Optional[MaxType] = None
    previous_value: Optional[float] = None
    new_value: Optional[float] = None
    delta: Optional[float] = None
    applied_at: Optional[datetime] = None

    @property
    def applied(self) -> bool:
        return self.status == OutcomeStatus.APPLIED


class TriggerResult(BaseModel):
    """Aggregate result of one engine invocation."""

    user_id: str
    program_id: str
    trigger_type: TriggerType = TriggerType.MANUAL
    timestamp: datetime
    results: List[ProgressionOutcome] = Field(default_factory=list)

    @computed_field
    @property
    def total_applied(self) -> int:
        return sum(1 for r in self.results if r.status == OutcomeStatus.APPLIED)

    @computed_field
    @property
    def total_skipped(self) -> int:
        return sum(1 for r in self.results if r.status == OutcomeStatus.SKIPPED)

    @computed_field
    @property
    def total_errors(self) -> int:
        return sum(1 for r in self.results if r.status == OutcomeStatus.ERROR)


class ProgressionLogEntry(BaseModel):
    """Audit record of an applied progression."""

    id: str
    user_id: str
    progression_id: str
    lift_id: str
    max_type: MaxType
    previous_value: float
    new_value: float
    delta: float
    trigger_type: TriggerType
    position_key: str
    forced: bool = Field(
        default=False,
        description="Forced entries are exempt from the one-per-position rule",
    )
    applied_at: datetime
