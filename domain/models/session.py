"""
Workout session, prescription and set models.

Part of STR-126: Variable set schemes
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class WorkoutSession(BaseModel):
    """A live or finished workout owned by one user."""

    id: str
    user_id: str
    status: str = "IN_PROGRESS"


class Prescription(BaseModel):
    """
    The prescribed work for one lift inside a session.

    ``set_scheme`` carries the scheme tag under ``type`` plus the scheme's
    own parameters.
    """

    id: str
    lift_id: str
    set_scheme: Dict[str, Any] = Field(default_factory=dict)

    @property
    def scheme_type(self) -> str:
        return str(self.set_scheme.get("type", "")).upper()


class LoggedSet(BaseModel):
    """A set the user actually performed."""

    set_number: int = Field(..., ge=1)
    weight: float = Field(..., ge=0)
    reps_completed: int = Field(..., ge=0)
    is_work_set: bool = True
    rpe: Optional[float] = Field(default=None, ge=1, le=10)


class NextSet(BaseModel):
    """The set the user should perform next."""

    set_number: int
    weight: float
    target_reps: int
    is_work_set: bool = True


class NextSetResult(BaseModel):
    """Either the next set or the reason the exercise is complete."""

    next_set: Optional[NextSet] = None
    is_complete: bool
    total_sets_completed: int
    total_reps_completed: int
    termination_reason: Optional[str] = None
