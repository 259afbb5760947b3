"""
Lift and recorded max domain models.

Part of STR-111: Lift maxes
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from domain.models.progression import MaxType


class Lift(BaseModel):
    """A trainable movement (squat, bench press, ...)."""

    id: str
    name: str
    slug: Optional[str] = None


class LiftMax(BaseModel):
    """
    A recorded max for a user and lift.

    At most one record exists per (user_id, lift_id, type, effective_date).
    The "current" max is the latest record whose effective date is not in
    the future.
    """

    id: str
    user_id: str
    lift_id: str
    type: MaxType
    value: float = Field(..., gt=0)
    effective_date: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def identity_key(self) -> tuple:
        """The uniqueness key of this record."""
        return (self.user_id, self.lift_id, self.type, self.effective_date)
