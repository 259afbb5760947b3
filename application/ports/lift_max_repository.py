"""
Lift Max Repository Interfaces (Ports).

Part of STR-111: Lift maxes
"""
from datetime import datetime
from typing import List, Optional, Protocol

from domain.models.lift_max import Lift, LiftMax
from domain.models.progression import MaxType


class LiftRepository(Protocol):
    """Read access to lifts."""

    def get(self, lift_id: str) -> Optional[Lift]:
        ...


class LiftMaxRepository(Protocol):
    """
    Abstract interface for recorded maxes.

    Implementations must reject a second record with the same
    (user_id, lift_id, type, effective_date) by raising DuplicateLiftMaxError.
    """

    def get(self, max_id: str) -> Optional[LiftMax]:
        ...

    def get_current(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        *,
        as_of: datetime,
    ) -> Optional[LiftMax]:
        """
        Get the latest max effective at or before ``as_of``.

        Returns:
            The current max, or None if the user has none for that lift/type
        """
        ...

    def exists(
        self,
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        effective_date: datetime,
        *,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Check whether the uniqueness key is already taken."""
        ...

    def create(self, lift_max: LiftMax) -> LiftMax:
        ...

    def update(self, lift_max: LiftMax) -> LiftMax:
        ...

    def list_for_user(
        self,
        user_id: str,
        *,
        lift_id: Optional[str] = None,
        max_type: Optional[MaxType] = None,
    ) -> List[LiftMax]:
        """List a user's maxes, newest effective date first."""
        ...
