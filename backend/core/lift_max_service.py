"""
Lift Max Service.

Part of STR-111: Lift maxes

Create, edit and query a user's recorded maxes. Every write re-checks the
(user, lift, type, effective_date) uniqueness key; the store enforces the
same key so concurrent writers still get a DuplicateLiftMaxError.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional
import logging
import uuid

from application.exceptions import (
    DuplicateLiftMaxError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from application.ports.lift_max_repository import LiftMaxRepository, LiftRepository
from backend.core.access import authorize_target_user
from domain.models.identity import CallerIdentity
from domain.models.lift_max import LiftMax
from domain.models.progression import MaxType

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiftMaxService:
    """Business logic for recorded maxes."""

    def __init__(
        self,
        lift_max_repo: LiftMaxRepository,
        lift_repo: LiftRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._maxes = lift_max_repo
        self._lifts = lift_repo
        self._clock = clock

    def create(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        lift_id: str,
        max_type: MaxType,
        value: float,
        effective_date: Optional[datetime] = None,
    ) -> LiftMax:
        """
        Record a new max.

        Args:
            caller: Authenticated caller
            user_id: Owner of the max
            lift_id: Lift the max is for
            max_type: ONE_RM or TRAINING_MAX
            value: Max value, must be positive
            effective_date: Defaults to now

        Raises:
            ValidationError: If value is not positive
            NotFoundError: If the lift does not exist
            DuplicateLiftMaxError: If the uniqueness key is taken
        """
        authorize_target_user(caller, user_id)
        _validate_value(value)

        if self._lifts.get(lift_id) is None:
            raise NotFoundError("lift", lift_id)

        now = self._clock()
        effective_date = effective_date or now
        if self._maxes.exists(user_id, lift_id, max_type, effective_date):
            raise DuplicateLiftMaxError()

        created = self._maxes.create(
            LiftMax(
                id=str(uuid.uuid4()),
                user_id=user_id,
                lift_id=lift_id,
                type=max_type,
                value=value,
                effective_date=effective_date,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"Recorded {max_type.value} {value} for user {user_id}, lift {lift_id}")
        return created

    def update(
        self,
        caller: Optional[CallerIdentity],
        max_id: str,
        *,
        value: Optional[float] = None,
        effective_date: Optional[datetime] = None,
    ) -> LiftMax:
        """
        Edit the value and/or effective date of a max.

        Only ``value`` and ``effective_date`` are mutable.

        Raises:
            NotFoundError: If the max does not exist
            ForbiddenError: If a non-admin caller does not own the max
            DuplicateLiftMaxError: If the new effective date collides
        """
        if caller is None:
            raise UnauthorizedError()

        existing = self._maxes.get(max_id)
        if existing is None:
            raise NotFoundError("lift max", max_id)
        authorize_target_user(caller, existing.user_id)

        if value is not None:
            _validate_value(value)
        new_date = effective_date or existing.effective_date

        if new_date != existing.effective_date and self._maxes.exists(
            existing.user_id, existing.lift_id, existing.type, new_date, exclude_id=existing.id
        ):
            raise DuplicateLiftMaxError()

        updated = existing.model_copy(
            update={
                "value": value if value is not None else existing.value,
                "effective_date": new_date,
                "updated_at": self._clock(),
            }
        )
        return self._maxes.update(updated)

    def list_for_user(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        *,
        lift_id: Optional[str] = None,
        max_type: Optional[MaxType] = None,
    ) -> List[LiftMax]:
        authorize_target_user(caller, user_id)
        return self._maxes.list_for_user(user_id, lift_id=lift_id, max_type=max_type)

    def current(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        lift_id: str,
        max_type: MaxType,
    ) -> LiftMax:
        """
        Get the max currently in effect.

        Raises:
            NotFoundError: If the user has no max for that lift and type
        """
        authorize_target_user(caller, user_id)
        current = self._maxes.get_current(user_id, lift_id, max_type, as_of=self._clock())
        if current is None:
            raise NotFoundError("lift max", f"{lift_id}/{max_type.value}")
        return current


def _validate_value(value: float) -> None:
    if value <= 0:
        raise ValidationError(f"max value must be positive, got {value}", {"field": "value"})
