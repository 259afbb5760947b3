"""
Program Progression Configuration Service.

Part of STR-118: Progression rule engine

Links progression definitions to programs. Creation is admin only.
"""
from typing import List, Optional
import logging
import uuid

from application.exceptions import (
    DuplicateProgressionConfigError,
    NotFoundError,
    ValidationError,
)
from application.ports.position_repository import ScheduleRepository
from application.ports.progression_repository import (
    ProgressionConfigRepository,
    ProgressionRepository,
)
from backend.core.access import require_admin
from backend.core.progression_rules import build_strategy
from domain.models.identity import CallerIdentity
from domain.models.progression import ProgressionConfig

logger = logging.getLogger(__name__)


class ProgressionConfigService:
    """Create and list a program's progression configs."""

    def __init__(
        self,
        config_repo: ProgressionConfigRepository,
        progression_repo: ProgressionRepository,
        schedule_repo: ScheduleRepository,
    ):
        self._configs = config_repo
        self._progressions = progression_repo
        self._schedules = schedule_repo

    def list_for_program(self, program_id: str) -> List[ProgressionConfig]:
        """List configs ordered the way the engine evaluates them."""
        configs = self._configs.list_for_program(program_id)
        return sorted(configs, key=lambda c: (c.priority, c.id))

    def create(
        self,
        caller: Optional[CallerIdentity],
        program_id: str,
        progression_id: str,
        *,
        lift_id: Optional[str] = None,
        priority: int = 0,
        enabled: bool = True,
        override_increment: Optional[float] = None,
    ) -> ProgressionConfig:
        """
        Attach a progression to a program.

        Raises:
            UnauthorizedError / ForbiddenError: Caller is not an admin
            ValidationError: Negative priority or non-positive override
            NotFoundError: Program or progression does not exist
            ProgressionConfigurationError: Progression definition is invalid
            DuplicateProgressionConfigError: Scope already configured
        """
        require_admin(caller)

        if priority < 0:
            raise ValidationError("priority must be >= 0", {"field": "priority"})
        if override_increment is not None and override_increment <= 0:
            raise ValidationError(
                "override_increment must be positive", {"field": "override_increment"}
            )

        if self._schedules.get_cycle_schedule(program_id) is None:
            raise NotFoundError("program", program_id)
        definition = self._progressions.get_definition(progression_id)
        if definition is None:
            raise NotFoundError("progression", progression_id)
        build_strategy(definition)

        config = ProgressionConfig(
            id=str(uuid.uuid4()),
            program_id=program_id,
            progression_id=progression_id,
            lift_id=lift_id,
            priority=priority,
            enabled=enabled,
            override_increment=override_increment,
        )
        if any(c.scope_key == config.scope_key for c in self._configs.list_for_program(program_id)):
            raise DuplicateProgressionConfigError()

        created = self._configs.create(config)
        logger.info(
            f"Linked progression {progression_id} to program {program_id} "
            f"(lift={lift_id or 'all'}, priority={priority})"
        )
        return created
