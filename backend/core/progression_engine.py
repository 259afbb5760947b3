"""
Progression Engine.

Part of STR-118: Progression rule engine

Applies a program's progression configs to a user's recorded maxes and
reports one outcome per (config, lift) item. Engine-level preconditions
(identity, unknown progression, not enrolled, nothing applicable) abort the
call with a typed error; anything that goes wrong for a single item is
captured in that item's outcome and the batch continues.

Concurrent triggers for one user and program are serialized by the keyed
locks inside a worker. Across workers the progression log's unique index is
the guard: an item claims its (progression, lift, position) key in the log
before it writes the new max, and a lost claim is reported as skipped.
"""
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterator, List, Optional
import logging
import uuid

from application.exceptions import (
    DuplicateLiftMaxError,
    DuplicateProgressionLogError,
    NoApplicableProgressionsError,
    NotFoundError,
    ProgramStateError,
)
from application.ports.lift_max_repository import LiftMaxRepository, LiftRepository
from application.ports.position_repository import PositionRepository
from application.ports.progression_repository import (
    ProgressionConfigRepository,
    ProgressionLogRepository,
    ProgressionRepository,
)
from backend.core.access import authorize_target_user
from backend.core.locks import KeyedLocks, position_locks
from backend.core.progression_rules import (
    ProgressionNotApplicable,
    ProgressionStrategy,
    build_strategy,
)
from domain.models.identity import CallerIdentity
from domain.models.lift_max import LiftMax
from domain.models.position import ProgramPosition
from domain.models.progression import (
    OutcomeStatus,
    ProgressionConfig,
    ProgressionDefinition,
    ProgressionLogEntry,
    ProgressionOutcome,
    TriggerEvent,
    TriggerResult,
    TriggerType,
)

logger = logging.getLogger(__name__)

MANUAL_CONFIG_ID = "manual"

SKIP_ALREADY_APPLIED = "already applied for this position"
SKIP_DUPLICATE_EFFECTIVE_DATE = "duplicate effective date"
SKIP_NO_LIFTS = "progression declares no lifts for a program-wide config"
SKIP_NON_POSITIVE = "resulting max would not be positive"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def is_trigger_due(trigger_type: TriggerType, position: ProgramPosition) -> bool:
    """
    Decide whether a trigger fires at the given position.

    The position is read after an advance: a day index of 0 means a week
    just rolled over, and week 1 day 0 of a later cycle means a cycle just
    completed. AFTER_SET and ON_FAILURE depend on performance data and are
    never due by position alone.
    """
    if not position.has_advanced:
        return False
    if trigger_type == TriggerType.AFTER_SESSION:
        return True
    week_rolled = position.current_day_index == 0
    if trigger_type == TriggerType.AFTER_WEEK:
        return week_rolled
    if trigger_type == TriggerType.AFTER_CYCLE:
        return (
            week_rolled
            and position.current_week == 1
            and position.current_cycle_iteration > 1
        )
    return False


@dataclass
class _WorkItem:
    """A selected config together with its resolved definition."""
    config: ProgressionConfig
    definition: ProgressionDefinition
    strategy: ProgressionStrategy
    # Narrows a program-wide config to one of its definition's lifts
    only_lift: Optional[str] = None

    def lift_ids(self) -> List[str]:
        if self.config.lift_id is not None:
            return [self.config.lift_id]
        if self.only_lift is not None:
            return [self.only_lift]
        return list(self.definition.lift_ids)


class ProgressionEngine:
    """Applies progression configs to a user's lift maxes."""

    def __init__(
        self,
        position_repo: PositionRepository,
        progression_repo: ProgressionRepository,
        config_repo: ProgressionConfigRepository,
        log_repo: ProgressionLogRepository,
        lift_repo: LiftRepository,
        lift_max_repo: LiftMaxRepository,
        *,
        locks: KeyedLocks = position_locks,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._positions = position_repo
        self._progressions = progression_repo
        self._configs = config_repo
        self._logs = log_repo
        self._lifts = lift_repo
        self._maxes = lift_max_repo
        self._locks = locks
        self._clock = clock
        self._new_id = id_factory

    # =========================================================================
    # Public API
    # =========================================================================

    def apply_manually(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        progression_id: str,
        lift_id: Optional[str] = None,
        *,
        force: bool = False,
        event: Optional[TriggerEvent] = None,
    ) -> TriggerResult:
        """
        Apply one progression for a user, optionally for a single lift.

        Args:
            caller: Authenticated caller
            user_id: Target user
            progression_id: Progression definition to apply
            lift_id: Restrict to this lift. Matches configs scoped to the
                lift and program-wide configs whose definition lists it.
            force: Include disabled configs and bypass the
                already-applied-for-this-position guard. Never bypasses max
                uniqueness.
            event: Reps performed or consecutive failures, for AMRAP and
                deload-on-failure progressions

        Returns:
            TriggerResult with one outcome per attempted item

        Raises:
            UnauthorizedError / ForbiddenError: Caller may not act on user_id
            NotFoundError: Progression, lift or enrollment missing
            ProgressionConfigurationError: Definition type or parameters invalid
            NoApplicableProgressionsError: No config matched (without force)
        """
        authorize_target_user(caller, user_id)

        definition = self._progressions.get_definition(progression_id)
        if definition is None:
            raise NotFoundError("progression", progression_id)
        strategy = build_strategy(definition)

        if lift_id is not None and self._lifts.get(lift_id) is None:
            raise NotFoundError("lift", lift_id)

        def covers_lift(config: ProgressionConfig) -> bool:
            if lift_id is None or config.lift_id == lift_id:
                return True
            return config.lift_id is None and lift_id in definition.lift_ids

        with self._locked_position(user_id) as position:
            configs = [
                c for c in self._configs.list_for_program(position.program_id)
                if c.progression_id == progression_id
                and covers_lift(c)
                and (force or c.enabled)
            ]

            if not configs:
                if not force:
                    raise NoApplicableProgressionsError()
                if lift_id is not None:
                    configs = [
                        ProgressionConfig(
                            id=MANUAL_CONFIG_ID,
                            program_id=position.program_id,
                            progression_id=progression_id,
                            lift_id=lift_id,
                        )
                    ]

            items = [
                _WorkItem(config=c, definition=definition, strategy=strategy, only_lift=lift_id)
                for c in configs
            ]
            return self._run(user_id, position, items, TriggerType.MANUAL, force=force, event=event)

    def apply_scheduled(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
    ) -> TriggerResult:
        """
        Apply every enabled progression that is due at the user's position.

        Definitions that fail to load or parse are reported as per-item
        errors; the remaining configs still run.

        Raises:
            NotFoundError: If the user is not enrolled
            NoApplicableProgressionsError: If nothing is due
        """
        authorize_target_user(caller, user_id)

        with self._locked_position(user_id) as position:
            items: List[_WorkItem] = []
            broken: List[ProgressionOutcome] = []
            definitions = {}

            for config in self._configs.list_for_program(position.program_id):
                if not config.enabled:
                    continue
                try:
                    if config.progression_id not in definitions:
                        definition = self._progressions.get_definition(config.progression_id)
                        if definition is None:
                            raise NotFoundError("progression", config.progression_id)
                        definitions[config.progression_id] = (definition, build_strategy(definition))
                    definition, strategy = definitions[config.progression_id]
                except ProgramStateError as e:
                    broken.append(self._error(config, config.lift_id, str(e)))
                    continue

                if is_trigger_due(strategy.trigger_type, position):
                    items.append(_WorkItem(config=config, definition=definition, strategy=strategy))

            if not items and not broken:
                raise NoApplicableProgressionsError("no progressions are due at the current position")

            result = self._run(user_id, position, items, TriggerType.SCHEDULED, force=False)
            result.results = broken + result.results
            return result

    def history(
        self,
        caller: Optional[CallerIdentity],
        user_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> List[ProgressionLogEntry]:
        """List the user's applied progressions, newest first."""
        authorize_target_user(caller, user_id)
        return self._logs.list_for_user(user_id, limit=limit, offset=offset)

    # =========================================================================
    # Batch Execution
    # =========================================================================

    def _require_position(self, user_id: str) -> ProgramPosition:
        position = self._positions.get(user_id)
        if position is None:
            raise NotFoundError("enrollment", user_id)
        return position

    @contextmanager
    def _locked_position(self, user_id: str) -> Iterator[ProgramPosition]:
        """Hold the user's program lock and yield the position read under it."""
        position = self._require_position(user_id)
        with self._locks.hold(user_id, position.program_id):
            # An advance may have landed between the first read and the lock
            yield self._require_position(user_id)

    def _run(
        self,
        user_id: str,
        position: ProgramPosition,
        items: List[_WorkItem],
        trigger_type: TriggerType,
        *,
        force: bool,
        event: Optional[TriggerEvent] = None,
    ) -> TriggerResult:
        # A single timestamp is the effective date of every max in the batch
        now = self._clock()
        ordered = sorted(items, key=lambda item: (item.config.priority, item.config.id))
        outcomes: List[ProgressionOutcome] = []

        for item in ordered:
            lift_ids = item.lift_ids()
            if not lift_ids:
                outcomes.append(self._skipped(item.config, None, SKIP_NO_LIFTS))
                continue

            for lift_id in lift_ids:
                outcomes.append(
                    self._apply_item(user_id, position, item, lift_id, now, trigger_type, force, event)
                )

        result = TriggerResult(
            user_id=user_id,
            program_id=position.program_id,
            trigger_type=trigger_type,
            timestamp=now,
            results=outcomes,
        )
        logger.info(
            f"Progressions for user {user_id}: {result.total_applied} applied, "
            f"{result.total_skipped} skipped, {result.total_errors} errors"
        )
        return result

    def _apply_item(
        self,
        user_id: str,
        position: ProgramPosition,
        item: _WorkItem,
        lift_id: str,
        now: datetime,
        trigger_type: TriggerType,
        force: bool,
        event: Optional[TriggerEvent],
    ) -> ProgressionOutcome:
        config = item.config
        strategy = item.strategy
        max_type = strategy.max_type

        try:
            if self._lifts.get(lift_id) is None:
                raise NotFoundError("lift", lift_id)

            if not force and self._logs.has_entry(
                user_id, config.progression_id, lift_id, position.position_key
            ):
                return self._skipped(config, lift_id, SKIP_ALREADY_APPLIED)

            current = self._maxes.get_current(user_id, lift_id, max_type, as_of=now)
            if current is None:
                return self._skipped(config, lift_id, f"no current {max_type.value} found for lift")

            try:
                delta = strategy.compute_delta(current.value, config.override_increment, event)
            except ProgressionNotApplicable as e:
                return self._skipped(config, lift_id, e.reason)
            new_value = current.value + delta
            if new_value <= 0:
                return self._skipped(config, lift_id, SKIP_NON_POSITIVE)

            if self._maxes.exists(user_id, lift_id, max_type, now):
                return self._skipped(config, lift_id, SKIP_DUPLICATE_EFFECTIVE_DATE)

            entry = ProgressionLogEntry(
                id=self._new_id(),
                user_id=user_id,
                progression_id=config.progression_id,
                lift_id=lift_id,
                max_type=max_type,
                previous_value=current.value,
                new_value=new_value,
                delta=delta,
                trigger_type=trigger_type,
                position_key=position.position_key,
                forced=force,
                applied_at=now,
            )
            try:
                self._logs.record(entry)
            except DuplicateProgressionLogError:
                return self._skipped(config, lift_id, SKIP_ALREADY_APPLIED)

            try:
                self._maxes.create(
                    LiftMax(
                        id=self._new_id(),
                        user_id=user_id,
                        lift_id=lift_id,
                        type=max_type,
                        value=new_value,
                        effective_date=now,
                        created_at=now,
                        updated_at=now,
                    )
                )
            except DuplicateLiftMaxError:
                self._logs.remove(entry.id)
                return self._skipped(config, lift_id, SKIP_DUPLICATE_EFFECTIVE_DATE)
            except Exception:
                self._logs.remove(entry.id)
                raise
        except ProgramStateError as e:
            logger.warning(
                f"Progression {config.progression_id} failed for user {user_id}, lift {lift_id}: {e}"
            )
            return self._error(config, lift_id, str(e))
        except Exception as e:
            logger.exception(
                f"Unexpected failure applying progression {config.progression_id} "
                f"for user {user_id}, lift {lift_id}"
            )
            return self._error(config, lift_id, f"internal error: {e}")

        return ProgressionOutcome(
            progression_id=config.progression_id,
            config_id=config.id,
            lift_id=lift_id,
            status=OutcomeStatus.APPLIED,
            max_type=max_type,
            previous_value=current.value,
            new_value=new_value,
            delta=delta,
            applied_at=now,
        )

    @staticmethod
    def _skipped(config: ProgressionConfig, lift_id: Optional[str], reason: str) -> ProgressionOutcome:
        return ProgressionOutcome(
            progression_id=config.progression_id,
            config_id=config.id,
            lift_id=lift_id,
            status=OutcomeStatus.SKIPPED,
            reason=reason,
        )

    @staticmethod
    def _error(config: ProgressionConfig, lift_id: Optional[str], message: str) -> ProgressionOutcome:
        return ProgressionOutcome(
            progression_id=config.progression_id,
            config_id=config.id,
            lift_id=lift_id,
            status=OutcomeStatus.ERROR,
            error=message,
        )
