"""
Unit tests for the progression engine.

Part of STR-118: Progression rule engine

Tests cover:
- Manual application (filters, force, override, ordering)
- Per-item failure isolation and result totals
- Skips: already applied, missing max, duplicate effective date
- Store-level once-per-position guard under concurrent triggers
- AMRAP and deload-on-failure triggers
- Scheduled application and trigger due rules
- History
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from itertools import count
import threading

import pytest

from application.exceptions import (
    DuplicateLiftMaxError,
    ForbiddenError,
    NoApplicableProgressionsError,
    NotFoundError,
    ProgressionConfigurationError,
    UnauthorizedError,
)
from backend.core.locks import KeyedLocks
from backend.core.progression_engine import (
    MANUAL_CONFIG_ID,
    SKIP_ALREADY_APPLIED,
    SKIP_DUPLICATE_EFFECTIVE_DATE,
    SKIP_NO_LIFTS,
    SKIP_NON_POSITIVE,
    ProgressionEngine,
    is_trigger_due,
)
from domain.models.position import ProgramPosition
from domain.models.progression import (
    MaxType,
    OutcomeStatus,
    ProgressionDefinition,
    TriggerEvent,
    TriggerType,
)
from tests.fakes import (
    amrap_progression,
    cycle_progression,
    deload_progression,
    lift,
    lift_max,
    linear_progression,
    program_config,
)
from tests.helpers import FIXED_NOW

pytestmark = pytest.mark.unit


def _position(day_index=0, week=1, cycle=1) -> ProgramPosition:
    return ProgramPosition(
        user_id="user-1",
        program_id="program-1",
        current_week=week,
        current_day_index=day_index,
        current_cycle_iteration=cycle,
        enrolled_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def engine(repos, clock):
    ids = count(1)
    return ProgressionEngine(
        repos.positions,
        repos.progressions,
        repos.configs,
        repos.logs,
        repos.lifts,
        repos.maxes,
        locks=KeyedLocks(),
        clock=clock,
        id_factory=lambda: f"id-{next(ids)}",
    )


@pytest.fixture
def enrolled(repos):
    """User enrolled after one advance, with squat and bench maxes."""
    repos.positions.seed(_position(day_index=1))
    repos.lifts.seed(lift("squat"), lift("bench"), lift("deadlift"))
    repos.maxes.seed(
        lift_max("m-squat", lift_id="squat", value=300),
        lift_max("m-bench", lift_id="bench", value=200),
    )
    return repos


def _current(repos, lift_id, max_type=MaxType.TRAINING_MAX):
    return repos.maxes.get_current("user-1", lift_id, max_type, as_of=FIXED_NOW)


# =============================================================================
# Manual Application
# =============================================================================


class TestApplyManually:
    """Tests for ProgressionEngine.apply_manually()."""

    def test_applies_linear_increment(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", increment=5))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.total_applied == 1
        outcome = result.results[0]
        assert outcome.status == OutcomeStatus.APPLIED
        assert outcome.previous_value == 300
        assert outcome.new_value == 305
        assert outcome.delta == 5
        assert outcome.applied_at == FIXED_NOW
        assert _current(enrolled, "squat").value == 305
        assert result.trigger_type == TriggerType.MANUAL

    def test_new_max_keeps_previous_record(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        engine.apply_manually(user_caller, "user-1", "linear-5")

        squat_values = sorted(m.value for m in enrolled.maxes.all if m.lift_id == "squat")
        assert squat_values == [300, 305]

    def test_records_log_entry(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        engine.apply_manually(user_caller, "user-1", "linear-5")

        [entry] = enrolled.logs.entries
        assert entry.lift_id == "squat"
        assert entry.previous_value == 300
        assert entry.new_value == 305
        assert entry.trigger_type == TriggerType.MANUAL
        assert entry.position_key == "c1-w1-d1"

    def test_override_increment_replaces_definition_increment(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", increment=5))
        enrolled.configs.seed(
            program_config("cfg-1", "linear-5", lift_id="squat", override_increment=2.5)
        )

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].delta == 2.5
        assert result.results[0].new_value == 302.5

    def test_filters_by_lift(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(
            program_config("cfg-squat", "linear-5", lift_id="squat"),
            program_config("cfg-bench", "linear-5", lift_id="bench"),
        )

        result = engine.apply_manually(user_caller, "user-1", "linear-5", lift_id="bench")

        assert [o.lift_id for o in result.results] == ["bench"]
        assert _current(enrolled, "squat").value == 300

    def test_lift_filter_matches_program_wide_config(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", lift_ids=["squat", "bench"]))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5", lift_id="squat")

        assert [o.lift_id for o in result.results] == ["squat"]
        assert result.results[0].config_id == "cfg-all"
        assert _current(enrolled, "squat").value == 305
        assert _current(enrolled, "bench").value == 200

    def test_lift_filter_skips_program_wide_config_for_other_lifts(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", lift_ids=["bench"]))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))

        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_manually(user_caller, "user-1", "linear-5", lift_id="squat")

    def test_program_wide_config_expands_to_definition_lifts(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", lift_ids=["squat", "bench"]))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert {o.lift_id for o in result.results} == {"squat", "bench"}
        assert result.total_applied == 2

    def test_program_wide_config_without_lifts_is_skipped(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == SKIP_NO_LIFTS

    def test_priority_order_then_id(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(
            program_config("cfg-c", "linear-5", lift_id="deadlift", priority=1),
            program_config("cfg-b", "linear-5", lift_id="bench", priority=0),
            program_config("cfg-a", "linear-5", lift_id="squat", priority=1),
        )

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert [o.config_id for o in result.results] == ["cfg-b", "cfg-a", "cfg-c"]

    def test_disabled_configs_ignored_without_force(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat", enabled=False))

        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_manually(user_caller, "user-1", "linear-5")

        assert _current(enrolled, "squat").value == 300

    def test_force_includes_disabled_configs(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat", enabled=False))

        result = engine.apply_manually(user_caller, "user-1", "linear-5", force=True)

        assert result.total_applied == 1

    def test_force_without_config_applies_to_given_lift(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))

        result = engine.apply_manually(
            user_caller, "user-1", "linear-5", lift_id="bench", force=True
        )

        assert result.results[0].config_id == MANUAL_CONFIG_ID
        assert result.results[0].new_value == 205

    def test_force_without_config_or_lift_is_empty(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5", force=True)

        assert result.results == []
        assert result.total_applied == 0

    def test_no_applicable_without_force(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_manually(user_caller, "user-1", "linear-5")

    def test_unknown_progression(self, engine, enrolled, user_caller):
        with pytest.raises(NotFoundError):
            engine.apply_manually(user_caller, "user-1", "missing")

    def test_unknown_lift(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        with pytest.raises(NotFoundError):
            engine.apply_manually(user_caller, "user-1", "linear-5", lift_id="curl")

    def test_not_enrolled(self, engine, repos, user_caller):
        repos.progressions.seed(linear_progression("linear-5"))
        with pytest.raises(NotFoundError):
            engine.apply_manually(user_caller, "user-1", "linear-5")

    def test_unknown_progression_type(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(
            ProgressionDefinition(id="odd", name="Odd", type="MYSTERY", parameters={})
        )
        with pytest.raises(ProgressionConfigurationError):
            engine.apply_manually(user_caller, "user-1", "odd")

    def test_missing_identity(self, engine, enrolled):
        with pytest.raises(UnauthorizedError):
            engine.apply_manually(None, "user-1", "linear-5")

    def test_other_user_forbidden(self, engine, enrolled, other_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        with pytest.raises(ForbiddenError):
            engine.apply_manually(other_caller, "user-1", "linear-5")

        assert enrolled.logs.entries == []

    def test_admin_may_apply_for_user(self, engine, enrolled, admin_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        result = engine.apply_manually(admin_caller, "user-1", "linear-5")

        assert result.total_applied == 1


# =============================================================================
# Per-Item Outcomes
# =============================================================================


class TestItemOutcomes:
    """Skips and errors are reported per item and never abort the batch."""

    def test_missing_lift_is_isolated_error(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(
            program_config("cfg-1", "linear-5", lift_id="squat"),
            program_config("cfg-2", "linear-5", lift_id="ghost-lift"),
            program_config("cfg-3", "linear-5", lift_id="bench"),
        )

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.total_errors == 1
        assert result.total_applied == 2
        assert result.total_applied + result.total_skipped + result.total_errors == len(result.results) == 3
        [error] = [o for o in result.results if o.status == OutcomeStatus.ERROR]
        assert error.lift_id == "ghost-lift"
        assert "lift not found" in error.error

    def test_unexpected_failure_is_isolated(self, engine, enrolled, user_caller, monkeypatch):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(
            program_config("cfg-1", "linear-5", lift_id="squat"),
            program_config("cfg-2", "linear-5", lift_id="bench"),
        )
        original_get_current = enrolled.maxes.get_current

        def flaky_get_current(user_id, lift_id, max_type, *, as_of):
            if lift_id == "squat":
                raise RuntimeError("connection reset")
            return original_get_current(user_id, lift_id, max_type, as_of=as_of)

        monkeypatch.setattr(enrolled.maxes, "get_current", flaky_get_current)

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        statuses = {o.lift_id: o.status for o in result.results}
        assert statuses == {"squat": OutcomeStatus.ERROR, "bench": OutcomeStatus.APPLIED}
        assert "connection reset" in result.results[0].error

    def test_no_current_max_is_skipped(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="deadlift"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == "no current TRAINING_MAX found for lift"

    def test_future_max_is_not_current(self, engine, enrolled, user_caller):
        enrolled.maxes.seed(
            lift_max("m-future", lift_id="squat", value=400, effective_date=FIXED_NOW + timedelta(days=7))
        )
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].previous_value == 300

    def test_duplicate_effective_date_is_skipped(self, engine, enrolled, user_caller):
        enrolled.maxes.seed(lift_max("m-today", lift_id="squat", value=310, effective_date=FIXED_NOW))
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == SKIP_DUPLICATE_EFFECTIVE_DATE
        assert enrolled.logs.entries == []

    def test_store_conflict_is_skipped(self, engine, enrolled, user_caller, monkeypatch):
        """A concurrent writer taking the key between check and insert is a skip."""
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))

        def racing_create(lift_max):
            raise DuplicateLiftMaxError()

        monkeypatch.setattr(enrolled.maxes, "create", racing_create)

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == SKIP_DUPLICATE_EFFECTIVE_DATE

    def test_second_progression_at_same_timestamp_is_skipped(self, engine, enrolled, user_caller):
        """A second progression for the same lift and instant cannot add another max."""
        enrolled.progressions.seed(
            linear_progression("linear-5", increment=5),
            cycle_progression("cycle-10", increment=10),
        )
        enrolled.configs.seed(
            program_config("cfg-1", "linear-5", lift_id="squat"),
        )

        engine.apply_manually(user_caller, "user-1", "linear-5")
        enrolled.configs.seed(program_config("cfg-2", "cycle-10", lift_id="squat"))
        result = engine.apply_manually(user_caller, "user-1", "cycle-10")

        assert result.results[0].reason == SKIP_DUPLICATE_EFFECTIVE_DATE
        assert _current(enrolled, "squat").value == 305

    def test_already_applied_for_position(self, engine, enrolled, repos, clock, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))
        engine.apply_manually(user_caller, "user-1", "linear-5")

        later = ProgressionEngine(
            repos.positions, repos.progressions, repos.configs, repos.logs,
            repos.lifts, repos.maxes,
            locks=KeyedLocks(),
            clock=lambda: FIXED_NOW + timedelta(hours=1),
        )
        result = later.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == SKIP_ALREADY_APPLIED
        assert _current(enrolled, "squat").value == 305

    def test_force_bypasses_already_applied(self, engine, enrolled, repos, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))
        engine.apply_manually(user_caller, "user-1", "linear-5")

        later = ProgressionEngine(
            repos.positions, repos.progressions, repos.configs, repos.logs,
            repos.lifts, repos.maxes,
            locks=KeyedLocks(),
            clock=lambda: FIXED_NOW + timedelta(hours=1),
        )
        result = later.apply_manually(user_caller, "user-1", "linear-5", force=True)

        assert result.results[0].status == OutcomeStatus.APPLIED
        assert result.results[0].new_value == 310

    def test_one_rm_progression_leaves_training_max(self, engine, enrolled, user_caller):
        enrolled.maxes.seed(lift_max("m-1rm", lift_id="squat", value=340, max_type=MaxType.ONE_RM))
        enrolled.progressions.seed(linear_progression("linear-1rm", max_type=MaxType.ONE_RM))
        enrolled.configs.seed(program_config("cfg-1", "linear-1rm", lift_id="squat"))

        engine.apply_manually(user_caller, "user-1", "linear-1rm")

        assert _current(enrolled, "squat", MaxType.ONE_RM).value == 345
        assert _current(enrolled, "squat", MaxType.TRAINING_MAX).value == 300


# =============================================================================
# Once-Per-Position Guard
# =============================================================================


def _worker(repos, offset_seconds: int) -> ProgressionEngine:
    """An engine with its own locks, as in a separate process."""
    return ProgressionEngine(
        repos.positions, repos.progressions, repos.configs, repos.logs,
        repos.lifts, repos.maxes,
        locks=KeyedLocks(),
        clock=lambda: FIXED_NOW + timedelta(seconds=offset_seconds),
    )


class TestOncePerPositionGuard:
    """The progression log's unique key is the guard across workers."""

    @pytest.fixture
    def squat_linear(self, enrolled):
        enrolled.progressions.seed(linear_progression("linear-5"))
        enrolled.configs.seed(program_config("cfg-1", "linear-5", lift_id="squat"))
        return enrolled

    def test_concurrent_workers_apply_once(self, squat_linear, user_caller, monkeypatch):
        both_checked = threading.Barrier(2, timeout=5)
        original_has_entry = squat_linear.logs.has_entry

        def has_entry_then_wait(*args):
            found = original_has_entry(*args)
            both_checked.wait()
            return found

        monkeypatch.setattr(squat_linear.logs, "has_entry", has_entry_then_wait)
        workers = [_worker(squat_linear, 0), _worker(squat_linear, 1)]

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(w.apply_manually, user_caller, "user-1", "linear-5") for w in workers
            ]
            outcomes = [f.result().results[0] for f in futures]

        assert sorted(o.status.value for o in outcomes) == ["applied", "skipped"]
        [skipped] = [o for o in outcomes if o.status == OutcomeStatus.SKIPPED]
        assert skipped.reason == SKIP_ALREADY_APPLIED
        assert len(squat_linear.logs.entries) == 1
        assert sorted(m.value for m in squat_linear.maxes.all if m.lift_id == "squat") == [300, 305]

    def test_lost_claim_is_skipped(self, engine, squat_linear, user_caller, monkeypatch):
        engine.apply_manually(user_caller, "user-1", "linear-5")
        # A worker whose read of the log predates the first application
        monkeypatch.setattr(squat_linear.logs, "has_entry", lambda *args: False)

        result = _worker(squat_linear, 3600).apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == SKIP_ALREADY_APPLIED
        assert sorted(m.value for m in squat_linear.maxes.all if m.lift_id == "squat") == [300, 305]

    def test_forced_entries_do_not_claim_the_position(self, engine, squat_linear, user_caller):
        engine.apply_manually(user_caller, "user-1", "linear-5")
        _worker(squat_linear, 60).apply_manually(user_caller, "user-1", "linear-5", force=True)

        assert [e.forced for e in squat_linear.logs.entries] == [False, True]
        assert sorted(m.value for m in squat_linear.maxes.all if m.lift_id == "squat") == [300, 305, 310]

    def test_claim_released_when_max_conflicts(self, engine, squat_linear, user_caller, monkeypatch):
        def racing_create(lift_max):
            raise DuplicateLiftMaxError()

        monkeypatch.setattr(squat_linear.maxes, "create", racing_create)

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].reason == SKIP_DUPLICATE_EFFECTIVE_DATE
        assert squat_linear.logs.entries == []

    def test_claim_released_on_unexpected_failure(self, engine, squat_linear, user_caller, monkeypatch):
        def failing_create(lift_max):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(squat_linear.maxes, "create", failing_create)

        result = engine.apply_manually(user_caller, "user-1", "linear-5")

        assert result.results[0].status == OutcomeStatus.ERROR
        assert squat_linear.logs.entries == []

    def test_position_read_again_under_lock(self, engine, squat_linear, user_caller, monkeypatch):
        reads = count()
        before, after = _position(day_index=1), _position(day_index=2)
        monkeypatch.setattr(
            squat_linear.positions, "get", lambda user_id: before if next(reads) == 0 else after
        )

        engine.apply_manually(user_caller, "user-1", "linear-5")

        [entry] = squat_linear.logs.entries
        assert entry.position_key == "c1-w1-d2"


# =============================================================================
# Event-Driven Progressions
# =============================================================================


class TestEventDrivenProgressions:
    """AMRAP and deload-on-failure read the trigger event."""

    def test_amrap_increment_from_reps(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(amrap_progression("amrap", thresholds=[(1, 5.0), (5, 10.0)]))
        enrolled.configs.seed(program_config("cfg-1", "amrap", lift_id="squat"))

        result = engine.apply_manually(
            user_caller, "user-1", "amrap", event=TriggerEvent(reps_performed=6)
        )

        assert result.results[0].delta == 10
        assert _current(enrolled, "squat").value == 310

    def test_amrap_below_threshold_is_skipped(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(amrap_progression("amrap", thresholds=[(3, 5.0)]))
        enrolled.configs.seed(program_config("cfg-1", "amrap", lift_id="squat"))

        result = engine.apply_manually(
            user_caller, "user-1", "amrap", event=TriggerEvent(reps_performed=1)
        )

        assert result.results[0].status == OutcomeStatus.SKIPPED
        assert result.results[0].reason == "no threshold met: reps=1, minimum required=3"
        assert enrolled.logs.entries == []

    def test_deload_lowers_max(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(deload_progression("deload", failure_threshold=3, deload_percent=0.1))
        enrolled.configs.seed(program_config("cfg-1", "deload", lift_id="squat"))

        result = engine.apply_manually(
            user_caller, "user-1", "deload", event=TriggerEvent(consecutive_failures=3)
        )

        outcome = result.results[0]
        assert outcome.delta == -30
        assert outcome.new_value == 270
        [entry] = enrolled.logs.entries
        assert entry.delta == -30

    def test_deload_to_zero_is_skipped(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(
            deload_progression("deload", deload_type="fixed", deload_percent=None, deload_amount=500)
        )
        enrolled.configs.seed(program_config("cfg-1", "deload", lift_id="squat"))

        result = engine.apply_manually(
            user_caller, "user-1", "deload", event=TriggerEvent(consecutive_failures=5)
        )

        assert result.results[0].reason == SKIP_NON_POSITIVE
        assert _current(enrolled, "squat").value == 300

    def test_event_driven_progressions_never_scheduled(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(amrap_progression("amrap"), deload_progression("deload"))
        enrolled.configs.seed(
            program_config("cfg-1", "amrap", lift_id="squat"),
            program_config("cfg-2", "deload", lift_id="bench"),
        )

        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_scheduled(user_caller, "user-1")


# =============================================================================
# Scheduled Application
# =============================================================================


class TestIsTriggerDue:
    """Tests for is_trigger_due()."""

    def test_nothing_due_before_first_advance(self):
        position = _position(day_index=None)
        for trigger in (TriggerType.AFTER_SESSION, TriggerType.AFTER_WEEK, TriggerType.AFTER_CYCLE):
            assert is_trigger_due(trigger, position) is False

    def test_after_session_due_after_any_advance(self):
        assert is_trigger_due(TriggerType.AFTER_SESSION, _position(day_index=2)) is True

    def test_after_week_due_on_week_rollover(self):
        assert is_trigger_due(TriggerType.AFTER_WEEK, _position(day_index=0, week=2)) is True
        assert is_trigger_due(TriggerType.AFTER_WEEK, _position(day_index=1, week=2)) is False

    def test_after_cycle_due_on_cycle_rollover(self):
        assert is_trigger_due(TriggerType.AFTER_CYCLE, _position(day_index=0, week=1, cycle=2)) is True
        assert is_trigger_due(TriggerType.AFTER_CYCLE, _position(day_index=0, week=2, cycle=2)) is False
        assert is_trigger_due(TriggerType.AFTER_CYCLE, _position(day_index=0, week=1, cycle=1)) is False

    def test_manual_never_scheduled(self):
        assert is_trigger_due(TriggerType.MANUAL, _position(day_index=0, cycle=3)) is False

    @pytest.mark.parametrize("trigger", [TriggerType.AFTER_SET, TriggerType.ON_FAILURE])
    def test_performance_triggers_never_scheduled(self, trigger):
        assert is_trigger_due(trigger, _position(day_index=0, week=1, cycle=2)) is False


class TestApplyScheduled:
    """Tests for ProgressionEngine.apply_scheduled()."""

    def test_applies_only_due_progressions(self, engine, repos, user_caller):
        repos.positions.seed(_position(day_index=1, week=2))
        repos.lifts.seed(lift("squat"), lift("bench"))
        repos.maxes.seed(
            lift_max("m-squat", lift_id="squat", value=300),
            lift_max("m-bench", lift_id="bench", value=200),
        )
        repos.progressions.seed(
            linear_progression("per-session", trigger_type="AFTER_SESSION"),
            cycle_progression("per-cycle"),
        )
        repos.configs.seed(
            program_config("cfg-1", "per-session", lift_id="squat"),
            program_config("cfg-2", "per-cycle", lift_id="bench"),
        )

        result = engine.apply_scheduled(user_caller, "user-1")

        assert result.trigger_type == TriggerType.SCHEDULED
        assert [o.lift_id for o in result.results] == ["squat"]

    def test_cycle_progression_due_after_cycle(self, engine, repos, user_caller):
        repos.positions.seed(_position(day_index=0, week=1, cycle=2))
        repos.lifts.seed(lift("bench"))
        repos.maxes.seed(lift_max("m-bench", lift_id="bench", value=200))
        repos.progressions.seed(cycle_progression("per-cycle", increment=10))
        repos.configs.seed(program_config("cfg-2", "per-cycle", lift_id="bench"))

        result = engine.apply_scheduled(user_caller, "user-1")

        assert result.results[0].new_value == 210

    def test_disabled_configs_not_scheduled(self, engine, repos, user_caller):
        repos.positions.seed(_position(day_index=1))
        repos.progressions.seed(linear_progression("per-session"))
        repos.configs.seed(program_config("cfg-1", "per-session", lift_id="squat", enabled=False))

        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_scheduled(user_caller, "user-1")

    def test_nothing_due(self, engine, repos, user_caller):
        repos.positions.seed(_position(day_index=None))
        repos.progressions.seed(linear_progression("per-session"))
        repos.configs.seed(program_config("cfg-1", "per-session", lift_id="squat"))

        with pytest.raises(NoApplicableProgressionsError):
            engine.apply_scheduled(user_caller, "user-1")

    def test_broken_definition_reported_and_batch_continues(self, engine, repos, user_caller):
        repos.positions.seed(_position(day_index=1))
        repos.lifts.seed(lift("squat"))
        repos.maxes.seed(lift_max("m-squat", lift_id="squat", value=300))
        repos.progressions.seed(
            linear_progression("per-session"),
            ProgressionDefinition(id="broken", name="Broken", type="LINEAR_PROGRESSION", parameters={}),
        )
        repos.configs.seed(
            program_config("cfg-1", "per-session", lift_id="squat"),
            program_config("cfg-2", "broken", lift_id="squat"),
            program_config("cfg-3", "deleted-progression", lift_id="squat"),
        )

        result = engine.apply_scheduled(user_caller, "user-1")

        assert result.total_applied == 1
        assert result.total_errors == 2
        assert len(result.results) == 3

    def test_not_enrolled(self, engine, user_caller):
        with pytest.raises(NotFoundError):
            engine.apply_scheduled(user_caller, "user-1")


# =============================================================================
# History
# =============================================================================


class TestHistory:
    def test_history_lists_applied_entries(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", lift_ids=["squat", "bench"]))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))
        engine.apply_manually(user_caller, "user-1", "linear-5")

        history = engine.history(user_caller, "user-1")

        assert {e.lift_id for e in history} == {"squat", "bench"}

    def test_history_pagination(self, engine, enrolled, user_caller):
        enrolled.progressions.seed(linear_progression("linear-5", lift_ids=["squat", "bench"]))
        enrolled.configs.seed(program_config("cfg-all", "linear-5"))
        engine.apply_manually(user_caller, "user-1", "linear-5")

        assert len(engine.history(user_caller, "user-1", limit=1)) == 1
        assert len(engine.history(user_caller, "user-1", limit=1, offset=1)) == 1
        assert engine.history(user_caller, "user-1", offset=2) == []

    def test_history_of_other_user_forbidden(self, engine, other_caller):
        with pytest.raises(ForbiddenError):
            engine.history(other_caller, "user-1")
