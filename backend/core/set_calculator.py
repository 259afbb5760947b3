"""
Variable-Scheme Set Calculator.

Part of STR-126: Variable set schemes

Given the sets logged so far for a prescription, decides the next set to
perform or reports that the exercise is complete and why.

Supported schemes:
- MRS: repeat the opening weight for minimum-rep sets until a total is hit
- TOTAL_REPS: accumulate a rep total with a suggested rep count per set
- FATIGUE_DROP: drop the weight each set until a target RPE is reached

FIXED (and any other tag) is not a variable scheme.
"""
from dataclasses import dataclass
import logging
import math
from typing import ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, model_validator

from application.exceptions import (
    ForbiddenError,
    NoSetsLoggedError,
    NotFoundError,
    NotVariableSchemeError,
    SetSchemeConfigurationError,
    UnauthorizedError,
)
from application.ports.session_repository import SessionRepository
from domain.models.identity import CallerIdentity
from domain.models.session import LoggedSet, NextSet, NextSetResult

logger = logging.getLogger(__name__)

DEFAULT_ROUNDING_INCREMENT = 5.0


# =============================================================================
# Scheme Parameters
# =============================================================================


class _SchemeParameters(BaseModel):
    model_config = ConfigDict(extra="ignore")


class MRSParameters(_SchemeParameters):
    target_total_reps: int = Field(..., gt=0)
    min_reps_per_set: int = Field(..., gt=0)
    max_sets: int = Field(default=0, ge=0)
    number_of_mrs: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_target(self) -> "MRSParameters":
        if self.target_total_reps < self.min_reps_per_set:
            raise ValueError("target_total_reps must be >= min_reps_per_set")
        return self

    @property
    def effective_max_sets(self) -> int:
        return self.max_sets or 10


class TotalRepsParameters(_SchemeParameters):
    target_total_reps: int = Field(..., gt=0)
    suggested_reps_per_set: int = Field(default=0, ge=0)
    max_sets: int = Field(default=0, ge=0)

    @property
    def effective_suggested_reps(self) -> int:
        return self.suggested_reps_per_set or 10

    @property
    def effective_max_sets(self) -> int:
        return self.max_sets or 20


class FatigueDropParameters(_SchemeParameters):
    target_reps: int = Field(..., gt=0)
    start_rpe: float = Field(..., ge=1, le=10)
    stop_rpe: float = Field(..., ge=1, le=10)
    drop_percent: float = Field(..., ge=0, le=1)
    max_sets: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def validate_rpe_range(self) -> "FatigueDropParameters":
        if self.stop_rpe <= self.start_rpe:
            raise ValueError("stop RPE must be greater than start RPE")
        return self

    @property
    def effective_max_sets(self) -> int:
        return self.max_sets or 10


# =============================================================================
# Pure Calculation
# =============================================================================


@dataclass
class SetTotals:
    """Aggregates over every logged set."""
    sets: int
    reps: int
    last: LoggedSet


def _totals(logged_sets: List[LoggedSet]) -> SetTotals:
    ordered = sorted(logged_sets, key=lambda s: s.set_number)
    return SetTotals(
        sets=len(ordered),
        reps=sum(s.reps_completed for s in ordered),
        last=ordered[-1],
    )


def _complete(totals: SetTotals, reason: str) -> NextSetResult:
    return NextSetResult(
        next_set=None,
        is_complete=True,
        total_sets_completed=totals.sets,
        total_reps_completed=totals.reps,
        termination_reason=reason,
    )


def _continue(totals: SetTotals, weight: float, target_reps: int) -> NextSetResult:
    return NextSetResult(
        next_set=NextSet(
            set_number=totals.sets + 1,
            weight=weight,
            target_reps=target_reps,
            is_work_set=True,
        ),
        is_complete=False,
        total_sets_completed=totals.sets,
        total_reps_completed=totals.reps,
    )


def round_down(weight: float, increment: float = DEFAULT_ROUNDING_INCREMENT) -> float:
    """Round a weight down to the nearest loadable increment."""
    if increment <= 0:
        return weight
    # Tolerance absorbs float error such as 200 * 0.95 = 189.99999999999997
    return math.floor(weight / increment + 1e-9) * increment


class SetScheme:
    """A variable set scheme bound to its parsed parameters."""

    type_tag: ClassVar[str] = ""
    parameters_model: ClassVar[Type[_SchemeParameters]] = _SchemeParameters

    def __init__(self, raw: Dict, rounding_increment: float = DEFAULT_ROUNDING_INCREMENT):
        try:
            self.params = self.parameters_model.model_validate(raw)
        except PydanticValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise SetSchemeConfigurationError(
                f"invalid {self.type_tag} set scheme: {messages}"
            ) from e
        self.rounding_increment = rounding_increment

    def next_set(self, logged_sets: List[LoggedSet]) -> NextSetResult:
        raise NotImplementedError


class MRSScheme(SetScheme):
    type_tag = "MRS"
    parameters_model = MRSParameters

    def next_set(self, logged_sets: List[LoggedSet]) -> NextSetResult:
        p = self.params
        totals = _totals(logged_sets)

        if totals.reps >= p.target_total_reps:
            return _complete(totals, f"Target total reps reached ({totals.reps}/{p.target_total_reps})")
        if totals.last.reps_completed < p.min_reps_per_set:
            return _complete(
                totals,
                f"Failed to hit minimum reps ({totals.last.reps_completed}/{p.min_reps_per_set})",
            )
        if totals.sets >= p.effective_max_sets:
            return _complete(totals, "Maximum sets reached (safety limit)")

        # Every mini-set repeats the opening work-set weight
        ordered = sorted(logged_sets, key=lambda s: s.set_number)
        work_sets = [s for s in ordered if s.is_work_set] or ordered
        return _continue(totals, work_sets[0].weight, p.min_reps_per_set)


class TotalRepsScheme(SetScheme):
    type_tag = "TOTAL_REPS"
    parameters_model = TotalRepsParameters

    def next_set(self, logged_sets: List[LoggedSet]) -> NextSetResult:
        p = self.params
        totals = _totals(logged_sets)

        if totals.reps >= p.target_total_reps:
            return _complete(totals, f"Target total reps reached ({totals.reps}/{p.target_total_reps})")
        if totals.sets >= p.effective_max_sets:
            return _complete(totals, "Maximum sets reached (safety limit)")

        ordered = sorted(logged_sets, key=lambda s: s.set_number)
        return _continue(totals, ordered[0].weight, p.effective_suggested_reps)


class FatigueDropScheme(SetScheme):
    type_tag = "FATIGUE_DROP"
    parameters_model = FatigueDropParameters

    def next_set(self, logged_sets: List[LoggedSet]) -> NextSetResult:
        p = self.params
        totals = _totals(logged_sets)
        last_rpe = totals.last.rpe

        if last_rpe is not None and last_rpe >= p.stop_rpe:
            return _complete(totals, f"Target RPE reached ({last_rpe:g}/{p.stop_rpe:g})")
        if totals.sets >= p.effective_max_sets:
            return _complete(totals, "Maximum sets reached (safety limit)")

        weight = round_down(totals.last.weight * (1 - p.drop_percent), self.rounding_increment)
        if weight <= 0:
            return _complete(totals, "Weight dropped to zero")
        return _continue(totals, weight, p.target_reps)


SCHEMES: Dict[str, Type[SetScheme]] = {
    scheme.type_tag: scheme for scheme in (MRSScheme, TotalRepsScheme, FatigueDropScheme)
}


def is_variable_scheme(scheme_type: str) -> bool:
    return scheme_type.upper() in SCHEMES


def calculate_next_set(
    set_scheme: Dict,
    logged_sets: List[LoggedSet],
    rounding_increment: float = DEFAULT_ROUNDING_INCREMENT,
) -> NextSetResult:
    """
    Compute the next set for a variable scheme.

    Args:
        set_scheme: Scheme dict with ``type`` plus the scheme's parameters
        logged_sets: Sets logged so far for the prescription
        rounding_increment: Loadable weight increment for weight drops

    Returns:
        NextSetResult

    Raises:
        NotVariableSchemeError: If the scheme is FIXED or unknown
        NoSetsLoggedError: If no set has been logged yet
        SetSchemeConfigurationError: If the scheme parameters are invalid
    """
    scheme_type = str(set_scheme.get("type", "")).upper()
    scheme_cls = SCHEMES.get(scheme_type)
    if scheme_cls is None:
        raise NotVariableSchemeError(scheme_type)
    if not logged_sets:
        raise NoSetsLoggedError()
    return scheme_cls(set_scheme, rounding_increment).next_set(logged_sets)


# =============================================================================
# Service
# =============================================================================


class SessionService:
    """Next-set lookups inside a live session. Read only."""

    def __init__(
        self,
        session_repo: SessionRepository,
        *,
        rounding_increment: float = DEFAULT_ROUNDING_INCREMENT,
    ):
        self._sessions = session_repo
        self._rounding_increment = rounding_increment

    def next_set(
        self,
        caller: Optional[CallerIdentity],
        session_id: str,
        prescription_id: str,
    ) -> NextSetResult:
        """
        Get the next set for a prescription in a session.

        Raises:
            UnauthorizedError: If no caller identity is present
            NotFoundError: If the session or prescription does not exist
            ForbiddenError: If a non-admin caller does not own the session
            NotVariableSchemeError: If the prescription uses a fixed scheme
            NoSetsLoggedError: If nothing has been logged yet
        """
        if caller is None:
            raise UnauthorizedError()

        session = self._sessions.get_session(session_id)
        if session is None:
            raise NotFoundError("session", session_id)
        if session.user_id != caller.user_id and not caller.is_admin:
            raise ForbiddenError("cannot access another user's session")

        prescription = self._sessions.get_prescription(prescription_id)
        if prescription is None:
            raise NotFoundError("prescription", prescription_id)

        if not is_variable_scheme(prescription.scheme_type):
            raise NotVariableSchemeError(prescription.scheme_type)

        logged_sets = self._sessions.list_logged_sets(session_id, prescription_id)
        result = calculate_next_set(prescription.set_scheme, logged_sets, self._rounding_increment)
        logger.debug(
            f"Next set for session {session_id}, prescription {prescription_id}: "
            f"complete={result.is_complete}"
        )
        return result
