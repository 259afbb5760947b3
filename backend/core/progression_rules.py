"""
Progression Strategies.

Part of STR-118: Progression rule engine

Each progression type tag maps to a strategy class that parses the
definition's parameters and computes the delta to apply to a max. New types
are added by registering another strategy; the engine never switches on the
tag itself.

Parameters are stored as JSON with camelCase keys (``maxType``,
``triggerType``, ``minReps``); snake_case keys are accepted as well.

Strategies:
- LINEAR_PROGRESSION: fixed increment after every session or week
- CYCLE_PROGRESSION: fixed increment once per completed cycle
- AMRAP_PROGRESSION: increment picked from a reps threshold table
- DELOAD_ON_FAILURE: percent or fixed reduction after repeated failures
"""
from typing import Callable, ClassVar, Dict, List, Literal, Optional, Type

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from application.exceptions import ProgressionConfigurationError
from domain.models.progression import MaxType, ProgressionDefinition, TriggerEvent, TriggerType


class ProgressionNotApplicable(Exception):
    """
    Raised by a strategy when the trigger event does not warrant a change.

    The engine reports the item as skipped with ``reason``.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _checked_override(override: float) -> float:
    if override <= 0:
        raise ProgressionConfigurationError(
            f"override increment must be positive, got {override}"
        )
    return override


# =============================================================================
# Parameter Models
# =============================================================================


class StrategyParameters(BaseModel):
    """Parameters every strategy carries."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_type: MaxType = Field(..., alias="maxType")


class IncrementParameters(StrategyParameters):
    """Parameters shared by increment-based progressions."""

    increment: float = Field(..., gt=0)


class LinearParameters(IncrementParameters):
    trigger_type: TriggerType = Field(..., alias="triggerType")

    @field_validator("trigger_type")
    @classmethod
    def validate_trigger(cls, v: TriggerType) -> TriggerType:
        if v not in (TriggerType.AFTER_SESSION, TriggerType.AFTER_WEEK):
            raise ValueError("linear progression only supports AFTER_SESSION and AFTER_WEEK triggers")
        return v


class CycleParameters(IncrementParameters):
    pass


class RepsThreshold(BaseModel):
    """Minimum AMRAP reps that earn ``increment``."""

    model_config = ConfigDict(populate_by_name=True)

    min_reps: int = Field(..., ge=0, alias="minReps")
    increment: float = Field(..., gt=0)


class AMRAPParameters(StrategyParameters):
    trigger_type: TriggerType = Field(default=TriggerType.AFTER_SET, alias="triggerType")
    thresholds: List[RepsThreshold] = Field(..., min_length=1)

    @field_validator("trigger_type")
    @classmethod
    def validate_trigger(cls, v: TriggerType) -> TriggerType:
        if v != TriggerType.AFTER_SET:
            raise ValueError("AMRAP progression requires the AFTER_SET trigger")
        return v

    @field_validator("thresholds")
    @classmethod
    def sort_thresholds(cls, v: List[RepsThreshold]) -> List[RepsThreshold]:
        ordered = sorted(v, key=lambda t: t.min_reps)
        for previous, current in zip(ordered, ordered[1:]):
            if current.min_reps == previous.min_reps:
                raise ValueError(f"duplicate threshold for minReps={current.min_reps}")
        return ordered


class DeloadParameters(StrategyParameters):
    failure_threshold: int = Field(..., ge=1, alias="failureThreshold")
    deload_type: Literal["percent", "fixed"] = Field(..., alias="deloadType")
    deload_percent: Optional[float] = Field(default=None, gt=0, le=1, alias="deloadPercent")
    deload_amount: Optional[float] = Field(default=None, gt=0, alias="deloadAmount")

    @model_validator(mode="after")
    def validate_deload(self) -> "DeloadParameters":
        if self.deload_type == "percent" and self.deload_percent is None:
            raise ValueError("deloadPercent is required for percent deloads")
        if self.deload_type == "fixed" and self.deload_amount is None:
            raise ValueError("deloadAmount is required for fixed deloads")
        return self


# =============================================================================
# Strategies
# =============================================================================


class ProgressionStrategy:
    """
    Base class for progression strategies.

    Subclasses set ``parameters_model`` and implement ``trigger_type``. The
    override increment is applied through ``resolve_increment``; a strategy
    whose formula has several terms can override that hook to substitute
    only the term the override stands for.
    """

    type_tag: ClassVar[str] = ""
    parameters_model: ClassVar[Type[StrategyParameters]] = IncrementParameters

    def __init__(self, definition: ProgressionDefinition):
        self.definition = definition
        try:
            self.params = self.parameters_model.model_validate(definition.parameters)
        except PydanticValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise ProgressionConfigurationError(
                f"invalid parameters for {self.type_tag} progression {definition.id}: {messages}"
            ) from e

    @property
    def max_type(self) -> MaxType:
        return self.params.max_type

    @property
    def trigger_type(self) -> TriggerType:
        raise NotImplementedError

    def resolve_increment(self, override: Optional[float] = None) -> float:
        """Return the increment to use, honoring a per-config override."""
        if override is None:
            return self.params.increment
        return _checked_override(override)

    def compute_delta(
        self,
        current_value: float,
        override: Optional[float] = None,
        event: Optional[TriggerEvent] = None,
    ) -> float:
        """
        Compute the change to apply to ``current_value``.

        Args:
            current_value: The user's current max value
            override: Config-level increment override, if any
            event: Performance data reported with the trigger, if any

        Returns:
            Signed delta to add to the current value

        Raises:
            ProgressionNotApplicable: The event does not warrant a change
        """
        return self.resolve_increment(override)


_REGISTRY: Dict[str, Type[ProgressionStrategy]] = {}


def register_strategy(type_tag: str) -> Callable[[Type[ProgressionStrategy]], Type[ProgressionStrategy]]:
    """Class decorator registering a strategy under a type tag."""

    def decorator(cls: Type[ProgressionStrategy]) -> Type[ProgressionStrategy]:
        cls.type_tag = type_tag
        _REGISTRY[type_tag] = cls
        return cls

    return decorator


@register_strategy("LINEAR_PROGRESSION")
class LinearProgression(ProgressionStrategy):
    """Fixed increment after every session or every week."""

    parameters_model = LinearParameters

    @property
    def trigger_type(self) -> TriggerType:
        return self.params.trigger_type


@register_strategy("CYCLE_PROGRESSION")
class CycleProgression(ProgressionStrategy):
    """Fixed increment once per completed cycle."""

    parameters_model = CycleParameters

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.AFTER_CYCLE


@register_strategy("AMRAP_PROGRESSION")
class AMRAPProgression(ProgressionStrategy):
    """
    Increment chosen by the reps achieved on an AMRAP set.

    The highest threshold whose ``min_reps`` the reps reach wins. An override
    replaces the matched threshold's increment.
    """

    parameters_model = AMRAPParameters

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.AFTER_SET

    def matched_threshold(self, reps: int) -> Optional[RepsThreshold]:
        for threshold in reversed(self.params.thresholds):
            if reps >= threshold.min_reps:
                return threshold
        return None

    def compute_delta(
        self,
        current_value: float,
        override: Optional[float] = None,
        event: Optional[TriggerEvent] = None,
    ) -> float:
        if event is None or event.reps_performed is None:
            raise ProgressionNotApplicable("reps performed not provided")

        reps = event.reps_performed
        threshold = self.matched_threshold(reps)
        if threshold is None:
            raise ProgressionNotApplicable(
                f"no threshold met: reps={reps}, minimum required={self.params.thresholds[0].min_reps}"
            )
        if override is not None:
            return _checked_override(override)
        return threshold.increment


@register_strategy("DELOAD_ON_FAILURE")
class DeloadOnFailure(ProgressionStrategy):
    """
    Reduce a max once a lift has failed ``failure_threshold`` times in a row.

    Percent deloads remove ``deload_percent`` of the current value; fixed
    deloads remove ``deload_amount``. An override replaces the amount removed.
    The reduction never exceeds the current value.
    """

    parameters_model = DeloadParameters

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.ON_FAILURE

    def compute_delta(
        self,
        current_value: float,
        override: Optional[float] = None,
        event: Optional[TriggerEvent] = None,
    ) -> float:
        if event is None or event.consecutive_failures is None:
            raise ProgressionNotApplicable("consecutive failures not provided")

        p = self.params
        failures = event.consecutive_failures
        if failures < p.failure_threshold:
            raise ProgressionNotApplicable(
                f"failure threshold not met: {failures} consecutive failures, "
                f"threshold is {p.failure_threshold}"
            )

        if override is not None:
            amount = _checked_override(override)
        elif p.deload_type == "percent":
            amount = round(current_value * p.deload_percent, 2)
        else:
            amount = p.deload_amount
        return -min(amount, current_value)


def registered_types() -> List[str]:
    return sorted(_REGISTRY)


def build_strategy(definition: ProgressionDefinition) -> ProgressionStrategy:
    """
    Build the strategy for a progression definition.

    Raises:
        ProgressionConfigurationError: If the type is unknown or the
            parameters are invalid
    """
    strategy_cls = _REGISTRY.get(definition.type)
    if strategy_cls is None:
        raise ProgressionConfigurationError(
            f"unknown progression type: {definition.type}",
            {"type": definition.type, "supported": registered_types()},
        )
    return strategy_cls(definition)
