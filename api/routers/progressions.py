"""
Progression trigger router.

Part of STR-118: Progression rule engine

This router provides endpoints for:
- Manually triggering one progression (optionally for a single lift)
- Applying every progression due at the user's current position
- Listing the user's progression history
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_progression_engine
from backend.core.progression_engine import ProgressionEngine
from domain.models.identity import CallerIdentity
from domain.models.progression import ProgressionLogEntry, TriggerEvent, TriggerResult

router = APIRouter(
    prefix="/users/{user_id}",
    tags=["Progressions"],
)


class TriggerRequest(BaseModel):
    """Request body for a manual progression trigger."""
    progression_id: str = Field(..., min_length=1)
    lift_id: Optional[str] = Field(default=None, description="Restrict to one lift")
    force: bool = Field(
        default=False,
        description="Include disabled configs and re-apply at the same position",
    )
    reps_performed: Optional[int] = Field(
        default=None,
        ge=0,
        description="Reps achieved on the AMRAP set (AMRAP progressions)",
    )
    consecutive_failures: Optional[int] = Field(
        default=None,
        ge=0,
        description="Current failure streak for the lift (deload-on-failure progressions)",
    )

    def trigger_event(self) -> Optional[TriggerEvent]:
        if self.reps_performed is None and self.consecutive_failures is None:
            return None
        return TriggerEvent(
            reps_performed=self.reps_performed,
            consecutive_failures=self.consecutive_failures,
        )


class ProgressionHistoryResponse(BaseModel):
    entries: List[ProgressionLogEntry]
    limit: int
    offset: int


@router.post("/progressions/trigger", response_model=TriggerResult)
def trigger_progression(
    request: TriggerRequest,
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    engine: ProgressionEngine = Depends(get_progression_engine),
) -> TriggerResult:
    """
    Manually apply a progression to the user's maxes.

    Per-item failures are reported in ``results``; the response is 200 even
    when some items were skipped or failed.
    """
    return engine.apply_manually(
        caller,
        user_id,
        request.progression_id,
        request.lift_id,
        force=request.force,
        event=request.trigger_event(),
    )


@router.post("/progressions/scheduled", response_model=TriggerResult)
def apply_scheduled_progressions(
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    engine: ProgressionEngine = Depends(get_progression_engine),
) -> TriggerResult:
    """Apply every enabled progression that is due at the user's position."""
    return engine.apply_scheduled(caller, user_id)


@router.get("/progression-history", response_model=ProgressionHistoryResponse)
def get_progression_history(
    user_id: str = Path(...),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    caller: CallerIdentity = Depends(get_current_user),
    engine: ProgressionEngine = Depends(get_progression_engine),
) -> ProgressionHistoryResponse:
    """List applied progressions, newest first."""
    entries = engine.history(caller, user_id, limit=limit, offset=offset)
    return ProgressionHistoryResponse(entries=entries, limit=limit, offset=offset)
