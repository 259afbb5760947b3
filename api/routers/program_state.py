"""
Program state router.

Part of STR-104: Program position advancement

This router provides endpoints for:
- Enrolling a user in a program and reading/removing the enrollment
- Advancing the user to the next training day
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_position_service
from backend.core.position_tracker import PositionService
from domain.models.identity import CallerIdentity
from domain.models.position import ProgramPosition

router = APIRouter(
    prefix="/users/{user_id}",
    tags=["Program State"],
)


# =============================================================================
# Request/Response Models
# =============================================================================


class EnrollRequest(BaseModel):
    """Request body for enrolling in a program."""
    program_id: str = Field(..., min_length=1)


class ProgramStateResponse(BaseModel):
    """A user's position inside their program."""
    user_id: str
    program_id: str
    current_week: int
    current_day_index: Optional[int] = None
    current_cycle_iteration: int
    enrolled_at: datetime
    updated_at: datetime


class AdvanceResponse(ProgramStateResponse):
    """Position after an advance, plus whether a cycle just completed."""
    cycle_completed: bool = False


def _to_response(position: ProgramPosition) -> ProgramStateResponse:
    return ProgramStateResponse(**position.model_dump())


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/program", response_model=ProgramStateResponse, status_code=201)
def enroll(
    request: EnrollRequest,
    user_id: str = Path(..., description="User to enroll"),
    caller: CallerIdentity = Depends(get_current_user),
    service: PositionService = Depends(get_position_service),
) -> ProgramStateResponse:
    """
    Enroll a user in a program.

    The user starts at week 1, cycle 1 with no day completed yet.
    """
    return _to_response(service.enroll(caller, user_id, request.program_id))


@router.get("/program", response_model=ProgramStateResponse)
def get_enrollment(
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: PositionService = Depends(get_position_service),
) -> ProgramStateResponse:
    """Get the user's current program position."""
    return _to_response(service.get(caller, user_id))


@router.delete("/program", status_code=204)
def unenroll(
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: PositionService = Depends(get_position_service),
) -> None:
    """Remove the user's enrollment."""
    service.unenroll(caller, user_id)


@router.post("/program-state/advance", response_model=AdvanceResponse)
def advance(
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: PositionService = Depends(get_position_service),
) -> AdvanceResponse:
    """
    Advance the user to the next training day.

    Wraps to the next week after the last day and to the next cycle after
    the last week; ``cycle_completed`` reports the latter.
    """
    result = service.advance(caller, user_id)
    return AdvanceResponse(
        **result.position.model_dump(),
        cycle_completed=result.cycle_completed,
    )
