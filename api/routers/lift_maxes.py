"""
Lift maxes router.

Part of STR-111: Lift maxes

This router provides endpoints for recording, editing and reading a user's
one-rep and training maxes.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_lift_max_service
from backend.core.lift_max_service import LiftMaxService
from domain.models.identity import CallerIdentity
from domain.models.lift_max import LiftMax
from domain.models.progression import MaxType

router = APIRouter(
    tags=["Lift Maxes"],
)


class CreateLiftMaxRequest(BaseModel):
    lift_id: str = Field(..., min_length=1)
    type: MaxType
    value: float
    effective_date: Optional[datetime] = Field(None, description="Defaults to now")


class UpdateLiftMaxRequest(BaseModel):
    value: Optional[float] = None
    effective_date: Optional[datetime] = None


class LiftMaxListResponse(BaseModel):
    maxes: List[LiftMax]
    total: int


@router.get("/users/{user_id}/lift-maxes", response_model=LiftMaxListResponse)
def list_lift_maxes(
    user_id: str = Path(...),
    lift_id: Optional[str] = Query(None),
    max_type: Optional[MaxType] = Query(None, alias="type"),
    caller: CallerIdentity = Depends(get_current_user),
    service: LiftMaxService = Depends(get_lift_max_service),
) -> LiftMaxListResponse:
    """List a user's maxes, newest effective date first."""
    maxes = service.list_for_user(caller, user_id, lift_id=lift_id, max_type=max_type)
    return LiftMaxListResponse(maxes=maxes, total=len(maxes))


@router.get("/users/{user_id}/lift-maxes/current", response_model=LiftMax)
def get_current_lift_max(
    user_id: str = Path(...),
    lift_id: str = Query(...),
    max_type: MaxType = Query(MaxType.TRAINING_MAX, alias="type"),
    caller: CallerIdentity = Depends(get_current_user),
    service: LiftMaxService = Depends(get_lift_max_service),
) -> LiftMax:
    """Get the max currently in effect for a lift."""
    return service.current(caller, user_id, lift_id, max_type)


@router.post("/users/{user_id}/lift-maxes", response_model=LiftMax, status_code=201)
def create_lift_max(
    request: CreateLiftMaxRequest,
    user_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: LiftMaxService = Depends(get_lift_max_service),
) -> LiftMax:
    """Record a new max. Returns 409 if one exists for the same effective date."""
    return service.create(
        caller,
        user_id,
        request.lift_id,
        request.type,
        request.value,
        request.effective_date,
    )


@router.patch("/lift-maxes/{max_id}", response_model=LiftMax)
def update_lift_max(
    request: UpdateLiftMaxRequest,
    max_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: LiftMaxService = Depends(get_lift_max_service),
) -> LiftMax:
    """Edit the value and/or effective date of a max."""
    return service.update(
        caller,
        max_id,
        value=request.value,
        effective_date=request.effective_date,
    )
