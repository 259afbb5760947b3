"""
Programs router for progression configuration.

Part of STR-118: Progression rule engine

This router provides:
- Listing the progressions attached to a program
- Attaching a progression to a program (admin only)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field

from api.deps import get_current_user, get_progression_config_service
from backend.core.progression_config_service import ProgressionConfigService
from domain.models.identity import CallerIdentity
from domain.models.progression import ProgressionConfig

router = APIRouter(
    prefix="/programs",
    tags=["Programs"],
)


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateProgressionConfigRequest(BaseModel):
    """Request model for attaching a progression to a program."""
    progression_id: str = Field(..., min_length=1)
    lift_id: Optional[str] = Field(None, description="Lift scope; omit for program-wide")
    priority: int = Field(0, description="Lower values are applied first")
    enabled: bool = True
    override_increment: Optional[float] = Field(
        None,
        description="Replaces the progression's own increment for this program",
    )


class ProgressionConfigListResponse(BaseModel):
    program_id: str
    progressions: List[ProgressionConfig]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/{program_id}/progressions", response_model=ProgressionConfigListResponse)
def list_program_progressions(
    program_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: ProgressionConfigService = Depends(get_progression_config_service),
) -> ProgressionConfigListResponse:
    """List a program's progressions in evaluation order."""
    return ProgressionConfigListResponse(
        program_id=program_id,
        progressions=service.list_for_program(program_id),
    )


@router.post("/{program_id}/progressions", response_model=ProgressionConfig, status_code=201)
def create_program_progression(
    request: CreateProgressionConfigRequest,
    program_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: ProgressionConfigService = Depends(get_progression_config_service),
) -> ProgressionConfig:
    """
    Attach a progression to a program.

    Admin only. A progression can be attached once per lift and once
    program-wide.
    """
    return service.create(
        caller,
        program_id,
        request.progression_id,
        lift_id=request.lift_id,
        priority=request.priority,
        enabled=request.enabled,
        override_increment=request.override_increment,
    )
