"""
Workout sessions router.

Part of STR-126: Variable set schemes
"""
from fastapi import APIRouter, Depends, Path

from api.deps import get_current_user, get_session_service
from backend.core.set_calculator import SessionService
from domain.models.identity import CallerIdentity
from domain.models.session import NextSetResult

router = APIRouter(
    prefix="/sessions",
    tags=["Sessions"],
)


@router.get(
    "/{session_id}/prescriptions/{prescription_id}/next-set",
    response_model=NextSetResult,
)
def get_next_set(
    session_id: str = Path(...),
    prescription_id: str = Path(...),
    caller: CallerIdentity = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> NextSetResult:
    """
    Get the next set for a variable set scheme (MRS, TOTAL_REPS, FATIGUE_DROP).

    Returns ``is_complete`` with a ``termination_reason`` once the scheme's
    stopping condition is met.
    """
    return service.next_set(caller, session_id, prescription_id)
