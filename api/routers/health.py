"""
Health check router.

Part of STR-101: Service skeleton

This router provides health check endpoints for monitoring and load balancers.
"""

from fastapi import APIRouter, Depends

from api.deps import get_settings
from backend.settings import Settings

router = APIRouter(
    tags=["Health"],
)


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    """
    Simple liveness endpoint.

    Returns:
        dict: Status indicator and environment for health checks
    """
    return {"status": "ok", "environment": settings.environment}
