"""
Router package for the Strength Program API.

Part of STR-101: Service skeleton

This package contains all API routers organized by domain:
- health: Health check endpoint
- program_state: Enrollment and position advancement (STR-104)
- progressions: Progression triggers and history (STR-118)
- programs: Program progression configuration (STR-118)
- lift_maxes: Recorded maxes (STR-111)
- sessions: Next-set calculation for variable schemes (STR-126)
"""

from api.routers.health import router as health_router
from api.routers.program_state import router as program_state_router
from api.routers.progressions import router as progressions_router
from api.routers.programs import router as programs_router
from api.routers.lift_maxes import router as lift_maxes_router
from api.routers.sessions import router as sessions_router

__all__ = [
    "health_router",
    "program_state_router",
    "progressions_router",
    "programs_router",
    "lift_maxes_router",
    "sessions_router",
]
