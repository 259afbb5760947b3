"""
Infrastructure Database Layer.

Part of STR-101: Service skeleton

This package provides Supabase-backed implementations of the repository interfaces
defined in application.ports. These implementations can be injected into services
and routers for clean separation of concerns and testability.

Usage:
    from supabase import create_client
    from infrastructure.db import (
        SupabasePositionRepository,
        SupabaseScheduleRepository,
    )

    # Create Supabase client
    client = create_client(SUPABASE_URL, SUPABASE_KEY)

    # Instantiate repositories with injected client
    position_repo = SupabasePositionRepository(client)
    schedule_repo = SupabaseScheduleRepository(client)
"""

from infrastructure.db.position_repository import (
    SupabasePositionRepository,
    SupabaseScheduleRepository,
)
from infrastructure.db.progression_repository import (
    SupabaseProgressionRepository,
    SupabaseProgressionConfigRepository,
    SupabaseProgressionLogRepository,
)
from infrastructure.db.lift_max_repository import (
    SupabaseLiftRepository,
    SupabaseLiftMaxRepository,
)
from infrastructure.db.session_repository import SupabaseSessionRepository

__all__ = [
    # Program position (STR-104)
    "SupabasePositionRepository",
    "SupabaseScheduleRepository",

    # Progressions (STR-118)
    "SupabaseProgressionRepository",
    "SupabaseProgressionConfigRepository",
    "SupabaseProgressionLogRepository",

    # Lift maxes (STR-111)
    "SupabaseLiftRepository",
    "SupabaseLiftMaxRepository",

    # Sessions (STR-126)
    "SupabaseSessionRepository",
]
