"""
Infrastructure Layer for the Strength Program API.

Part of STR-101: Service skeleton

This package contains concrete implementations of repository interfaces:
- db/: Supabase database implementations
"""

# Re-export database repositories for convenient access
from infrastructure.db import (
    SupabasePositionRepository,
    SupabaseScheduleRepository,
    SupabaseProgressionRepository,
    SupabaseProgressionConfigRepository,
    SupabaseProgressionLogRepository,
    SupabaseLiftRepository,
    SupabaseLiftMaxRepository,
    SupabaseSessionRepository,
)

__all__ = [
    "SupabasePositionRepository",
    "SupabaseScheduleRepository",
    "SupabaseProgressionRepository",
    "SupabaseProgressionConfigRepository",
    "SupabaseProgressionLogRepository",
    "SupabaseLiftRepository",
    "SupabaseLiftMaxRepository",
    "SupabaseSessionRepository",
]
