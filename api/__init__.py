"""
API package for the Strength Program API.

Part of STR-101: Service skeleton

This package contains:
- deps.py: FastAPI dependency providers for DI
- exception_handlers.py: error kind to HTTP status mapping
- routers/: API route handlers
"""

# Re-export dependency providers for convenient access
from api.deps import (
    get_settings,
    get_supabase_client,
    get_supabase_client_required,
    get_current_user,
)

__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Authentication
    "get_current_user",
]
