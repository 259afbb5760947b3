"""
FastAPI Dependency Providers for the Strength Program API.

Part of STR-101: Service skeleton

This module provides FastAPI dependency injection functions that return
interface types (Protocols) rather than concrete implementations. This
enables clean separation of concerns and easy testing with fake implementations.

Architecture:
- Settings and Supabase client are cached per-process (lru_cache)
- Repository providers create new instances per-request
- Service providers compose repositories into the core services
- Auth provider wraps backend.auth (single source of truth)

Usage in routers:
    from api.deps import get_position_service, get_current_user

    @router.post("/users/{user_id}/program-state/advance")
    def advance(
        user_id: str,
        caller: CallerIdentity = Depends(get_current_user),
        service: PositionService = Depends(get_position_service),
    ):
        return service.advance(caller, user_id)

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_position_repo] = lambda: FakePositionRepository()
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException
from supabase import Client, create_client

# Protocol types (interfaces)
from application.ports import (
    LiftMaxRepository,
    LiftRepository,
    PositionRepository,
    ProgressionConfigRepository,
    ProgressionLogRepository,
    ProgressionRepository,
    ScheduleRepository,
    SessionRepository,
)

# Concrete implementations
from infrastructure import (
    SupabaseLiftMaxRepository,
    SupabaseLiftRepository,
    SupabasePositionRepository,
    SupabaseProgressionConfigRepository,
    SupabaseProgressionLogRepository,
    SupabaseProgressionRepository,
    SupabaseScheduleRepository,
    SupabaseSessionRepository,
)

from backend.settings import Settings, get_settings as _get_settings

# Auth from existing module (wrap to maintain single source of truth)
from backend.auth import get_current_user as _get_current_user
from domain.models.identity import CallerIdentity

from backend.core.lift_max_service import LiftMaxService
from backend.core.position_tracker import PositionService
from backend.core.progression_config_service import ProgressionConfigService
from backend.core.progression_engine import ProgressionEngine
from backend.core.set_calculator import SessionService


# =============================================================================
# Settings Provider
# =============================================================================


def get_settings() -> Settings:
    """
    Get application settings.

    Returns cached Settings instance from backend.settings.
    Use this as a FastAPI dependency for settings access.

    Returns:
        Settings: Application settings instance
    """
    return _get_settings()


# =============================================================================
# Supabase Client Provider
# =============================================================================


@lru_cache
def get_supabase_client() -> Optional[Client]:
    """
    Get Supabase client instance (cached).

    Creates a Supabase client using credentials from settings.
    Returns None if credentials are not configured.

    Returns:
        Client: Supabase client instance, or None if not configured
    """
    settings = _get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


def get_supabase_client_required() -> Client:
    """
    Get Supabase client instance, raising if not configured.

    Use this dependency when the endpoint requires database access.
    Raises HTTPException 503 if database is not available.

    Returns:
        Client: Supabase client instance

    Raises:
        HTTPException: 503 if Supabase is not configured
    """
    client = get_supabase_client()
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Database not available. Supabase credentials not configured.",
        )
    return client


# =============================================================================
# Repository Providers
# =============================================================================


def get_position_repo(
    client: Client = Depends(get_supabase_client_required),
) -> PositionRepository:
    return SupabasePositionRepository(client)


def get_schedule_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ScheduleRepository:
    return SupabaseScheduleRepository(client)


def get_progression_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ProgressionRepository:
    return SupabaseProgressionRepository(client)


def get_progression_config_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ProgressionConfigRepository:
    return SupabaseProgressionConfigRepository(client)


def get_progression_log_repo(
    client: Client = Depends(get_supabase_client_required),
) -> ProgressionLogRepository:
    return SupabaseProgressionLogRepository(client)


def get_lift_repo(
    client: Client = Depends(get_supabase_client_required),
) -> LiftRepository:
    return SupabaseLiftRepository(client)


def get_lift_max_repo(
    client: Client = Depends(get_supabase_client_required),
) -> LiftMaxRepository:
    return SupabaseLiftMaxRepository(client)


def get_session_repo(
    client: Client = Depends(get_supabase_client_required),
) -> SessionRepository:
    return SupabaseSessionRepository(client)


# =============================================================================
# Service Providers
# =============================================================================


def get_position_service(
    position_repo: PositionRepository = Depends(get_position_repo),
    schedule_repo: ScheduleRepository = Depends(get_schedule_repo),
) -> PositionService:
    return PositionService(position_repo, schedule_repo)


def get_progression_engine(
    position_repo: PositionRepository = Depends(get_position_repo),
    progression_repo: ProgressionRepository = Depends(get_progression_repo),
    config_repo: ProgressionConfigRepository = Depends(get_progression_config_repo),
    log_repo: ProgressionLogRepository = Depends(get_progression_log_repo),
    lift_repo: LiftRepository = Depends(get_lift_repo),
    lift_max_repo: LiftMaxRepository = Depends(get_lift_max_repo),
) -> ProgressionEngine:
    return ProgressionEngine(
        position_repo,
        progression_repo,
        config_repo,
        log_repo,
        lift_repo,
        lift_max_repo,
    )


def get_progression_config_service(
    config_repo: ProgressionConfigRepository = Depends(get_progression_config_repo),
    progression_repo: ProgressionRepository = Depends(get_progression_repo),
    schedule_repo: ScheduleRepository = Depends(get_schedule_repo),
) -> ProgressionConfigService:
    return ProgressionConfigService(config_repo, progression_repo, schedule_repo)


def get_lift_max_service(
    lift_max_repo: LiftMaxRepository = Depends(get_lift_max_repo),
    lift_repo: LiftRepository = Depends(get_lift_repo),
) -> LiftMaxService:
    return LiftMaxService(lift_max_repo, lift_repo)


def get_session_service(
    session_repo: SessionRepository = Depends(get_session_repo),
    settings: Settings = Depends(get_settings),
) -> SessionService:
    return SessionService(session_repo, rounding_increment=settings.weight_rounding_increment)


# =============================================================================
# Authentication Providers
# =============================================================================


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_settings),
) -> CallerIdentity:
    """
    Get the authenticated caller (required).

    Wraps backend.auth.get_current_user for dependency injection.
    Supports Clerk JWT, app JWT, and API key authentication.

    Returns:
        CallerIdentity: user ID and admin flag

    Raises:
        HTTPException: 401 if not authenticated
    """
    return await _get_current_user(
        authorization=authorization,
        x_api_key=x_api_key,
        settings=settings,
    )


__all__ = [
    # Settings
    "get_settings",
    # Database
    "get_supabase_client",
    "get_supabase_client_required",
    # Repositories
    "get_position_repo",
    "get_schedule_repo",
    "get_progression_repo",
    "get_progression_config_repo",
    "get_progression_log_repo",
    "get_lift_repo",
    "get_lift_max_repo",
    "get_session_repo",
    # Services
    "get_position_service",
    "get_progression_engine",
    "get_progression_config_service",
    "get_lift_max_service",
    "get_session_service",
    # Auth
    "get_current_user",
]
