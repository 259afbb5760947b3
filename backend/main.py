"""
Application factory for FastAPI.

Part of STR-101: Service skeleton

This module provides a factory function for creating FastAPI application instances.
The factory pattern allows for:
- Easy testing with custom settings
- Multiple app instances with different configurations
- Clear separation of app creation from route definitions

Usage:
    from backend.main import create_app
    from backend.settings import Settings

    # Default app (uses get_settings())
    app = create_app()

    # Test app with custom settings
    test_settings = Settings(environment="test", _env_file=None)
    test_app = create_app(settings=test_settings)
"""

import logging
from typing import Optional

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure a FastAPI application instance.

    Args:
        settings: Optional Settings instance. If not provided, uses get_settings()
                  which loads from environment variables. When provided, it is
                  also what the auth and service dependencies receive.

    Returns:
        Configured FastAPI application instance.
    """
    explicit_settings = settings is not None
    if settings is None:
        settings = get_settings()

    # Initialize Sentry for error tracking
    _init_sentry(settings)

    # Create FastAPI app
    app = FastAPI(
        title="Strength Program API",
        description="Program position tracking, progression rules and live set calculation",
        version="1.0.0",
    )

    # Configure CORS middleware
    _configure_cors(app, settings)

    # Map application errors onto HTTP responses
    from api.exception_handlers import register_exception_handlers
    register_exception_handlers(app)

    # Include API routers
    _include_routers(app)

    if explicit_settings:
        from api.deps import get_settings as get_settings_dependency
        app.dependency_overrides[get_settings_dependency] = lambda: settings

    # Log auth configuration status
    _log_startup_config(settings)

    return app


def _init_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,
        )
        logger.info("Sentry initialized for strength-program-api")


def _configure_cors(app: FastAPI, settings: Settings) -> None:
    """Configure CORS middleware for the application."""
    trusted_origins = [
        "http://localhost:3000",
        "http://localhost:3001",
    ]
    # Add production domains from environment if configured
    extra_origins = settings.cors_allowed_origins.split(",")
    trusted_origins.extend([origin.strip() for origin in extra_origins if origin.strip()])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=trusted_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _include_routers(app: FastAPI) -> None:
    """Include all API routers in the application."""
    from api.routers import (
        health_router,
        program_state_router,
        progressions_router,
        programs_router,
        lift_maxes_router,
        sessions_router,
    )

    # Health router (no prefix - /health at root)
    app.include_router(health_router)

    # Enrollment and advancement (STR-104)
    app.include_router(program_state_router)
    # Progression triggers and history (STR-118)
    app.include_router(progressions_router)
    # Program progression configuration (STR-118)
    app.include_router(programs_router)
    # Lift maxes (STR-111)
    app.include_router(lift_maxes_router)
    # Next-set calculation (STR-126)
    app.include_router(sessions_router)


def _log_startup_config(settings: Settings) -> None:
    """Log which auth methods and integrations are active at startup."""
    logger.info(f"Starting strength-program-api (environment={settings.environment})")

    if settings.api_keys_list:
        logger.info(f"API key auth enabled ({len(settings.api_keys_list)} key(s))")
    if settings.clerk_domain:
        logger.info("Clerk JWT auth enabled")
    else:
        logger.info("CLERK_DOMAIN not set; only app JWTs and API keys are accepted")

    if not settings.supabase_url:
        logger.warning("Supabase is not configured; data endpoints will return 503")


# Default app instance for uvicorn
# This allows: uvicorn backend.main:app --reload
app = create_app()
