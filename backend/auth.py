"""
Authentication module for Clerk JWT, app JWT, and API key validation.
Provides FastAPI dependencies that resolve the caller identity.

Supports two JWT types:
- Clerk JWTs: RS256, validated via JWKS; admin when public_metadata.role == "admin"
- App JWTs: HS256, validated via shared secret (iss: JWT_ISSUER); admin when the
  "admin" claim is true

Users listed in ADMIN_USER_IDS are admins regardless of token claims.
"""
from functools import lru_cache
from typing import Any, Dict, Optional
import logging

import jwt
from fastapi import Depends, HTTPException, Header

from backend.settings import Settings, get_settings
from domain.models.identity import CallerIdentity

logger = logging.getLogger(__name__)

APP_JWT_ALGORITHM = "HS256"
SERVICE_USER_ID = "admin"


@lru_cache
def get_jwks_client(clerk_domain: str) -> jwt.PyJWKClient:
    """Get or create the JWKS client for Clerk JWT validation."""
    return jwt.PyJWKClient(f"https://{clerk_domain}/.well-known/jwks.json")


async def get_current_user(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: Settings = Depends(get_settings),
) -> CallerIdentity:
    """
    Authenticate via API key OR JWT.
    Returns the caller identity.

    Usage:
        @router.get("/protected")
        async def protected_route(caller: CallerIdentity = Depends(get_current_user)):
            return {"user_id": caller.user_id}
    """
    # Option 1: API Key authentication
    if x_api_key:
        return validate_api_key(x_api_key, settings)

    # Option 2: JWT authentication
    if authorization:
        return validate_jwt(authorization, settings)

    raise HTTPException(
        status_code=401,
        detail="Missing authentication. Provide Authorization header or X-API-Key."
    )


def _identity(user_id: str, is_admin: bool, settings: Settings) -> CallerIdentity:
    return CallerIdentity(
        user_id=user_id,
        is_admin=is_admin or user_id in settings.admin_user_ids_set,
    )


def validate_api_key(api_key: str, settings: Settings) -> CallerIdentity:
    """
    Validate API key and return the caller.

    API key format options:
    - Simple: "sk_test_abc123" -> service caller "admin" with admin rights
    - With user: "sk_test_abc123:user_12345" -> caller "user_12345"
    """
    valid_keys = settings.api_keys_list

    if not valid_keys:
        logger.warning("No API keys configured (API_KEYS env var empty)")
        raise HTTPException(status_code=401, detail="API key authentication not configured")

    # Check if key (without user suffix) is valid
    key_part = api_key.split(":")[0]

    if key_part not in valid_keys:
        raise HTTPException(status_code=401, detail="Invalid API key")

    # Extract user_id if provided (format: "key:user_id")
    if ":" in api_key:
        return _identity(api_key.split(":", 1)[1], False, settings)

    return CallerIdentity(user_id=SERVICE_USER_ID, is_admin=True)


def validate_jwt(authorization: str, settings: Settings) -> CallerIdentity:
    """
    Validate JWT and return the caller.

    Tokens issued by this service (iss == JWT_ISSUER) are checked with the
    shared secret; everything else is treated as a Clerk token.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.split(" ", 1)[1]

    # First, decode without verification to check the token type
    try:
        unverified = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token format")

    if unverified.get("iss") == settings.jwt_issuer:
        return validate_app_jwt(token, settings)

    return validate_clerk_jwt(token, settings)


def _user_id_from(payload: Dict[str, Any]) -> str:
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing user ID")
    return user_id


def validate_app_jwt(token: str, settings: Settings) -> CallerIdentity:
    """Validate app JWT (HS256) and return the caller."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[APP_JWT_ALGORITHM],
            issuer=settings.jwt_issuer,
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid app JWT: {e}")
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    user_id = _user_id_from(payload)
    logger.debug(f"App JWT validated for user: {user_id}")
    return _identity(user_id, payload.get("admin") is True, settings)


def validate_clerk_jwt(token: str, settings: Settings) -> CallerIdentity:
    """Validate Clerk JWT (RS256 via JWKS) and return the caller."""
    if not settings.clerk_domain:
        raise HTTPException(
            status_code=500,
            detail="JWT validation not configured (missing CLERK_DOMAIN)"
        )

    try:
        signing_key = get_jwks_client(settings.clerk_domain).get_signing_key_from_jwt(token)
        payload = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            options={"verify_aud": False}
        )
    except jwt.PyJWKClientError as e:
        logger.warning(f"Clerk signing key lookup failed: {e}")
        raise HTTPException(status_code=401, detail="Unable to resolve token signing key")
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")

    user_id = _user_id_from(payload)
    metadata = payload.get("public_metadata") or payload.get("metadata") or {}
    return _identity(user_id, metadata.get("role") == "admin", settings)
