"""
Authorization checks shared by the core services.

Part of STR-131: Authorization boundary

The caller identity is resolved by backend.auth and passed explicitly into
every service call. Missing identity is always reported before any
permission decision.
"""
from typing import Optional

from application.exceptions import ForbiddenError, UnauthorizedError
from domain.models.identity import CallerIdentity


def authorize_target_user(caller: Optional[CallerIdentity], target_user_id: str) -> CallerIdentity:
    """
    Ensure the caller may act on ``target_user_id``.

    Args:
        caller: Authenticated caller, or None if no identity was supplied
        target_user_id: User whose data is being read or changed

    Returns:
        The caller, for chaining

    Raises:
        UnauthorizedError: If no caller identity is present
        ForbiddenError: If a non-admin caller targets another user
    """
    if caller is None:
        raise UnauthorizedError()
    if caller.user_id != target_user_id and not caller.is_admin:
        raise ForbiddenError("cannot act on behalf of another user")
    return caller


def require_admin(caller: Optional[CallerIdentity]) -> CallerIdentity:
    """Ensure the caller is an administrator."""
    if caller is None:
        raise UnauthorizedError()
    if not caller.is_admin:
        raise ForbiddenError("admin access required")
    return caller
