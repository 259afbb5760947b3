"""
Caller identity.

Part of STR-131: Authorization boundary
"""

from pydantic import BaseModel


class CallerIdentity(BaseModel):
    """The authenticated caller as resolved by the auth layer."""

    user_id: str
    is_admin: bool = False
