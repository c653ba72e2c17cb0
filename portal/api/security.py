"""
API security helpers.

The admin boundary is a single static key compared verbatim: no hashing,
expiry or rotation. It only guards settings mutation.
"""
from typing import Optional
from fastapi import Header, Request

from portal.core.exceptions import AuthError

ADMIN_KEY_HEADER = "x-admin-key"


def authorize_admin(provided: Optional[str], configured: str) -> bool:
    """True only when ``provided`` is exactly the configured admin key."""
    if not configured or provided is None:
        return False
    return provided == configured


async def require_admin_key(
    request: Request,
    x_admin_key: Optional[str] = Header(default=None, alias=ADMIN_KEY_HEADER),
):
    """Reject the request unless it carries the admin key."""
    if not authorize_admin(x_admin_key, request.app.state.settings.ADMIN_KEY):
        raise AuthError("unauthorized")
