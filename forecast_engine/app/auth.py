"""
Signed-in user resolution, delegated to the external identity provider.

The session token (Authorization: Bearer ... or the provider's `__session` cookie) is
forwarded to the provider's userinfo endpoint; a 200 answer means the user is signed in.
When AUTH_USERINFO_URL is unset, authentication is disabled and every request passes.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Request

from .config import get_settings

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"


class NotAuthenticatedError(Exception):
    pass


def _session_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE) or None


async def fetch_userinfo(token: str, url: str) -> Optional[Dict[str, Any]]:
    """Ask the identity provider who owns `token`. Returns None if it does not vouch for it."""
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(url, headers={"Authorization": f"Bearer {token}"})
    except httpx.HTTPError as e:
        logger.error(f"Identity provider request failed: {type(e).__name__}: {e}")
        return None

    if response.status_code != 200:
        logger.info(f"Identity provider rejected session token (status {response.status_code})")
        return None
    try:
        return response.json()
    except ValueError:
        logger.error("Identity provider returned a non-JSON userinfo body")
        return None


async def require_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    FastAPI dependency: return the signed-in user's claims.
    Raises NotAuthenticatedError when auth is enabled and the session is missing or invalid.
    """
    settings = get_settings()
    if not settings.auth_enabled:
        return None

    token = _session_token(request)
    if not token:
        raise NotAuthenticatedError("No session token")

    user = await fetch_userinfo(token, settings.auth_userinfo_url)
    if user is None:
        raise NotAuthenticatedError("Invalid session")

    logger.debug(f"Authenticated user: {user.get('sub') or user.get('id')}")
    return user
