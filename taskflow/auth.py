"""Bearer-token authentication for the JSON API."""

from __future__ import annotations

import hmac

from fastapi import Request

from .config import TaskFlowSettings
from .errors import Unauthorized


def _extract_token(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return ""


def resolve_user_id(token: str, settings: TaskFlowSettings) -> str | None:
    """Map a bearer token to a uid.

    Configured tokens are compared in constant time. When auth is not
    required, an unrecognised token is taken as the uid itself (local dev).
    """
    for expected, uid in settings.auth_tokens_map.items():
        if hmac.compare_digest(token, expected):
            return uid
    if not settings.auth_required:
        return token
    return None


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency returning the authenticated uid."""
    token = _extract_token(request)
    if not token:
        raise Unauthorized()
    user_id = resolve_user_id(token, request.app.state.settings)
    if not user_id:
        raise Unauthorized("Invalid access token")
    return user_id
