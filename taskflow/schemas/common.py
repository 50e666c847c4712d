"""Response envelope shared by every API endpoint.

Success: ``{"success": true, "data": ...}`` (``data`` omitted when there is
nothing to return). Failure: ``{"success": false, "error": ..., "code": ...}``
plus ``errors`` for field-level validation messages.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel


def ok(data: Any = None) -> dict:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    return body


def fail(error: str, code: str, errors: list[str] | None = None) -> dict:
    body: dict[str, Any] = {"success": False, "error": error, "code": code}
    if errors:
        body["errors"] = errors
    return body


class PositionUpdate(BaseModel):
    id: uuid.UUID
    position: int
