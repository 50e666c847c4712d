"""Input validation helpers.

Everything here is pure: validators inspect a mapping of submitted fields and
return a :class:`ValidationResult`; nothing touches the database. Services run
them before any write so a rejected request never costs a round trip.

For ``*_update`` validators only the keys present in the mapping are checked,
which mirrors partial-update semantics.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from . import constants as c
from .errors import ErrorCode, ValidationFailed
from .timeutil import coerce_datetime

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
_TAG_NAME_RE = re.compile(r"^[a-z0-9_-]+$")
_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
_TAG_STRIP_RE = re.compile(r"[^a-z0-9_-]")


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    code: ErrorCode | None = None

    def raise_for_errors(self) -> None:
        if not self.is_valid:
            raise ValidationFailed(self.errors, self.code or ErrorCode.INVALID_INPUT)


class _Collector:
    def __init__(self) -> None:
        self.errors: list[str] = []
        self.missing = False
        self.code: ErrorCode | None = None

    def add(self, message: str, code: ErrorCode | None = None) -> None:
        self.errors.append(message)
        if code is not None and self.code is None:
            self.code = code

    def require(self, message: str) -> None:
        self.missing = True
        self.errors.append(message)

    def result(self) -> ValidationResult:
        if not self.errors:
            return ValidationResult()
        if self.missing:
            code = ErrorCode.MISSING_REQUIRED_FIELD
        else:
            code = self.code or ErrorCode.INVALID_INPUT
        return ValidationResult(is_valid=False, errors=self.errors, code=code)


# ── Predicates ─────────────────────────────────────────────────────────────

def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    return bool(parsed.scheme and parsed.netloc)


def is_valid_hex_color(color: str) -> bool:
    return isinstance(color, str) and _HEX_COLOR_RE.match(color) is not None


def is_valid_tag_name(name: str) -> bool:
    return (
        isinstance(name, str)
        and _TAG_NAME_RE.match(name) is not None
        and c.TAG_NAME_MIN_LENGTH <= len(name) <= c.TAG_NAME_MAX_LENGTH
    )


def is_valid_time_format(value: str) -> bool:
    """24-hour ``HH:MM`` (single-digit hour allowed)."""
    return isinstance(value, str) and _TIME_RE.match(value) is not None


def is_valid_task_priority(priority: str) -> bool:
    return priority in {p.value for p in c.TaskPriority}


def is_valid_task_status(status: str) -> bool:
    return status in {s.value for s in c.TaskStatus}


def is_valid_project_mode(mode: str) -> bool:
    return mode in {m.value for m in c.ProjectMode}


def is_valid_timezone(name: str) -> bool:
    if not isinstance(name, str) or not name.strip():
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


# ── Sanitizers ─────────────────────────────────────────────────────────────

def sanitize_tag_name(value: str) -> str:
    return _TAG_STRIP_RE.sub("", value.lower())[: c.TAG_NAME_MAX_LENGTH]


def sanitize_text(value: str, max_length: int) -> str:
    return value.strip()[:max_length]


# ── Shared field checks ────────────────────────────────────────────────────

def _check_title(out: _Collector, title: Any, *, required: bool) -> None:
    if title is None or (isinstance(title, str) and not title.strip()):
        if required:
            out.require("Task title is required")
        else:
            out.add("Task title cannot be empty")
        return
    if len(title) > c.TASK_TITLE_MAX_LENGTH:
        out.add(f"Task title must be {c.TASK_TITLE_MAX_LENGTH} characters or less")


def _check_task_common(out: _Collector, data: Mapping[str, Any]) -> None:
    description = data.get("description")
    if description and len(description) > c.TASK_DESCRIPTION_MAX_LENGTH:
        out.add(f"Task description must be {c.TASK_DESCRIPTION_MAX_LENGTH} characters or less")

    priority = data.get("priority")
    if priority is not None and not is_valid_task_priority(_enum_value(priority)):
        out.add("Invalid task priority")

    status = data.get("status")
    if status is not None and not is_valid_task_status(_enum_value(status)):
        out.add("Invalid task status")

    tags = data.get("tags")
    if tags is not None:
        if not isinstance(tags, (list, tuple)):
            out.add("Tags must be a list")
        else:
            if len(tags) > c.MAX_TAGS_PER_TASK:
                out.add(f"Maximum {c.MAX_TAGS_PER_TASK} tags allowed per task")
            for tag in tags:
                if not is_valid_tag_name(tag):
                    out.add(f"Invalid tag name: {tag}")

    due_time = data.get("due_time")
    if due_time and not is_valid_time_format(due_time):
        out.add("Invalid due time format. Use HH:MM (24-hour format)")

    for key in ("due_date", "start_date"):
        try:
            coerce_datetime(data.get(key))
        except ValueError:
            out.add(f"Invalid {key} format. Use an ISO 8601 date", ErrorCode.INVALID_FORMAT)


def _check_not_null(out: _Collector, data: Mapping[str, Any], fields: tuple[str, ...]) -> None:
    for key in fields:
        if key in data and data[key] is None:
            out.add(f"{key} cannot be null")


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


# ── Task ───────────────────────────────────────────────────────────────────

def validate_task_create(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    _check_title(out, data.get("title"), required=True)
    _check_task_common(out, data)
    return out.result()


def validate_task_update(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    if "title" in data:
        _check_title(out, data.get("title"), required=False)
    _check_not_null(out, data, ("description", "priority", "status", "position"))
    _check_task_common(out, data)

    if "completed" in data:
        completed = data["completed"]
        status = _enum_value(data.get("status"))
        if not isinstance(completed, bool):
            out.add("completed must be true or false")
        elif status is not None and completed != (status == c.TaskStatus.COMPLETED.value):
            out.add(f"Status '{status}' conflicts with completed={str(completed).lower()}")
    return out.result()


# ── Tag ────────────────────────────────────────────────────────────────────

def _check_tag_common(out: _Collector, data: Mapping[str, Any]) -> None:
    description = data.get("description")
    if description and len(description) > c.TAG_DESCRIPTION_MAX_LENGTH:
        out.add(f"Tag description must be {c.TAG_DESCRIPTION_MAX_LENGTH} characters or less")

    color = data.get("color")
    if color and not is_valid_hex_color(color):
        out.add("Invalid color format. Use hex format (#RRGGBB)")


def validate_tag_create(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    name = data.get("name")
    if not name:
        out.require("Tag name is required")
    elif len(name) > c.TAG_NAME_MAX_LENGTH:
        out.add(f"Tag name must be {c.TAG_NAME_MAX_LENGTH} characters or less")
    elif not is_valid_tag_name(name):
        out.add("Tag name can only contain lowercase letters, numbers, hyphens, and underscores")

    display_name = data.get("display_name")
    if display_name and len(display_name) > c.TAG_DISPLAY_NAME_MAX_LENGTH:
        out.add(f"Tag display name must be {c.TAG_DISPLAY_NAME_MAX_LENGTH} characters or less")

    _check_tag_common(out, data)
    return out.result()


def validate_tag_update(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    if "display_name" in data:
        display_name = data.get("display_name")
        if not display_name:
            out.add("Tag display name cannot be empty")
        elif len(display_name) > c.TAG_DISPLAY_NAME_MAX_LENGTH:
            out.add(f"Tag display name must be {c.TAG_DISPLAY_NAME_MAX_LENGTH} characters or less")
    _check_not_null(out, data, ("description", "color", "is_active"))
    _check_tag_common(out, data)
    return out.result()


# ── Project ────────────────────────────────────────────────────────────────

def _check_project_common(out: _Collector, data: Mapping[str, Any]) -> None:
    description = data.get("description")
    if description and len(description) > c.PROJECT_DESCRIPTION_MAX_LENGTH:
        out.add(
            f"Project description must be {c.PROJECT_DESCRIPTION_MAX_LENGTH} characters or less"
        )

    color = data.get("color")
    if color and not is_valid_hex_color(color):
        out.add("Invalid color format. Use hex format (#RRGGBB)")


def validate_project_create(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    name = data.get("name")
    if not name or not str(name).strip():
        out.require("Project name is required")
    elif len(name.strip()) > c.PROJECT_NAME_MAX_LENGTH:
        out.add(f"Project name must be {c.PROJECT_NAME_MAX_LENGTH} characters or less")

    mode = data.get("mode")
    if mode is None:
        out.require("Project mode is required")
    elif not is_valid_project_mode(_enum_value(mode)):
        out.add("Invalid project mode")

    _check_project_common(out, data)
    return out.result()


def validate_project_update(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    if "name" in data:
        name = data.get("name")
        if not name or not str(name).strip():
            out.add("Project name cannot be empty")
        elif len(name.strip()) > c.PROJECT_NAME_MAX_LENGTH:
            out.add(f"Project name must be {c.PROJECT_NAME_MAX_LENGTH} characters or less")
    _check_not_null(out, data, ("description", "color", "icon", "is_archived", "position"))
    _check_project_common(out, data)
    return out.result()


# ── User ───────────────────────────────────────────────────────────────────

def _check_preferences(out: _Collector, preferences: Any) -> None:
    if preferences is None:
        return
    if not isinstance(preferences, Mapping):
        out.add("Preferences must be an object")
        return
    theme = preferences.get("theme")
    if theme is not None and theme not in {"light", "dark"}:
        out.add("Theme must be 'light' or 'dark'")
    tz = preferences.get("timezone")
    if tz is not None and not is_valid_timezone(tz):
        out.add(f"Unknown timezone: {tz}")
    time_format = preferences.get("time_format")
    if time_format is not None and time_format not in {"12h", "24h"}:
        out.add("Time format must be '12h' or '24h'")
    minutes = preferences.get("default_notification_time")
    if minutes is not None and (not isinstance(minutes, int) or minutes < 0):
        out.add("Default notification time must be a non-negative number of minutes")


def validate_user_create(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    email = data.get("email")
    if not email:
        out.require("Email is required")
    elif not is_valid_email(email):
        out.add("Invalid email format")

    display_name = data.get("display_name")
    if not display_name:
        out.require("Display name is required")
    elif len(display_name) > c.USER_DISPLAY_NAME_MAX_LENGTH:
        out.add(f"Display name must be {c.USER_DISPLAY_NAME_MAX_LENGTH} characters or less")

    photo_url = data.get("photo_url")
    if photo_url and not is_valid_url(photo_url):
        out.add("Invalid photo URL format")

    _check_preferences(out, data.get("preferences"))
    return out.result()


def validate_user_update(data: Mapping[str, Any]) -> ValidationResult:
    out = _Collector()
    if "display_name" in data:
        display_name = data.get("display_name")
        if not display_name:
            out.add("Display name cannot be empty")
        elif len(display_name) > c.USER_DISPLAY_NAME_MAX_LENGTH:
            out.add(f"Display name must be {c.USER_DISPLAY_NAME_MAX_LENGTH} characters or less")

    photo_url = data.get("photo_url")
    if photo_url and not is_valid_url(photo_url):
        out.add("Invalid photo URL format")

    _check_preferences(out, data.get("preferences"))
    return out.result()
