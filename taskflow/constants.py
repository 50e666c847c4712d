"""Canonical vocabularies and field limits."""

from __future__ import annotations

from enum import Enum


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ProjectMode(str, Enum):
    PERSONAL = "personal"
    PROFESSIONAL = "professional"


TASK_TITLE_MIN_LENGTH = 1
TASK_TITLE_MAX_LENGTH = 200
TASK_DESCRIPTION_MAX_LENGTH = 2000
MAX_TAGS_PER_TASK = 10

TAG_NAME_MIN_LENGTH = 1
TAG_NAME_MAX_LENGTH = 30
TAG_DISPLAY_NAME_MAX_LENGTH = 50
TAG_DESCRIPTION_MAX_LENGTH = 200

PROJECT_NAME_MAX_LENGTH = 50
PROJECT_DESCRIPTION_MAX_LENGTH = 500

USER_DISPLAY_NAME_MAX_LENGTH = 100

DEFAULT_TASK_PRIORITY = TaskPriority.MEDIUM
DEFAULT_TASK_STATUS = TaskStatus.TODO
DEFAULT_PROJECT_COLOR = "#3B82F6"
DEFAULT_PROJECT_ICON = "📁"
DEFAULT_INBOX_COLOR = "#6B7280"
DEFAULT_INBOX_ICON = "📥"
DEFAULT_TAG_COLOR = "#3B82F6"

DEFAULT_USER_PREFERENCES: dict = {
    "theme": "light",
    "notifications": True,
    "timezone": "UTC",
    "default_notification_time": 60,  # minutes before deadline
    "date_format": "MM/DD/YYYY",
    "time_format": "12h",
}

DEFAULT_USER_STATS: dict = {
    "total_tasks": 0,
    "completed_tasks": 0,
    "active_tasks": 0,
    "overdue_tasks": 0,
}
