"""TaskFlow configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class TaskFlowSettings(BaseSettings):
    environment: str = "development"
    database_url: str = "sqlite+aiosqlite:///taskflow.db"
    echo_sql: bool = False
    app_title: str = "TaskFlow"
    log_level: str = "INFO"

    # Bearer auth: comma-separated uid:token pairs. With auth_required off an
    # unknown bearer token is taken as the uid itself (local development).
    auth_required: bool = False
    auth_tokens: str = ""

    default_timezone: str = "UTC"

    # Per-user limits
    max_projects_per_mode: int = 10
    max_tags_per_user: int = 100
    max_tasks_per_user: int = 10000
    default_project_name: str = "Inbox"

    # Background reconciliation
    enable_offline_sync: bool = True
    sync_interval_seconds: float = 30.0

    model_config = {"env_prefix": "TASKFLOW_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def alembic_ini(self) -> Path:
        return self.base_dir / "alembic.ini"

    @property
    def auth_tokens_map(self) -> dict[str, str]:
        """Parse comma-separated uid:token pairs into a token -> uid mapping."""
        mapping: dict[str, str] = {}
        if not self.auth_tokens.strip():
            return mapping

        for item in self.auth_tokens.split(","):
            pair = item.strip()
            if not pair or ":" not in pair:
                continue
            uid, token = pair.split(":", 1)
            uid = uid.strip()
            token = token.strip()
            if uid and token:
                mapping[token] = uid
        return mapping

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = TaskFlowSettings()
