"""Process-wide logging configuration."""

from __future__ import annotations

import logging

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler once; later calls only adjust the level."""
    global _configured
    numeric = getattr(logging, level.strip().upper(), logging.INFO)
    if _configured:
        logging.getLogger().setLevel(numeric)
        return
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # SQL echo is controlled by TASKFLOW_ECHO_SQL, not the root level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
