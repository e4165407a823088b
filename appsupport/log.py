"""
Logging setup for appsupport.

Library modules only ever call ``logging.getLogger(__name__)``; the
embedding application decides where records go.  ``configure_logging``
is a convenience for scripts and tests.

Usage:
    from appsupport.log import configure_logging

    configure_logging(level="DEBUG")
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str, optional
        Logging level name. Defaults to ``Settings.LOG_LEVEL``.
    json_logs : bool, optional
        Emit JSON lines instead of the console format. Defaults to
        ``Settings.LOG_JSON``.
    """
    from appsupport.config import get_settings

    settings = get_settings()
    level = level or settings.LOG_LEVEL
    if json_logs is None:
        json_logs = settings.LOG_JSON

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )


__all__ = ["configure_logging", "JsonFormatter"]
