"""
Service Starter - Logging.

============================================================
RESPONSIBILITY
============================================================
Console logging setup for the entry points.

- json format for containers and log shippers, one object per line
- text format for terminals
- Library modules only call logging.getLogger(__name__)

============================================================
"""

import json
import logging
import sys
from typing import Any, Dict, Optional


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def __init__(self, orchestrator: Optional[str] = None):
        super().__init__()
        self.orchestrator = orchestrator or ""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "orchestrator": self.orchestrator,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text
        return json.dumps(payload)


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    name: Optional[str] = None,
) -> logging.Logger:
    """
    Set up console logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
        name: Orchestrator name added to every line

    Returns:
        The service_starter logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter: logging.Formatter = JsonFormatter(name)
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {name or '-'} | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("service_starter")


__all__ = [
    "JsonFormatter",
    "setup_logging",
]
