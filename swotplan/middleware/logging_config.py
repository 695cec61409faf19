"""
Logging setup for the planning app.

Log records may carry the planning scope as ``extra=`` fields (plan_id,
group_id, quadrant, grid) next to the request fields added by the timing
middleware. Development and test runs print one readable line per record;
production emits one JSON object per line. LOG_LEVEL overrides the level.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

_REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
_SCOPE_FIELDS = ("plan_id", "group_id", "quadrant", "grid")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, request and planning scope included."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        for key in _REQUEST_FIELDS + _SCOPE_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                payload[key] = val
        return json.dumps(payload, ensure_ascii=False)


def _scope(record: logging.LogRecord) -> str:
    """Render the planning scope as " (plan=1 group=2 grid=defense)"."""
    parts = [
        f"{key.removesuffix('_id')}={getattr(record, key)}"
        for key in _SCOPE_FIELDS
        if getattr(record, key, None) is not None
    ]
    return f" ({' '.join(parts)})" if parts else ""


class ReadableFormatter(logging.Formatter):
    """Coloured single-line output for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        duration = getattr(record, "duration_ms", None)
        dur_str = f" [{duration:.0f}ms]" if duration is not None else ""
        line = (
            f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}: "
            f"{record.getMessage()}{_scope(record)}{dur_str}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    Level defaults to DEBUG outside production and INFO in production.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG")
    level = getattr(logging, level_name.upper(), logging.INFO)

    root = logging.getLogger()
    # Repeated create_app() calls in one process must not stack handlers
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("urllib3", "werkzeug", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "JSON" if is_prod else "readable")
