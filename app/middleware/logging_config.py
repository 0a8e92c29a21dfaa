"""
Structured logging configuration.

- Development: human-readable colored format, prefixed with the request id
- Production: one JSON object per line (log aggregator compatible)
- Log level: controlled via LOG_LEVEL env variable

Every record emitted inside a request carries the request id and the
caller's organization / user, so a rule decision logged deep inside
app.services can be traced back to the request that caused it.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Request-scoped attributes copied onto records (and into JSON output)
CONTEXT_FIELDS = ("request_id", "tenant_id", "actor_id")

# Attributes callers may pass via ``extra=`` that JSON output should keep
EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "project_id",
    "exception_id",
)


class RequestContextFilter(logging.Filter):
    """Stamp records with request id, organization and actor from ``flask.g``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        actor = getattr(g, "actor", None)
        context = {
            "request_id": getattr(g, "request_id", None),
            "tenant_id": actor.organization_id if actor else None,
            "actor_id": actor.user_id if actor else None,
        }
        for key, value in context.items():
            # Explicit ``extra=`` values win over the ambient context
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production / log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for key in CONTEXT_FIELDS + EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Human-readable colored formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",      # cyan
        "INFO": "\033[32m",       # green
        "WARNING": "\033[33m",    # yellow
        "ERROR": "\033[31m",      # red
        "CRITICAL": "\033[35m",   # magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        request_id = getattr(record, "request_id", None)
        rid = f" [{request_id}]" if request_id else ""
        tenant_id = getattr(record, "tenant_id", None)
        org = f" org={tenant_id}" if tenant_id else ""
        duration = getattr(record, "duration_ms", None)
        dur = f" ({duration:.0f}ms)" if duration is not None else ""
        line = (
            f"{color}{ts} {record.levelname:<8}{self.RESET}{rid} "
            f"{record.name}: {record.getMessage()}{dur}{org}"
        )
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """
    Install a single stderr handler on the root logger.

    LOG_LEVEL env overrides the default (INFO in production, DEBUG otherwise).
    Production gets JSONFormatter; development and testing get ReadableFormatter.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if is_prod else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    # Replace, not append: create_app may run more than once per process (tests)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("werkzeug", "sqlalchemy.engine", "alembic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if is_prod else "readable")
