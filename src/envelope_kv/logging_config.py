"""Structured logging helpers.

Every module obtains its logger through :func:`get_logger`.  The package
never configures structlog on import; applications that want the JSON line
format call :func:`configure_logging` once at startup.
"""

from __future__ import annotations

from typing import Any

import structlog


def configure_logging() -> None:
    """Render structlog output as JSON lines with an ISO timestamp and level."""
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger that accepts keyword fields.
    """
    return structlog.get_logger(name)
