"""Structured JSON logging configuration for the TMDB enricher."""

from __future__ import annotations

import logging

from pythonjsonlogger import json as jsonlogger

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(log_level: str) -> None:
    """Configure root logger with structured JSON output.

    Output format: {"ts": "...", "level": "...", "name": "...", "msg": "..."}
    plus any ``extra`` fields passed by the caller.

    Args:
        log_level: Logging level string (e.g., "info", "debug", "warning").
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={
            "asctime": "ts",
            "levelname": "level",
            "message": "msg",
        },
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    # Clear any existing handlers to avoid duplicate output
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
