"""Structured logging configuration."""

from __future__ import annotations

import logging

LOG_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging(level: str = "INFO") -> None:
    """Configure JSON-style logging for the service."""
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
