"""Structured logging primitives for gitbackup."""

from .events import EventLog, LogConfig, setup_logging
from .formatter import ConsoleFormatter, StructuredTextFormatter

__all__ = [
    "ConsoleFormatter",
    "EventLog",
    "LogConfig",
    "StructuredTextFormatter",
    "setup_logging",
]
