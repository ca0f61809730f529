"""Structured event emission and logging setup."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable

from ..constants import APP_NAME, LOG_FILE_MAX_BYTES
from .formatter import ConsoleFormatter, StructuredTextFormatter


@dataclass(frozen=True)
class LogConfig:
    log_file: Path | None = None
    console: bool = True
    console_level: int = logging.INFO
    file_level: int = logging.DEBUG
    max_file_bytes: int = LOG_FILE_MAX_BYTES


def _to_log_safe(value: Any) -> Any:
    """Convert values to JSON-serializable, log-safe representations."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _to_log_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_log_safe(v) for v in value]
    return str(value)


class EventLog:
    """Emits structured events through one explicitly configured logger.

    Every component that reports progress receives an ``EventLog`` at
    construction; nothing reaches for a module-level logger.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def emit(
        self,
        event: str,
        message: str,
        level: int = logging.INFO,
        exc_info: BaseException | None = None,
        **fields: Any,
    ) -> None:
        payload: dict[str, Any] = {
            "ts": datetime.now().astimezone().isoformat(),
            "event": event,
            "message": message,
        }
        for key, value in fields.items():
            payload[key] = _to_log_safe(value)
        self.logger.log(
            level,
            json.dumps(payload, ensure_ascii=False, separators=(",", ":")),
            exc_info=exc_info,
        )

    def debug(self, event: str, message: str, **fields: Any) -> None:
        self.emit(event, message, level=logging.DEBUG, **fields)

    def info(self, event: str, message: str, **fields: Any) -> None:
        self.emit(event, message, level=logging.INFO, **fields)

    def warning(self, event: str, message: str, **fields: Any) -> None:
        self.emit(event, message, level=logging.WARNING, **fields)

    def error(
        self,
        event: str,
        message: str,
        exc_info: BaseException | None = None,
        **fields: Any,
    ) -> None:
        self.emit(event, message, level=logging.ERROR, exc_info=exc_info, **fields)

    def before_sleep(
        self, *, operation: str, level: int = logging.WARNING
    ) -> Callable[[Any], None]:
        """Build a tenacity before_sleep callback that emits structured retry logs."""

        def _callback(retry_state: Any) -> None:
            outcome = getattr(retry_state, "outcome", None)
            next_action = getattr(retry_state, "next_action", None)
            if outcome is None or next_action is None:
                return

            fields: dict[str, Any] = {
                "operation": operation,
                "attempt": getattr(retry_state, "attempt_number", None),
                "sleep_sec": getattr(next_action, "sleep", None),
            }
            error = outcome.exception() if outcome.failed else None
            if error is not None:
                fields["error_type"] = type(error).__name__
                fields["error"] = str(error)

            self.emit(
                "retry",
                f"Retrying {operation} (attempt {fields['attempt']})",
                level=level,
                **fields,
            )

        return _callback


def setup_logging(config: LogConfig) -> EventLog:
    """Configure the application logger from ``config`` and wrap it."""
    logger = logging.getLogger(APP_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    if config.console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(config.console_level)
        console_handler.setFormatter(ConsoleFormatter())
        logger.addHandler(console_handler)

    if config.log_file is not None:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=config.max_file_bytes,
            backupCount=1,
            encoding="utf-8",
        )
        file_handler.setLevel(config.file_level)
        file_handler.setFormatter(StructuredTextFormatter())
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return EventLog(logger)
