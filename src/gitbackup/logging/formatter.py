"""Log formatters for console and log-file output."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ..constants import ERROR_PREFIX, WARNING_PREFIX

DEFAULT_EVENT_KEY_ORDER = (
    "ts_utc",
    "level",
    "logger",
    "message",
    "source",
    "destination",
    "archive",
    "fingerprint",
)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace(
        "+00:00", "Z"
    )


def _parse_payload(record: logging.LogRecord) -> dict[str, Any] | None:
    message = record.getMessage()
    if not (message.startswith("{") and message.endswith("}")):
        return None
    try:
        parsed = json.loads(message)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class StructuredTextFormatter(logging.Formatter):
    """Format all log records as human-readable structured blocks."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        # Emit a blank line between entries without adding extra trailing lines.
        self._first_entry = True

    @staticmethod
    def _format_value(value: Any) -> str:
        return str(value).replace("\n", "\\n")

    @staticmethod
    def _ordered_keys(data: dict[str, Any]) -> list[str]:
        preferred = [k for k in DEFAULT_EVENT_KEY_ORDER if data.get(k) is not None]
        remaining = sorted(
            k for k in data if k not in DEFAULT_EVENT_KEY_ORDER and data[k] is not None
        )
        return preferred + remaining

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "ts_utc": _utc_now_iso(),
            "level": record.levelname,
            "logger": record.name,
        }

        parsed = _parse_payload(record)
        if parsed is not None:
            parsed.pop("ts", None)
            base.update(parsed)
        else:
            base["event"] = record.name
            base["message"] = record.getMessage()

        event_name = str(base.pop("event", record.name))
        lines = [f"=== {event_name} ==="]
        for key in self._ordered_keys(base):
            lines.append(f"{key}: {self._format_value(base[key])}")

        if record.exc_info:
            lines.append("traceback:")
            lines.append(self.formatException(record.exc_info))

        body = "\n".join(lines)
        if self._first_entry:
            self._first_entry = False
            return body
        return "\n" + body


class ConsoleFormatter(logging.Formatter):
    """Render only the human message, prefixed for warnings and errors."""

    def format(self, record: logging.LogRecord) -> str:
        parsed = _parse_payload(record)
        if parsed is not None:
            message = str(parsed.get("message") or parsed.get("event", ""))
        else:
            message = record.getMessage()

        if record.levelno >= logging.ERROR:
            return f"{ERROR_PREFIX} {message}"
        if record.levelno >= logging.WARNING:
            return f"{WARNING_PREFIX} {message}"
        return message
