"""Package logging.

Two output styles, picked with LOG_TYPE:
- text (default): one colored line per record, with the pipeline stage in brackets
- json: one JSON object per record, for log shippers

LOG_LEVEL sets the threshold (DEBUG, INFO, WARNING, ERROR; default INFO).
Pipeline code passes `extra={"stage": ..., "image_id": ...}` to attach context.
"""

import json
import logging
import os
import sys
from typing import Any, Optional

# Record attributes copied into output when present
CONTEXT_FIELDS = ("stage", "image_id")


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RichTextFormatter(logging.Formatter):
    """Render records as colored, icon-prefixed text lines.

    Example:
        ℹ️ 2026-01-05 10:12:01 INFO     recipe_snap          [refine] Found 4 ingredients
    """

    STYLES = {
        # level: (ANSI color, icon)
        "DEBUG": ("\033[36m", "🔍"),
        "INFO": ("\033[32m", "ℹ️"),
        "WARNING": ("\033[33m", "⚠️"),
        "ERROR": ("\033[31m", "❌"),
        "CRITICAL": ("\033[31m", "❌"),
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color, icon = self.STYLES.get(record.levelname, (self.RESET, ""))
        stage = getattr(record, "stage", None)
        prefix = f"[{stage}] " if stage else ""

        line = (
            f"{color}{icon} {self.formatTime(record, '%Y-%m-%d %H:%M:%S')} "
            f"{record.levelname:<8} {record.name:<20} {prefix}{record.getMessage()}{self.RESET}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def get_logger(name: str, level: Optional[str] = None, log_type: Optional[str] = None) -> logging.Logger:
    """Return logger `name`, attaching a stdout handler on first use.

    Args:
        name: Logger name.
        level: Level name; defaults to LOG_LEVEL. Unknown names mean INFO.
        log_type: "text" or "json"; defaults to LOG_TYPE.

    Returns:
        The configured logger. Calling again for the same name returns it
        unchanged.
    """
    named = logging.getLogger(name)
    if named.handlers:
        return named

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    output = (log_type or os.getenv("LOG_TYPE", "text")).lower()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if output == "json" else RichTextFormatter())

    named.setLevel(numeric_level)
    named.addHandler(handler)
    return named


logger = get_logger("recipe_snap")

for _noisy in ("google.genai", "aiohttp"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
