"""Logging configuration with credential redaction."""

import logging
import re
from typing import ClassVar


class CredentialRedactingFilter(logging.Filter):
    """Filter that masks bearer tokens and passwords in log messages."""

    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        (re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.]+"), "Bearer [REDACTED]"),
        (re.compile(r"(Authorization:\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(password['\"]?\s*[=:]\s*['\"]?)[^\s,'\"\]}]+", re.IGNORECASE), r"\1[REDACTED]"),
        (re.compile(r"(id_?token['\"]?\s*[=:]\s*['\"]?)[^\s,'\"\]}]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self._redact(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure root logging for the API process.

    Args:
        level: Log level name (DEBUG, INFO, ...).
        json_format: Emit one JSON object per line instead of the pipe format.
    """
    if json_format:
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_str,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    redaction_filter = CredentialRedactingFilter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(redaction_filter)

    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
