"""Structured logging helpers for HTTP exchanges."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

__all__ = ["JSONFormatter", "mask_sensitive_data", "setup_logging"]

#: Logger configured by :func:`setup_logging`; module loggers propagate into it
ROOT_LOGGER_NAME = "HttpKit"

#: Environment variable naming the JSON log directory
LOG_DIR_ENV = "HTTPKIT_LOG_DIR"

_SENSITIVE_KEYS = ("authorization", "cookie", "token", "password", "secret")

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def mask_sensitive_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``payload`` with credential-like values replaced by ``***``."""

    masked: Dict[str, Any] = {}
    for key, value in payload.items():
        lowered = str(key).lower()
        if any(marker in lowered for marker in _SENSITIVE_KEYS) and value is not None:
            masked[key] = "***"
        elif isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        else:
            masked[key] = value
    return masked


class JSONFormatter(logging.Formatter):
    """Formatter emitting one masked JSON object per record.

    Fields passed through ``extra=`` are copied next to the standard ones.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a JSON string."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


def setup_logging(
    *,
    level: str = "INFO",
    max_log_size_mb: int = 100,
    log_dir: Optional[Path] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Configure the ``HttpKit`` logger with a console handler and JSON-lines files.

    Args:
        level: Level name applied to the ``HttpKit`` logger.
        max_log_size_mb: Rotation threshold of the JSON log file.
        log_dir: Directory for JSON logs; ``HTTPKIT_LOG_DIR`` when omitted. Without
            either, only the console handler is installed.
        propagate: Whether records also reach the root logger.

    Returns:
        The configured logger.
    """
    if log_dir is None:
        env_value = os.environ.get(LOG_DIR_ENV, "").strip()
        if env_value:
            log_dir = Path(env_value)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_httpkit_managed", False):
            logger.removeHandler(handler)
            if isinstance(handler, logging.StreamHandler):
                stream = getattr(handler, "stream", None)
                if stream in (sys.stdout, sys.stderr):
                    continue
            handler.close()

    console_formatter = logging.Formatter("%(levelname)s: %(name)s: %(message)s")
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(console_formatter)
    stream_handler._httpkit_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            log_dir / f"httpkit-{today}.jsonl",
            maxBytes=int(max_log_size_mb * 1024 * 1024),
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._httpkit_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = propagate
    return logger
