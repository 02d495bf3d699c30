"""
Logging Setup - Attach a stream handler to the skernel logger

WHAT: configure_logging(settings) with text or JSON line formatting
WHERE: skernel/logging/configure.py - called by applications, never by the library
WHO: Entry points that want kernel diagnostics on stderr
TIME: O(1); idempotent
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

from skernel.config.settings import KernelSettings, LoggingSettings

ROOT_LOGGER = "skernel"
TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_HANDLER_FLAG = "_skernel_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(
    settings: KernelSettings | LoggingSettings | None = None,
    *,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install (or replace) the skernel stream handler and level."""

    if isinstance(settings, KernelSettings):
        cfg = settings.logging
    else:
        cfg = settings or LoggingSettings()

    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if cfg.format == "json" else logging.Formatter(TEXT_FORMAT))
    setattr(handler, _HANDLER_FLAG, True)
    root.addHandler(handler)
    root.setLevel(cfg.level)
    return root


__all__ = ["JsonFormatter", "ROOT_LOGGER", "configure_logging"]
