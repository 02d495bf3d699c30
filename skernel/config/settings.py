"""
Kernel Settings - Typed runtime configuration

WHAT: Pydantic model for logging, telemetry, memory, and execution options
WHERE: skernel/config/settings.py - read by Kernel.from_settings and the builder
WHO: Bootstrap code; deployments configuring through SK_* environment variables
TIME: Validated once at startup

Environment variables use a double underscore between section and field:
`SK_LOGGING__LEVEL=DEBUG`, `SK_MEMORY__DEFAULT_LIMIT=10`. Values that parse as
JSON are decoded first; everything else is handed to pydantic as a string.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "SK_"
_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field("WARNING", description="Level applied to the skernel logger")
    format: Literal["text", "json"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _normalise_level(cls, value: Any) -> str:
        level = str(value).strip().upper()
        if level not in _LEVELS:
            raise ValueError(f"Unknown log level '{value}'")
        return level


class TelemetrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    console: bool = Field(False, description="Print kernel.invoke spans to stderr")
    invocation_log_path: Optional[Path] = Field(None, description="JSONL file receiving one record per invocation")
    history_size: int = Field(1000, ge=1, description="Invocation records kept in memory")


class MemorySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    default_store: Literal["volatile", "none"] = "volatile"
    default_limit: int = Field(5, ge=1)
    similarity_threshold: float = Field(0.0, ge=-1.0, le=1.0)


class ExecutionSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sequence_input_key: str = Field("input", min_length=1)
    reject_duplicate_plugins: bool = False
    reject_duplicate_functions: bool = False


class KernelSettings(BaseModel):
    """Top-level settings; every section has working defaults."""

    model_config = ConfigDict(extra="forbid")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None) -> "KernelSettings":
        env = os.environ if environ is None else environ
        data: Dict[str, Dict[str, Any]] = {}
        for key, raw in env.items():
            if not key.upper().startswith(prefix.upper()):
                continue
            section, sep, field_name = key[len(prefix):].lower().partition("__")
            if not sep or not field_name:
                logger.warning(f"Ignoring {key}: expected {prefix}<SECTION>__<FIELD>")
                continue
            if section not in cls.model_fields:
                logger.warning(f"Ignoring {key}: unknown settings section '{section}'")
                continue
            data.setdefault(section, {})[field_name] = _decode(raw)
        return cls.model_validate(data)


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


__all__ = [
    "ENV_PREFIX",
    "ExecutionSettings",
    "KernelSettings",
    "LoggingSettings",
    "MemorySettings",
    "TelemetrySettings",
]
