"""Runtime configuration for skernel."""

from .settings import (  # noqa: F401
    ENV_PREFIX,
    ExecutionSettings,
    KernelSettings,
    LoggingSettings,
    MemorySettings,
    TelemetrySettings,
)

__all__ = [
    "ENV_PREFIX",
    "ExecutionSettings",
    "KernelSettings",
    "LoggingSettings",
    "MemorySettings",
    "TelemetrySettings",
]
