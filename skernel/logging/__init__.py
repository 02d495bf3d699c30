"""Logging utilities for skernel.

`configure_logging` is opt-in: the package itself only installs a
NullHandler, so nothing is printed until an application asks for it.
"""

from __future__ import annotations

from .configure import ROOT_LOGGER, JsonFormatter, configure_logging  # noqa: F401
from .invocations import InvocationLog, append_record, build_invocation_record  # noqa: F401

__all__ = [
    "ROOT_LOGGER",
    "InvocationLog",
    "JsonFormatter",
    "append_record",
    "build_invocation_record",
    "configure_logging",
]
