"""
Function Results - Uniform success/failure outcome of an invocation

WHAT: Immutable result carrying output text, usage counter, and metadata
WHERE: skernel/runtime/kernel/results.py - returned by functions and kernel
WHO: Kernel callers, middleware, telemetry subscribers
TIME: Construction O(1)

A result is either a success with output text or a failure with a non-empty
error message, never both.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class FunctionResult:
    """Outcome of running a kernel function."""

    text: str = ""
    success: bool = True
    error: str | None = None
    usage: int = 0
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            object.__setattr__(self, "text", "" if self.text is None else str(self.text))
        if self.success and self.error is not None:
            raise ValueError("successful result cannot carry an error message")
        if not self.success and not self.error:
            raise ValueError("failed result requires a non-empty error message")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def ok(
        cls,
        text: str,
        usage: int = 0,
        metadata: Mapping[str, Any] | None = None,
    ) -> "FunctionResult":
        return cls(text=text, success=True, usage=usage, metadata=dict(metadata or {}))

    @classmethod
    def failure(cls, message: str, metadata: Mapping[str, Any] | None = None) -> "FunctionResult":
        return cls(text="", success=False, error=message or "unknown error", metadata=dict(metadata or {}))

    @property
    def is_error(self) -> bool:
        return not self.success

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def with_metadata(self, **values: Any) -> "FunctionResult":
        """Return a copy with additional metadata entries."""

        merged = dict(self.metadata)
        merged.update(values)
        return replace(self, metadata=merged)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "success": self.success,
            "error": self.error or "",
            "usage": self.usage,
            "metadata": dict(self.metadata),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __str__(self) -> str:
        return self.text if self.success else (self.error or "")


__all__ = ["FunctionResult"]
