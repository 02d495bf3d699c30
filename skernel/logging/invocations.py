"""Invocation records built from FunctionInvoked events.

Each completed invocation becomes one flat, JSON-serialisable record. The
`InvocationLog` subscriber keeps the most recent records in memory and, when
given a path, appends every record to a JSONL file as it arrives.
"""

from __future__ import annotations

import json
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, List, Mapping

from skernel.runtime.kernel.events import FUNCTION_INVOKED, EventDispatcher, FunctionInvokedEvent, KernelEvent


def build_invocation_record(event: FunctionInvokedEvent, *, timestamp: datetime | None = None) -> Dict[str, Any]:
    """Flatten an after-invocation event into a log record."""

    result = event.result
    ts = timestamp or event.created_at or datetime.now(timezone.utc)
    return {
        "timestamp": ts.isoformat(),
        "event_id": event.event_id,
        "plugin": event.plugin_name,
        "function": event.function_name,
        "qualified_name": event.qualified_name,
        "success": event.success,
        "error": result.error if result is not None else None,
        "duration_ms": round(event.duration_ms, 3),
        "output_chars": len(result.text) if result is not None else 0,
        "usage": result.usage if result is not None else 0,
        "context_keys": sorted(event.context.keys()),
    }


def append_record(output_path: Path, record: Mapping[str, Any]) -> None:
    """Append a record to a JSONL file."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("a", encoding="utf-8") as fh:
        json.dump(record, fh, ensure_ascii=False, default=str)
        fh.write("\n")


class InvocationLog:
    """Event subscriber recording one entry per completed invocation."""

    def __init__(self, path: str | Path | None = None, max_records: int = 1000) -> None:
        self.path = Path(path) if path is not None else None
        self._records: Deque[Dict[str, Any]] = deque(maxlen=max_records)

    def __call__(self, event: KernelEvent) -> None:
        if not isinstance(event, FunctionInvokedEvent):
            return
        record = build_invocation_record(event)
        self._records.append(record)
        if self.path is not None:
            append_record(self.path, record)

    def attach(self, dispatcher: EventDispatcher) -> "InvocationLog":
        dispatcher.subscribe(FUNCTION_INVOKED, self)
        return self

    def detach(self, dispatcher: EventDispatcher) -> "InvocationLog":
        dispatcher.unsubscribe(FUNCTION_INVOKED, self)
        return self

    @property
    def records(self) -> List[Dict[str, Any]]:
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()

    def summary(self) -> Dict[str, Any]:
        total = len(self._records)
        failures = sum(1 for r in self._records if not r["success"])
        durations = [r["duration_ms"] for r in self._records]
        return {
            "invocations": total,
            "failures": failures,
            "avg_duration_ms": (sum(durations) / total) if total else 0.0,
            "max_duration_ms": max(durations) if durations else 0.0,
        }


__all__ = ["InvocationLog", "append_record", "build_invocation_record"]
