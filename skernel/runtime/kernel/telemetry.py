"""
Telemetry Spans - Timing and attribute capture around function bodies

WHAT: Span context managers plus pluggable sinks (no-op, console, recording)
WHERE: skernel/runtime/kernel/telemetry.py - observability layer
WHO: Kernel wrapping each function body in an `InvocationSpan`
TIME: One perf_counter pair and one sink call per span

Spans complement the EventDispatcher: events are for in-process subscribers
that need the context and result objects, spans are flat attribute maps for
exporters and debugging sinks.

A sink that raises never reaches the code being measured. `deliver` logs the
failure and drops the span, the same way the dispatcher isolates handlers.
"""

from __future__ import annotations

import logging
import sys
import time
from collections import deque
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Deque, Dict, Iterable, Optional, TextIO

if TYPE_CHECKING:
    from .results import FunctionResult

logger = logging.getLogger(__name__)

INVOKE_SPAN = "kernel.invoke"


class TelemetrySpan(AbstractContextManager["TelemetrySpan"]):
    """Timed attribute map handed to its client when the block exits."""

    def __init__(
        self,
        client: "TelemetryClient",
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._client = client
        self.name = name
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self._start: float = 0.0

    def __enter__(self) -> "TelemetrySpan":
        self._start = time.perf_counter()
        return self

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_attributes(self, **values: Any) -> None:
        self.attributes.update(values)

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0 if self._start else 0.0

    def __exit__(self, exc_type, exc, exc_tb) -> bool:
        self.attributes.setdefault("success", exc is None)
        if exc is not None:
            self.attributes.setdefault("error_type", exc_type.__name__)
        self.attributes["duration_ms"] = self.elapsed_ms
        self._client.deliver(self.name, self.attributes)
        return False


class InvocationSpan(TelemetrySpan):
    """`kernel.invoke` span describing one function call."""

    def __init__(
        self,
        client: "TelemetryClient",
        plugin_name: str,
        function_name: str,
        function_type: str,
        context_keys: Iterable[str] = (),
    ) -> None:
        super().__init__(
            client,
            INVOKE_SPAN,
            {
                "plugin": plugin_name,
                "function": function_name,
                "function_type": function_type,
                "context_keys": sorted(context_keys),
            },
        )

    def record_result(self, result: "FunctionResult") -> None:
        self.set_attributes(
            success=result.success,
            output_chars=len(result.text),
            usage=result.usage,
        )
        if not result.success:
            self.set_attribute("error", result.error)


class TelemetryClient:
    """Span factory; subclasses implement `emit_span` to export spans."""

    def span(
        self,
        name: str,
        *,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> TelemetrySpan:
        return TelemetrySpan(self, name, attributes)

    def invocation_span(
        self,
        plugin_name: str,
        function_name: str,
        function_type: str,
        context_keys: Iterable[str] = (),
    ) -> InvocationSpan:
        return InvocationSpan(self, plugin_name, function_name, function_type, context_keys)

    def deliver(self, name: str, attributes: Dict[str, Any]) -> bool:
        """Hand a finished span to `emit_span`; False if the sink failed."""

        try:
            self.emit_span(name, attributes)
        except Exception as exc:
            logger.warning(f"Telemetry sink {type(self).__name__} dropped span {name}: {exc}")
            return False
        return True

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        raise NotImplementedError


class NoOpTelemetryClient(TelemetryClient):
    """Default sink: spans are timed and then discarded."""

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        return None


class ConsoleTelemetryClient(TelemetryClient):
    """Writes one `name key=value ...` line per span (stderr by default)."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        fields = " ".join(f"{key}={attributes[key]!r}" for key in sorted(attributes))
        stream = self._stream or sys.stderr
        stream.write(f"{name} {fields}\n")


class RecordingTelemetryClient(TelemetryClient):
    """Keeps the most recent spans in memory (bounded)."""

    def __init__(self, max_spans: int = 1000) -> None:
        self.spans: Deque[tuple[str, Dict[str, Any]]] = deque(maxlen=max_spans)

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        self.spans.append((name, dict(attributes)))

    def clear(self) -> None:
        self.spans.clear()


__all__ = [
    "INVOKE_SPAN",
    "TelemetrySpan",
    "InvocationSpan",
    "TelemetryClient",
    "NoOpTelemetryClient",
    "ConsoleTelemetryClient",
    "RecordingTelemetryClient",
]
