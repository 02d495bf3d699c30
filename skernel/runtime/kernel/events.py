"""
Kernel Events - Synchronous publish/subscribe for invocation telemetry

WHAT: Event types emitted around invocations and the dispatcher delivering them
WHERE: skernel/runtime/kernel/events.py - observability layer
WHO: Kernel (publisher); metrics, audit, and logging subscribers
TIME: dispatch O(#handlers) on the calling thread

Delivery is in subscription order over a snapshot of the handler list, so a
handler may unsubscribe itself mid-dispatch. A failing handler is logged and
skipped; it never stops later handlers or reaches the publisher.
"""

from __future__ import annotations

import itertools
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Dict, List, Optional

from .context import ContextVariables
from .models import utcnow

if TYPE_CHECKING:
    from .results import FunctionResult

_SEQUENCE = itertools.count(1)

FUNCTION_INVOKING = "FunctionInvoking"
FUNCTION_INVOKED = "FunctionInvoked"


def _event_id() -> str:
    return f"evt_{uuid.uuid4().hex}"


@dataclass(slots=True, kw_only=True)
class KernelEvent:
    """Base event: unique id, UTC timestamp, process-wide sequence number."""

    EVENT_TYPE: ClassVar[str] = "KernelEvent"

    event_id: str = field(default_factory=_event_id)
    created_at: datetime = field(default_factory=utcnow)
    sequence: int = field(default_factory=lambda: next(_SEQUENCE))
    monotonic: float = field(default_factory=time.monotonic)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return self.EVENT_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.created_at.isoformat(),
            "sequence": self.sequence,
            "metadata": dict(self.metadata),
        }

    def __str__(self) -> str:
        return f"{self.event_type} [{self.event_id}] at {self.created_at:%Y-%m-%d %H:%M:%S}"


@dataclass(slots=True, kw_only=True)
class FunctionInvokingEvent(KernelEvent):
    """Emitted after the before-middleware chain, right before the function runs."""

    EVENT_TYPE: ClassVar[str] = FUNCTION_INVOKING

    plugin_name: str
    function_name: str
    context: ContextVariables = field(default_factory=ContextVariables)

    @property
    def qualified_name(self) -> str:
        return f"{self.plugin_name}.{self.function_name}"

    def to_dict(self) -> Dict[str, Any]:
        payload = KernelEvent.to_dict(self)
        payload.update(
            {
                "plugin_name": self.plugin_name,
                "function_name": self.function_name,
                "context_variables": len(self.context),
            }
        )
        return payload


@dataclass(slots=True, kw_only=True)
class FunctionInvokedEvent(KernelEvent):
    """Emitted once per invocation after the after-middleware chain."""

    EVENT_TYPE: ClassVar[str] = FUNCTION_INVOKED

    plugin_name: str
    function_name: str
    context: ContextVariables = field(default_factory=ContextVariables)
    result: Optional["FunctionResult"] = None
    duration_ms: float = 0.0

    @property
    def qualified_name(self) -> str:
        return f"{self.plugin_name}.{self.function_name}"

    @property
    def success(self) -> Optional[bool]:
        return None if self.result is None else self.result.success

    def to_dict(self) -> Dict[str, Any]:
        payload = KernelEvent.to_dict(self)
        payload.update(
            {
                "plugin_name": self.plugin_name,
                "function_name": self.function_name,
                "execution_time_ms": self.duration_ms,
                "success": self.success,
                "error": self.result.error if self.result is not None else None,
                "context_variables": len(self.context),
            }
        )
        return payload


@dataclass(slots=True, kw_only=True)
class GenericKernelEvent(KernelEvent):
    """Ad-hoc event with a caller-chosen type name."""

    name: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        payload = KernelEvent.to_dict(self)
        payload["data"] = dict(self.data)
        return payload


EventHandler = Callable[[KernelEvent], Any]


class EventDispatcher:
    """Synchronous event hub keyed by event-type string."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._listeners: Dict[str, List[EventHandler]] = {}
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    def subscribe(self, event_type: str, handler: EventHandler) -> "EventDispatcher":
        if not callable(handler):
            raise TypeError("Event handler must be callable")
        self._listeners.setdefault(event_type, []).append(handler)
        self._logger.debug(f"Event listener registered for: {event_type}")
        return self

    def unsubscribe(self, event_type: str, handler: EventHandler) -> "EventDispatcher":
        handlers = self._listeners.get(event_type)
        if not handlers:
            return self
        for index, registered in enumerate(handlers):
            if registered is handler or registered == handler:
                del handlers[index]
                self._logger.debug(f"Event listener unregistered for: {event_type}")
                break
        if not handlers:
            del self._listeners[event_type]
        return self

    def unsubscribe_all(self, event_type: str) -> "EventDispatcher":
        removed = self._listeners.pop(event_type, [])
        if removed:
            self._logger.debug(f"Removed {len(removed)} listeners for event type: {event_type}")
        return self

    def dispatch(self, event: KernelEvent) -> int:
        """Deliver an event; returns how many handlers completed successfully."""

        event_type = event.event_type
        handlers = tuple(self._listeners.get(event_type, ()))
        if not handlers:
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:
                self._logger.error(f"Event listener failed for {event_type}: {exc}", exc_info=True)
                continue
            delivered += 1
        self._logger.debug(f"Event {event_type} dispatched to {delivered} listeners")
        return delivered

    def has_listeners(self, event_type: str) -> bool:
        return bool(self._listeners.get(event_type))

    def get_listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, ()))

    def get_event_types(self) -> List[str]:
        return list(self._listeners)

    def get_stats(self) -> Dict[str, Any]:
        by_type = {name: len(handlers) for name, handlers in self._listeners.items()}
        return {
            "event_types_count": len(by_type),
            "total_listeners": sum(by_type.values()),
            "listeners_by_type": by_type,
        }

    def clear_listeners(self) -> "EventDispatcher":
        total = sum(len(h) for h in self._listeners.values())
        self._listeners.clear()
        self._logger.debug(f"Cleared all event listeners ({total} total)")
        return self


__all__ = [
    "FUNCTION_INVOKING",
    "FUNCTION_INVOKED",
    "KernelEvent",
    "FunctionInvokingEvent",
    "FunctionInvokedEvent",
    "GenericKernelEvent",
    "EventHandler",
    "EventDispatcher",
]
