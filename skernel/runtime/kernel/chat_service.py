"""
Chat Service Boundary - Text-generation capability consumed by the kernel

WHAT: Protocol for text generation plus a callable adapter
WHERE: skernel/runtime/kernel/chat_service.py - boundary to model connectors
WHO: Prompt-based functions; bootstrap code wiring a connector into a Kernel
TIME: Opaque and blocking; latency is owned by the connector

Concrete network connectors live outside this package. Anything with a
`generate_text(prompt, context)` method and an `is_service_available()` check
satisfies the protocol.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Protocol

if TYPE_CHECKING:
    from .context import ContextVariables


class ChatServiceError(RuntimeError):
    """Raised by connectors when generation fails."""


class ServiceUnavailableError(ChatServiceError):
    """Raised when generation is attempted against an unavailable service."""


class ChatService(Protocol):
    """Text-generation capability used by prompt-based functions."""

    service_name: str

    def generate_text(self, prompt: str, context: Optional["ContextVariables"] = None) -> str:
        """Return generated text for a fully rendered prompt."""

    def is_service_available(self) -> bool:
        """Cheap availability probe; must not raise."""


@dataclass(slots=True)
class CallableChatService:
    """Adapter turning a plain `fn(prompt) -> str` into a ChatService."""

    fn: Callable[[str], str]
    service_name: str = "callable"
    available: bool = True

    def generate_text(self, prompt: str, context: Optional["ContextVariables"] = None) -> str:
        if not self.available:
            raise ServiceUnavailableError(f"Chat service '{self.service_name}' is not available")
        return str(self.fn(prompt))

    def is_service_available(self) -> bool:
        return self.available


def describe_service(service: object | None) -> str:
    """Human-readable service label for stats and logs."""

    if service is None:
        return "none"
    name = getattr(service, "service_name", None)
    return str(name) if name else type(service).__name__


__all__ = [
    "ChatService",
    "ChatServiceError",
    "ServiceUnavailableError",
    "CallableChatService",
    "describe_service",
]
