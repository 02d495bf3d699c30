"""
Kernel Builder - Fluent composition root

WHAT: Collects services, plugins, and middleware, then assembles a Kernel
WHERE: skernel/runtime/kernel/builder.py - bootstrap layer above Kernel
WHO: Application entry points and tests wiring a kernel in one expression
TIME: build() O(#plugins + #middleware)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from skernel.config.settings import KernelSettings

from .chat_service import ChatService
from .events import EventDispatcher
from .functions import KernelFunction
from .kernel import MIDDLEWARE_STAGES, Kernel
from .memory_store import Embedder, MemoryStore, VolatileMemoryStore
from .plugins import KernelPlugin
from .telemetry import TelemetryClient

_UNSET = object()


class KernelBuilder:
    """Fluent builder; every `with_*` returns the builder."""

    def __init__(self) -> None:
        self._settings: KernelSettings | None = None
        self._chat_service: ChatService | None = None
        self._memory_store: Any = _UNSET
        self._event_dispatcher: EventDispatcher | None = None
        self._telemetry: TelemetryClient | None = None
        self._logger: logging.Logger | None = None
        self._plugins: List[Tuple[KernelPlugin, Optional[str]]] = []
        self._inline_plugins: Dict[str, KernelPlugin] = {}
        self._middleware: List[Tuple[str, Callable[..., Any]]] = []

    @classmethod
    def create(cls) -> "KernelBuilder":
        return cls()

    # ------------------ services ------------------
    def with_chat_service(self, service: ChatService) -> "KernelBuilder":
        self._chat_service = service
        return self

    def with_volatile_memory(self, embedder: Embedder | None = None) -> "KernelBuilder":
        self._memory_store = VolatileMemoryStore(embedder=embedder)
        return self

    def with_memory_store(self, store: MemoryStore) -> "KernelBuilder":
        self._memory_store = store
        return self

    def without_memory(self) -> "KernelBuilder":
        self._memory_store = None
        return self

    def with_event_dispatcher(self, dispatcher: EventDispatcher) -> "KernelBuilder":
        self._event_dispatcher = dispatcher
        return self

    def with_settings(self, settings: KernelSettings) -> "KernelBuilder":
        self._settings = settings
        return self

    def with_environment_settings(self, prefix: str = "SK_") -> "KernelBuilder":
        self._settings = KernelSettings.from_env(prefix=prefix)
        return self

    def with_telemetry(self, telemetry: TelemetryClient) -> "KernelBuilder":
        self._telemetry = telemetry
        return self

    def with_logger(self, logger: logging.Logger) -> "KernelBuilder":
        self._logger = logger
        return self

    # ------------------ plugins ------------------
    def with_plugin(self, plugin: KernelPlugin, name: str | None = None) -> "KernelBuilder":
        self._plugins.append((plugin, name))
        return self

    def with_plugin_from_object(
        self,
        name: str,
        instance: object,
        method_names: Iterable[str] | None = None,
        description: str | None = None,
    ) -> "KernelBuilder":
        return self.with_plugin(KernelPlugin.from_object(name, instance, method_names, description))

    def _inline_plugin(self, plugin_name: str) -> KernelPlugin:
        plugin = self._inline_plugins.get(plugin_name)
        if plugin is None:
            reject = self._settings is not None and self._settings.execution.reject_duplicate_functions
            plugin = KernelPlugin(plugin_name, reject_duplicates=reject)
            self._inline_plugins[plugin_name] = plugin
            self._plugins.append((plugin, None))
        return plugin

    def with_prompt_function(
        self,
        plugin_name: str,
        function_name: str,
        template: str,
        description: str = "",
    ) -> "KernelBuilder":
        self._inline_plugin(plugin_name).add_function(
            KernelFunction.from_prompt(function_name, template, description)
        )
        return self

    def with_native_function(
        self,
        plugin_name: str,
        function_name: str,
        fn: Callable[..., Any],
        description: str = "",
    ) -> "KernelBuilder":
        self._inline_plugin(plugin_name).add_function(KernelFunction.from_native(function_name, fn, description))
        return self

    def with_middleware(self, stage: str, middleware: Callable[..., Any]) -> "KernelBuilder":
        if stage not in MIDDLEWARE_STAGES:
            raise ValueError(f"Unknown middleware stage '{stage}'; expected one of {MIDDLEWARE_STAGES}")
        self._middleware.append((stage, middleware))
        return self

    # ------------------ build ------------------
    def build(self) -> Kernel:
        settings = self._settings or KernelSettings()
        overrides: Dict[str, Any] = {
            "chat_service": self._chat_service,
            "event_dispatcher": self._event_dispatcher,
            "telemetry": self._telemetry,
            "logger": self._logger,
        }
        if self._memory_store is not _UNSET:
            overrides["memory_store"] = self._memory_store
        kernel = Kernel.from_settings(settings, **overrides)
        for plugin, name in self._plugins:
            kernel.import_plugin(plugin, name)
        for stage, middleware in self._middleware:
            kernel.add_middleware(stage, middleware)
        return kernel


__all__ = ["KernelBuilder"]
