"""
Kernel - Central Coordination Point for plugin/function invocation

WHAT: Plugin registry, middleware chains, and the invocation pipeline
WHERE: skernel/runtime/kernel/kernel.py - top of the runtime stack
WHO: Applications, planners, and CLIs invoking "Plugin.Function" references
TIME: Pipeline overhead O(#middleware + #handlers) per invocation

Invocation pipeline (run_function):
1. resolve plugin, 2. resolve function (both raise before anything is timed)
3. before-middleware chain over the context
4. start timer, dispatch FunctionInvoking
5. invoke the function inside a `kernel.invoke` telemetry span
6. stop timer
7. after-middleware chain over the result
8. dispatch FunctionInvoked (duration, success)
9. return the result

Only resolution errors escape. Function failures, missing services and
throwing middleware all come back as a failed FunctionResult.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from skernel.config.settings import KernelSettings

from .chat_service import ChatService, describe_service
from .context import ContextVariables
from .errors import (
    DuplicateRegistrationError,
    InvalidFunctionReferenceError,
    MemoryStoreNotConfiguredError,
    MiddlewareError,
    PluginNotFoundError,
)
from .events import EventDispatcher, FunctionInvokedEvent, FunctionInvokingEvent
from .functions import KernelFunction
from .memory_store import MemoryStore, VolatileMemoryStore
from .models import MemoryQueryResult
from .plugins import KernelPlugin
from .results import FunctionResult
from .telemetry import ConsoleTelemetryClient, NoOpTelemetryClient, TelemetryClient

if TYPE_CHECKING:
    from .builder import KernelBuilder

BeforeMiddleware = Callable[[ContextVariables, str, str], Optional[ContextVariables]]
AfterMiddleware = Callable[[FunctionResult, str, str], Optional[FunctionResult]]

MIDDLEWARE_STAGES = ("before", "after")


def split_reference(reference: str) -> tuple[str, str]:
    """Split "Plugin.Function" on the first dot."""

    plugin_name, sep, function_name = reference.partition(".")
    if not sep or not plugin_name or not function_name:
        raise InvalidFunctionReferenceError(reference)
    return plugin_name, function_name


class Kernel:
    """Facade that owns plugins, middleware, and optional services."""

    def __init__(
        self,
        chat_service: ChatService | None = None,
        memory_store: MemoryStore | None = None,
        event_dispatcher: EventDispatcher | None = None,
        *,
        settings: KernelSettings | None = None,
        telemetry: TelemetryClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._settings = settings or KernelSettings()
        self._chat_service = chat_service
        self._memory_store = memory_store
        self._event_dispatcher = event_dispatcher or EventDispatcher(logger=self._logger)
        self._telemetry = telemetry or NoOpTelemetryClient()
        self._plugins: Dict[str, KernelPlugin] = {}
        self._middleware: Dict[str, List[Callable[..., Any]]] = {stage: [] for stage in MIDDLEWARE_STAGES}

    @classmethod
    def from_settings(cls, settings: KernelSettings | None = None, **overrides: Any) -> "Kernel":
        """Composition root driven by KernelSettings.

        `overrides` accepts the constructor's collaborators (chat_service,
        memory_store, event_dispatcher, telemetry, logger) and wins over
        whatever the settings would build.
        """

        from skernel.logging.invocations import InvocationLog

        cfg = settings or KernelSettings()
        if "memory_store" in overrides:
            memory_store = overrides.pop("memory_store")
        else:
            memory_store = VolatileMemoryStore() if cfg.memory.default_store == "volatile" else None

        telemetry = overrides.pop("telemetry", None)
        if telemetry is None:
            if cfg.telemetry.enabled and cfg.telemetry.console:
                telemetry = ConsoleTelemetryClient()
            else:
                telemetry = NoOpTelemetryClient()

        dispatcher = overrides.pop("event_dispatcher", None) or EventDispatcher(logger=overrides.get("logger"))
        if cfg.telemetry.enabled and cfg.telemetry.invocation_log_path is not None:
            InvocationLog(
                path=cfg.telemetry.invocation_log_path,
                max_records=cfg.telemetry.history_size,
            ).attach(dispatcher)

        return cls(
            overrides.pop("chat_service", None),
            memory_store,
            dispatcher,
            settings=cfg,
            telemetry=telemetry,
            logger=overrides.pop("logger", None),
        )

    @staticmethod
    def create_builder() -> "KernelBuilder":
        from .builder import KernelBuilder

        return KernelBuilder()

    # ------------------ services ------------------
    @property
    def settings(self) -> KernelSettings:
        return self._settings

    @property
    def chat_service(self) -> ChatService | None:
        return self._chat_service

    @property
    def memory_store(self) -> MemoryStore | None:
        return self._memory_store

    @property
    def event_dispatcher(self) -> EventDispatcher:
        return self._event_dispatcher

    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    def set_chat_service(self, service: ChatService | None) -> "Kernel":
        self._chat_service = service
        self._logger.info(f"Chat service set: {describe_service(service)}")
        return self

    def set_memory_store(self, store: MemoryStore | None) -> "Kernel":
        self._memory_store = store
        self._logger.info(f"Memory store set: {type(store).__name__ if store is not None else 'none'}")
        return self

    def require_memory_store(self) -> MemoryStore:
        if self._memory_store is None:
            raise MemoryStoreNotConfiguredError()
        return self._memory_store

    # ------------------ registry ------------------
    def import_plugin(
        self,
        plugin: KernelPlugin,
        name: str | None = None,
        *,
        replace: bool | None = None,
    ) -> "Kernel":
        plugin_name = name or plugin.name
        allow_replace = (not self._settings.execution.reject_duplicate_plugins) if replace is None else replace
        if plugin_name in self._plugins:
            if not allow_replace:
                raise DuplicateRegistrationError(f"Plugin '{plugin_name}' is already imported")
            self._logger.debug(f"Replacing plugin {plugin_name}")
        if self._settings.execution.reject_duplicate_functions:
            plugin.reject_duplicates = True
        self._plugins[plugin_name] = plugin
        self._logger.info(f"Plugin imported: {plugin_name} ({plugin.count()} functions)")
        return self

    def remove_plugin(self, name: str) -> "Kernel":
        if self._plugins.pop(name, None) is not None:
            self._logger.info(f"Plugin removed: {name}")
        return self

    def has_plugin(self, name: str) -> bool:
        return name in self._plugins

    def get_plugin(self, name: str) -> KernelPlugin:
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginNotFoundError(name) from None

    def get_plugins(self) -> Dict[str, KernelPlugin]:
        return dict(self._plugins)

    def get_function(self, plugin_name: str, function_name: str) -> KernelFunction:
        return self.get_plugin(plugin_name).get_function(function_name)

    # ------------------ middleware ------------------
    def add_middleware(self, stage: str, middleware: Callable[..., Any]) -> "Kernel":
        if stage not in self._middleware:
            raise ValueError(f"Unknown middleware stage '{stage}'; expected one of {MIDDLEWARE_STAGES}")
        if not callable(middleware):
            raise TypeError("Middleware must be callable")
        self._middleware[stage].append(middleware)
        return self

    def add_before_middleware(self, middleware: BeforeMiddleware) -> "Kernel":
        return self.add_middleware("before", middleware)

    def add_after_middleware(self, middleware: AfterMiddleware) -> "Kernel":
        return self.add_middleware("after", middleware)

    def middleware_count(self, stage: str | None = None) -> int:
        if stage is None:
            return sum(len(chain) for chain in self._middleware.values())
        return len(self._middleware.get(stage, ()))

    def _run_chain(self, stage: str, value: Any, plugin_name: str, function_name: str) -> Any:
        for middleware in tuple(self._middleware[stage]):
            try:
                updated = middleware(value, plugin_name, function_name)
            except Exception as exc:
                raise MiddlewareError(stage, f"{plugin_name}.{function_name}", exc) from exc
            if updated is not None:
                value = updated
        return value

    # ------------------ invocation ------------------
    def run(self, reference: str, context: ContextVariables | Mapping[str, Any] | None = None) -> FunctionResult:
        plugin_name, function_name = split_reference(reference)
        return self.run_function(plugin_name, function_name, context)

    def run_function(
        self,
        plugin_name: str,
        function_name: str,
        context: ContextVariables | Mapping[str, Any] | None = None,
    ) -> FunctionResult:
        function = self.get_function(plugin_name, function_name)
        qualified_name = f"{plugin_name}.{function_name}"
        if context is None:
            context = ContextVariables()
        elif not isinstance(context, ContextVariables):
            context = ContextVariables(context)

        try:
            context = self._run_chain("before", context, plugin_name, function_name)
        except MiddlewareError as exc:
            self._logger.warning(str(exc))
            return FunctionResult.failure(
                str(exc),
                metadata={"plugin_name": plugin_name, "function_name": function_name, "stage": "before"},
            )

        start = time.perf_counter()
        self._event_dispatcher.dispatch(
            FunctionInvokingEvent(plugin_name=plugin_name, function_name=function_name, context=context)
        )

        with self._telemetry.invocation_span(
            plugin_name, function_name, function.kind.value, context.keys()
        ) as span:
            try:
                result = function.invoke(context, self)
            except Exception as exc:
                self._logger.error(f"Unhandled error in {qualified_name}: {exc}", exc_info=True)
                result = FunctionResult.failure(
                    f"{qualified_name}: {exc}",
                    metadata={"function_name": function_name, "error_type": type(exc).__name__},
                )
            span.record_result(result)
        duration_ms = (time.perf_counter() - start) * 1000.0

        try:
            result = self._run_chain("after", result, plugin_name, function_name)
        except MiddlewareError as exc:
            self._logger.warning(str(exc))
            result = FunctionResult.failure(
                str(exc),
                metadata={"plugin_name": plugin_name, "function_name": function_name, "stage": "after"},
            )

        self._event_dispatcher.dispatch(
            FunctionInvokedEvent(
                plugin_name=plugin_name,
                function_name=function_name,
                context=context,
                result=result,
                duration_ms=duration_ms,
            )
        )
        if result.success:
            self._logger.debug(f"{qualified_name} completed in {duration_ms:.2f}ms")
        else:
            self._logger.info(f"{qualified_name} failed in {duration_ms:.2f}ms: {result.error}")
        return result

    def execute_sequence(
        self,
        references: Iterable[str],
        initial_context: ContextVariables | Mapping[str, Any] | None = None,
    ) -> List[FunctionResult]:
        """Run references in order, feeding each success's text to the next step.

        A failed step leaves the shared context untouched and the sequence
        carries on.
        """

        if initial_context is None:
            context = ContextVariables()
        elif isinstance(initial_context, ContextVariables):
            context = initial_context
        else:
            context = ContextVariables(initial_context)

        input_key = self._settings.execution.sequence_input_key
        results: List[FunctionResult] = []
        for reference in references:
            result = self.run(reference, context)
            results.append(result)
            if result.success:
                context.set(input_key, result.text)
        return results

    # ------------------ memory ------------------
    def save_information(
        self,
        collection: str,
        id: str,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> bool:
        return self.require_memory_store().save_information(collection, id, text, metadata, embedding)

    def get_relevant_information(
        self,
        collection: str,
        query: str,
        limit: int | None = None,
        min_score: float | None = None,
        query_vector: Optional[Sequence[float]] = None,
    ) -> List[MemoryQueryResult]:
        store = self.require_memory_store()
        memory_cfg = self._settings.memory
        return store.get_relevant(
            collection,
            query,
            memory_cfg.default_limit if limit is None else limit,
            memory_cfg.similarity_threshold if min_score is None else min_score,
            query_vector,
        )

    # ------------------ introspection ------------------
    def get_stats(self) -> Dict[str, Any]:
        return {
            "plugin_count": len(self._plugins),
            "total_functions": sum(plugin.count() for plugin in self._plugins.values()),
            "chat_service": describe_service(self._chat_service),
            "memory_store": type(self._memory_store).__name__ if self._memory_store is not None else "none",
            "event_types": self._event_dispatcher.get_event_types(),
            "middleware_count": {stage: len(chain) for stage, chain in self._middleware.items()},
            "plugin_details": {
                name: {"function_count": plugin.count(), "description": plugin.description}
                for name, plugin in self._plugins.items()
            },
        }

    def get_function_catalog(self) -> List[Dict[str, Any]]:
        catalog: List[Dict[str, Any]] = []
        for plugin_name, plugin in self._plugins.items():
            for function in plugin:
                entry = {"plugin": plugin_name, "qualified_name": f"{plugin_name}.{function.name}"}
                entry.update(function.describe().model_dump())
                catalog.append(entry)
        return catalog


__all__ = ["Kernel", "MIDDLEWARE_STAGES", "split_reference"]
