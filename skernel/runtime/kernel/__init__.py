"""
Kernel Runtime - Plugins, functions, middleware, events, and memory

WHAT: Public surface of the orchestration kernel
WHERE: skernel/runtime/kernel/ - runtime orchestration subsystem
WHO: Bootstrap code, planners, and native functions
TIME: Pipeline overhead O(#middleware + #handlers) per invocation

Typical wiring:

    kernel = (
        Kernel.create_builder()
        .with_chat_service(service)
        .with_native_function("Math", "add", lambda a, b: a + b)
        .build()
    )
    kernel.run("Math.add", {"a": 3, "b": 5}).text  # "8"

Boundary Notes:
- Only resolution errors escape Kernel.run; all else is a FunctionResult
- Telemetry events are synchronous and isolated from handler failures
- The volatile memory store is a brute-force scan, not an index
"""

from .builder import KernelBuilder  # noqa: F401
from .chat_service import (  # noqa: F401
    CallableChatService,
    ChatService,
    ChatServiceError,
    ServiceUnavailableError,
)
from .context import ContextVariables  # noqa: F401
from .errors import (  # noqa: F401
    ChatServiceNotConfiguredError,
    ConfigurationError,
    DuplicateRegistrationError,
    EmbeddingDimensionError,
    FunctionNotFoundError,
    InvalidFunctionReferenceError,
    KernelError,
    MemoryStoreNotConfiguredError,
    MiddlewareError,
    PluginNotFoundError,
    ResolutionError,
)
from .events import (  # noqa: F401
    FUNCTION_INVOKED,
    FUNCTION_INVOKING,
    EventDispatcher,
    FunctionInvokedEvent,
    FunctionInvokingEvent,
    GenericKernelEvent,
    KernelEvent,
)
from .functions import FunctionKind, KernelFunction, ParameterSpec  # noqa: F401
from .kernel import Kernel  # noqa: F401
from .memory_store import MemoryStore, VolatileMemoryStore, cosine_similarity, text_similarity  # noqa: F401
from .models import FunctionMetadata, MemoryQueryResult, MemoryRecord  # noqa: F401
from .plugins import KernelPlugin  # noqa: F401
from .results import FunctionResult  # noqa: F401
from .telemetry import (  # noqa: F401
    ConsoleTelemetryClient,
    NoOpTelemetryClient,
    RecordingTelemetryClient,
    TelemetryClient,
    TelemetrySpan,
)

__all__ = [
    "CallableChatService",
    "ChatService",
    "ChatServiceError",
    "ChatServiceNotConfiguredError",
    "ConfigurationError",
    "ConsoleTelemetryClient",
    "ContextVariables",
    "DuplicateRegistrationError",
    "EmbeddingDimensionError",
    "EventDispatcher",
    "FUNCTION_INVOKED",
    "FUNCTION_INVOKING",
    "FunctionInvokedEvent",
    "FunctionInvokingEvent",
    "FunctionKind",
    "FunctionMetadata",
    "FunctionNotFoundError",
    "FunctionResult",
    "GenericKernelEvent",
    "InvalidFunctionReferenceError",
    "Kernel",
    "KernelBuilder",
    "KernelError",
    "KernelEvent",
    "KernelFunction",
    "KernelPlugin",
    "MemoryQueryResult",
    "MemoryRecord",
    "MemoryStore",
    "MemoryStoreNotConfiguredError",
    "MiddlewareError",
    "NoOpTelemetryClient",
    "ParameterSpec",
    "PluginNotFoundError",
    "RecordingTelemetryClient",
    "ResolutionError",
    "ServiceUnavailableError",
    "TelemetryClient",
    "TelemetrySpan",
    "VolatileMemoryStore",
    "cosine_similarity",
    "text_similarity",
]
