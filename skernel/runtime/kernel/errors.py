"""
Kernel Errors - Exception taxonomy for the orchestration runtime

WHAT: Exception classes raised by the kernel, plugins, and memory store
WHERE: skernel/runtime/kernel/errors.py - shared by every kernel module
WHO: Callers of Kernel.run and code registering plugins or memories
TIME: N/A

Only resolution errors (unknown plugin/function, malformed reference) are
meant to escape Kernel.run. Everything raised inside a function body or a
middleware step is converted to a failed FunctionResult by the kernel.
"""

from __future__ import annotations


class KernelError(Exception):
    """Base class for all kernel errors."""


class ResolutionError(KernelError, LookupError):
    """Raised when a plugin or function reference cannot be resolved."""


class PluginNotFoundError(ResolutionError):
    def __init__(self, plugin_name: str) -> None:
        super().__init__(f"Plugin '{plugin_name}' not found")
        self.plugin_name = plugin_name


class FunctionNotFoundError(ResolutionError):
    def __init__(self, plugin_name: str, function_name: str) -> None:
        super().__init__(f"Function '{function_name}' not found in plugin '{plugin_name}'")
        self.plugin_name = plugin_name
        self.function_name = function_name


class InvalidFunctionReferenceError(ResolutionError, ValueError):
    def __init__(self, reference: str) -> None:
        super().__init__(
            f"Invalid function reference: '{reference}'. Expected format: 'PluginName.FunctionName'"
        )
        self.reference = reference


class DuplicateRegistrationError(KernelError, ValueError):
    """Raised when a caller opts out of last-write-wins registration."""


class ConfigurationError(KernelError, RuntimeError):
    """Raised when a required collaborator has not been configured."""


class ChatServiceNotConfiguredError(ConfigurationError):
    pass


class MemoryStoreNotConfiguredError(ConfigurationError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Memory store not configured. Set a memory store before saving or retrieving information."
        )


class MiddlewareError(KernelError):
    """Wraps an exception raised by a before/after middleware step."""

    def __init__(self, stage: str, qualified_name: str, cause: BaseException) -> None:
        super().__init__(f"Middleware '{stage}' failed for {qualified_name}: {cause}")
        self.stage = stage
        self.qualified_name = qualified_name
        self.cause = cause


class EmbeddingDimensionError(KernelError, ValueError):
    """Raised when an embedding does not match its collection's dimension."""


__all__ = [
    "KernelError",
    "ResolutionError",
    "PluginNotFoundError",
    "FunctionNotFoundError",
    "InvalidFunctionReferenceError",
    "DuplicateRegistrationError",
    "ConfigurationError",
    "ChatServiceNotConfiguredError",
    "MemoryStoreNotConfiguredError",
    "MiddlewareError",
    "EmbeddingDimensionError",
]
