"""
Kernel Plugins - Named, ordered collections of kernel functions

WHAT: Per-plugin function registry plus discovery constructors
WHERE: skernel/runtime/kernel/plugins.py - registry layer below the kernel
WHO: Callers assembling capabilities; the kernel resolving "Plugin.Function"
TIME: add/get/remove O(1)

Registration is last-write-wins: adding a function under an existing name
replaces it and leaves the count unchanged. Callers that want duplicates to
fail pass `replace=False` (per call) or `reject_duplicates=True` (per plugin).
"""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from .errors import DuplicateRegistrationError, FunctionNotFoundError
from .functions import KernelFunction

logger = logging.getLogger(__name__)

PROMPT_SUFFIXES = (".skprompt.txt", ".prompt.txt")


class KernelPlugin:
    """A named group of functions with unique names."""

    def __init__(self, name: str, description: str = "", *, reject_duplicates: bool = False) -> None:
        if not name or not name.strip():
            raise ValueError("Plugin name must be non-empty")
        self.name = name
        self.description = description
        self.reject_duplicates = reject_duplicates
        self._functions: dict[str, KernelFunction] = {}

    def __repr__(self) -> str:
        return f"KernelPlugin(name={self.name!r}, functions={list(self._functions)!r})"

    # ------------------ registry ------------------
    def add_function(self, function: KernelFunction, *, replace: Optional[bool] = None) -> "KernelPlugin":
        allow_replace = (not self.reject_duplicates) if replace is None else replace
        if function.name in self._functions:
            if not allow_replace:
                raise DuplicateRegistrationError(
                    f"Function '{function.name}' already registered in plugin '{self.name}'"
                )
            logger.debug(f"Replacing function {self.name}.{function.name}")
        self._functions[function.name] = function
        return self

    def get_function(self, name: str) -> KernelFunction:
        try:
            return self._functions[name]
        except KeyError:
            raise FunctionNotFoundError(self.name, name) from None

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def remove_function(self, name: str) -> "KernelPlugin":
        self._functions.pop(name, None)
        return self

    def clear_functions(self) -> "KernelPlugin":
        self._functions.clear()
        return self

    def count(self) -> int:
        return len(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __iter__(self) -> Iterator[KernelFunction]:
        return iter(list(self._functions.values()))

    @property
    def functions(self) -> dict[str, KernelFunction]:
        return dict(self._functions)

    @property
    def function_names(self) -> list[str]:
        return list(self._functions)

    def import_from(self, other: "KernelPlugin", function_names: Iterable[str] | None = None) -> "KernelPlugin":
        """Copy functions (all, or the named subset) from another plugin."""

        wanted = None if function_names is None else set(function_names)
        for function in other:
            if wanted is None or function.name in wanted:
                self.add_function(function)
        return self

    def get_metadata(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "function_count": self.count(),
            "functions": [fn.describe().model_dump() for fn in self._functions.values()],
        }

    # ------------------ discovery ------------------
    @classmethod
    def create(cls, name: str, description: str = "") -> "KernelPlugin":
        return cls(name, description)

    @classmethod
    def from_directory(cls, name: str, directory: str | Path, description: str = "") -> "KernelPlugin":
        """Build a plugin from `*.skprompt.txt` / `*.prompt.txt` templates.

        Each file becomes a prompt function named after the file without its
        suffix. Files are loaded in sorted order.
        """

        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(f"Directory not found: {root}")
        plugin = cls(name, description)
        for path in sorted(root.iterdir()):
            if not path.is_file():
                continue
            for suffix in PROMPT_SUFFIXES:
                if path.name.endswith(suffix):
                    function_name = path.name[: -len(suffix)]
                    plugin.add_function(KernelFunction.from_prompt_file(function_name, path))
                    break
        logger.info(f"Loaded {plugin.count()} prompt functions from {root} into plugin {name}")
        return plugin

    @classmethod
    def from_object(
        cls,
        name: str,
        instance: object,
        method_names: Iterable[str] | None = None,
        description: str | None = None,
    ) -> "KernelPlugin":
        """Expose an object's public methods as native functions."""

        plugin = cls(name, description or f"Plugin from {type(instance).__name__}")
        wanted = None if method_names is None else set(method_names)
        for attr, member in inspect.getmembers(instance, predicate=inspect.ismethod):
            if attr.startswith("_"):
                continue
            if wanted is not None and attr not in wanted:
                continue
            doc = inspect.getdoc(member) or ""
            summary = doc.strip().splitlines()[0] if doc.strip() else f"Native function: {attr}"
            plugin.add_function(KernelFunction.from_native(attr, member, summary))
        return plugin


__all__ = ["KernelPlugin", "PROMPT_SUFFIXES"]
