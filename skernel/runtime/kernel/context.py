"""
Context Variables - Ordered key/value bag passed through every invocation

WHAT: Mutable, insertion-ordered mapping of string keys to arbitrary values
WHERE: skernel/runtime/kernel/context.py - data layer shared by functions
WHO: Kernel, functions, middleware, and callers building inputs
TIME: get/set O(1), copy/merge O(n)

A thin MutableMapping over a dict. Iteration follows insertion order; a key
that is set again keeps its original position. `copy()` hands out a new bag
so derived data never aliases the caller's context.
"""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from typing import Any, Callable, Iterator, Mapping


class ContextVariables(MutableMapping[str, Any]):
    """Ordered variable bag exchanged between the kernel and its functions."""

    __slots__ = ("_variables",)

    def __init__(self, initial: Mapping[str, Any] | None = None, **values: Any) -> None:
        self._variables: dict[str, Any] = {}
        if initial:
            for key, value in initial.items():
                self._variables[str(key)] = value
        for key, value in values.items():
            self._variables[key] = value

    # ------------------ mapping protocol ------------------
    def __getitem__(self, key: str) -> Any:
        return self._variables[str(key)]

    def __setitem__(self, key: str, value: Any) -> None:
        self._variables[str(key)] = value

    def __delitem__(self, key: str) -> None:
        del self._variables[str(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, key: object) -> bool:
        return str(key) in self._variables

    def __repr__(self) -> str:
        return f"ContextVariables({self._variables!r})"

    def __str__(self) -> str:
        return self.to_json()

    # ------------------ fluent helpers ------------------
    def set(self, key: str, value: Any) -> "ContextVariables":
        self[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._variables.get(str(key), default)

    def has(self, key: str) -> bool:
        return key in self

    def remove(self, key: str) -> "ContextVariables":
        self._variables.pop(str(key), None)
        return self

    def clear(self) -> "ContextVariables":  # type: ignore[override]
        self._variables.clear()
        return self

    def is_empty(self) -> bool:
        return not self._variables

    def merge(
        self,
        other: "ContextVariables | Mapping[str, Any]",
        *,
        overwrite: bool = True,
    ) -> "ContextVariables":
        """Merge another bag or mapping into this one.

        With ``overwrite=False`` keys already present here keep their values.
        """

        for key, value in other.items():
            key = str(key)
            if overwrite or key not in self._variables:
                self._variables[key] = value
        return self

    def copy(self) -> "ContextVariables":
        return ContextVariables(self._variables)

    def filter(self, predicate: Callable[[str, Any], bool]) -> "ContextVariables":
        return ContextVariables({k: v for k, v in self._variables.items() if predicate(k, v)})

    def map(self, fn: Callable[[str, Any], Any]) -> "ContextVariables":
        return ContextVariables({k: fn(k, v) for k, v in self._variables.items()})

    # ------------------ serialisation ------------------
    def to_dict(self) -> dict[str, Any]:
        return dict(self._variables)

    def to_json(self) -> str:
        return json.dumps(self._variables, ensure_ascii=False, default=str)

    @classmethod
    def from_json(cls, text: str) -> "ContextVariables":
        data = json.loads(text)
        return cls(data if isinstance(data, dict) else None)


__all__ = ["ContextVariables"]
