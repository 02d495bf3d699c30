"""
Prompt Templates - `{{variable}}` rendering for prompt-based functions

WHAT: Placeholder discovery and substitution for prompt templates
WHERE: skernel/runtime/kernel/prompting.py - prompt generation layer
WHO: Prompt-based kernel functions rendering text for the chat service
TIME: Rendering O(len(template))

Placeholders are `{{name}}` with optional inner whitespace (`{{ name }}`).
A variable missing from the context renders as an empty string; rendering
never fails on missing input.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def extract_variables(template: str) -> list[str]:
    """Return placeholder names in first-appearance order, without duplicates."""

    seen: dict[str, None] = {}
    for match in PLACEHOLDER.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(_stringify(v) for v in value)
    return str(value)


def render_template(template: str, variables: Mapping[str, Any]) -> str:
    return PLACEHOLDER.sub(lambda m: _stringify(variables.get(m.group(1))), template)


def load_template(path) -> str:
    """Read a prompt template file (UTF-8) and strip surrounding whitespace."""

    with open(path, "r", encoding="utf-8") as fh:
        return fh.read().strip()


__all__ = ["PLACEHOLDER", "extract_variables", "render_template", "load_template"]
