"""
Runtime Orchestration Module

WHAT: Execution layer for plugins, functions, events, and memory
WHERE: skernel/runtime/ - everything below the composition root
WHO: Applications and planners invoking capabilities by qualified name
TIME: Synchronous, single caller; no background work
"""

__all__ = ["kernel"]
