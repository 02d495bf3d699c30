"""
Kernel Models - Type-safe data structures for memories and function metadata

WHAT: Pydantic models for memory records, query hits, and function descriptions
WHERE: skernel/runtime/kernel/models.py - data layer
WHO: Memory stores persisting records; planners reading function metadata
TIME: Model validation <1ms

All memory records carry:
- Collection-scoped id (unique within its collection)
- Optional embedding vector (dimension fixed per collection)
- Timestamps (created/updated) and a revision counter bumped on overwrite
- Metadata dictionaries for extensibility
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_record_id(prefix: str = "mem") -> str:
    """Generate a timestamp-based id with a short UUID suffix."""
    ts = utcnow().isoformat().replace("+00:00", "Z").replace(":", "-")
    return f"{prefix}_{ts}_{uuid.uuid4().hex[:8]}"


class MemoryRecord(BaseModel):
    """
    A single piece of text stored in a memory collection.

    Examples:
    - collection="docs", id="readme", text="Kernels run plugin functions"
    - collection="facts", id="fact_1", text="Paris is in France", embedding=[...]
    """

    collection: str = Field(min_length=1)
    id: str = Field(min_length=1)
    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    embedding: Optional[List[float]] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    revision: int = Field(default=1, ge=1)

    @field_validator("embedding", mode="before")
    @classmethod
    def _empty_embedding_is_absent(cls, value: Any) -> Any:
        if value is None:
            return None
        values = list(value)
        return values or None

    @property
    def dimension(self) -> int:
        return len(self.embedding) if self.embedding else 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (ISO timestamps)."""
        return {
            "collection": self.collection,
            "id": self.id,
            "text": self.text,
            "metadata": dict(self.metadata),
            "embedding": list(self.embedding) if self.embedding else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "revision": self.revision,
        }


class MemoryQueryResult(BaseModel):
    """Result from memory retrieval with relevance scoring."""

    record: MemoryRecord
    relevance_score: float = Field(ge=-1.0, le=1.0)
    strategy: Literal["vector", "text"] = "vector"

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def text(self) -> str:
        return self.record.text


class ParameterMetadata(BaseModel):
    """Declared parameter of a kernel function as exposed to planners."""

    name: str
    type: Literal["str", "int", "float", "bool", "list", "any"] = "any"
    required: bool = False
    default: Any = None
    description: str = ""


class FunctionMetadata(BaseModel):
    """Introspection view of a kernel function (`KernelFunction.describe`)."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    type: Literal["prompt", "native"]
    parameters: List[ParameterMetadata] = Field(default_factory=list)
    prompt_template: Optional[str] = None


__all__ = [
    "utcnow",
    "generate_record_id",
    "MemoryRecord",
    "MemoryQueryResult",
    "ParameterMetadata",
    "FunctionMetadata",
]
