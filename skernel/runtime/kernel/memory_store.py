"""
Memory Store - Collection-partitioned records with similarity retrieval

WHAT: MemoryStore protocol plus an in-process (volatile) implementation
WHERE: skernel/runtime/kernel/memory_store.py - retrieval layer used by functions
WHO: Native functions doing retrieval-augmented work; the kernel's memory helpers
TIME: Lookup O(1); search O(n·d) brute-force scan per collection

Retrieval ranking:
- With a query embedding (given, or derived through the optional embedder),
  records holding an embedding of the same dimension are scored by cosine
  similarity; records without one fall back to the text heuristic.
- Without a query embedding every record is scored by token overlap
  (Jaccard over lowercase alphanumeric tokens, bounded to [0, 1]).
- Scores below `min_score` are dropped; the rest are sorted descending and
  cut to `limit`. Missing or empty collections return [].

There is no index: every search scans the whole collection. That keeps the
store trivially consistent under overwrite/delete; an ANN index would be the
next step if collections grow large.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

import numpy as np

from .errors import EmbeddingDimensionError
from .models import MemoryQueryResult, MemoryRecord, generate_record_id, utcnow

logger = logging.getLogger(__name__)

Embedder = Callable[[str], Sequence[float]]

_TOKEN = re.compile(r"[a-z0-9]+")


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors (0 when either norm is 0)."""
    if vec1 is None or vec2 is None or len(vec1) == 0 or len(vec2) == 0:
        return 0.0
    v1 = np.asarray(vec1, dtype=np.float64)
    v2 = np.asarray(vec2, dtype=np.float64)
    if v1.shape != v2.shape:
        return 0.0
    norm = np.linalg.norm(v1) * np.linalg.norm(v2)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(v1, v2) / norm, -1.0, 1.0))


def tokenize(text: str) -> set[str]:
    return set(_TOKEN.findall(text.lower()))


def text_similarity(query: str, text: str) -> float:
    """Jaccard overlap of query and document tokens, in [0, 1]."""
    query_tokens = tokenize(query)
    doc_tokens = tokenize(text)
    if not query_tokens or not doc_tokens:
        return 0.0
    return len(query_tokens & doc_tokens) / len(query_tokens | doc_tokens)


def _as_vector(values: Optional[Iterable[float]]) -> Optional[List[float]]:
    if values is None:
        return None
    vector = [float(v) for v in values]
    return vector or None


def _rank(hits: List[MemoryQueryResult], limit: int) -> List[MemoryQueryResult]:
    hits.sort(key=lambda hit: hit.relevance_score, reverse=True)
    return hits[:limit]


class MemoryStore(Protocol):
    """Abstract interface for kernel memory backends."""

    def create_collection(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        """Create an empty collection; False if it already exists."""

    def does_collection_exist(self, name: str) -> bool:
        ...

    def save_information(
        self,
        collection: str,
        id: str,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> bool:
        """Insert or overwrite a record (auto-creates the collection)."""

    def batch_save_information(self, collection: str, items: Iterable[Mapping[str, Any]]) -> bool:
        ...

    def get_information(self, collection: str, id: str) -> Optional[MemoryRecord]:
        ...

    def remove_information(self, collection: str, id: str) -> bool:
        ...

    def remove_collection(self, name: str) -> bool:
        ...

    def get_collections(self) -> List[str]:
        ...

    def get_information_count(self, collection: str) -> int:
        ...

    def search_by_vector(
        self,
        collection: str,
        query_vector: Sequence[float],
        limit: int = 10,
        min_score: float = 0.0,
    ) -> List[MemoryQueryResult]:
        """Rank embedded records by cosine similarity."""

    def get_relevant(
        self,
        collection: str,
        query_text: str,
        limit: int = 10,
        min_score: float = 0.0,
        query_vector: Optional[Sequence[float]] = None,
    ) -> List[MemoryQueryResult]:
        """Rank records by cosine (when a query vector exists) or text overlap."""


@dataclass(slots=True)
class _Collection:
    name: str
    created_at: datetime = field(default_factory=utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)
    records: Dict[str, MemoryRecord] = field(default_factory=dict)

    def dimension(self, *, exclude: Optional[str] = None) -> int:
        for key, record in self.records.items():
            if key != exclude and record.embedding:
                return len(record.embedding)
        return 0


class VolatileMemoryStore:
    """In-process MemoryStore; contents vanish with the process."""

    def __init__(self, embedder: Optional[Embedder] = None, logger: Optional[logging.Logger] = None) -> None:
        self._collections: Dict[str, _Collection] = {}
        self.embedder = embedder
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    # ------------------ collections ------------------
    def create_collection(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> bool:
        if name in self._collections:
            return False
        self._collections[name] = _Collection(name=name, metadata=dict(metadata or {}))
        self._logger.debug(f"Created memory collection {name}")
        return True

    def does_collection_exist(self, name: str) -> bool:
        return name in self._collections

    def remove_collection(self, name: str) -> bool:
        return self._collections.pop(name, None) is not None

    def get_collections(self) -> List[str]:
        return list(self._collections)

    def get_collection_info(self, name: str) -> Optional[Dict[str, Any]]:
        coll = self._collections.get(name)
        if coll is None:
            return None
        return {
            "name": coll.name,
            "created_at": coll.created_at.isoformat(),
            "item_count": len(coll.records),
            "dimension": coll.dimension(),
            "metadata": dict(coll.metadata),
        }

    def clear(self) -> bool:
        self._collections.clear()
        return True

    # ------------------ records ------------------
    def save_information(
        self,
        collection: str,
        id: str,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
        embedding: Optional[Sequence[float]] = None,
    ) -> bool:
        self.create_collection(collection)
        coll = self._collections[collection]
        vector = _as_vector(embedding)
        if vector is not None:
            expected = coll.dimension(exclude=id)
            if expected and len(vector) != expected:
                raise EmbeddingDimensionError(
                    f"Embedding for '{id}' has {len(vector)} dimensions; collection '{collection}' uses {expected}"
                )

        existing = coll.records.get(id)
        if existing is None:
            coll.records[id] = MemoryRecord(
                collection=collection,
                id=id,
                text=text,
                metadata=dict(metadata or {}),
                embedding=vector,
            )
        else:
            coll.records[id] = MemoryRecord(
                collection=collection,
                id=id,
                text=text,
                metadata=dict(metadata or {}),
                embedding=vector,
                created_at=existing.created_at,
                revision=existing.revision + 1,
            )
        return True

    def batch_save_information(self, collection: str, items: Iterable[Mapping[str, Any]]) -> bool:
        """Save several `{id?, text, metadata?, embedding?}` items.

        Returns False (and saves nothing) if any item lacks `text`; items
        without an `id` get a generated one.
        """

        prepared = list(items)
        for index, item in enumerate(prepared):
            if "text" not in item:
                self._logger.warning(f"Batch item {index} for {collection} has no text; batch rejected")
                return False
        for item in prepared:
            self.save_information(
                collection,
                str(item.get("id") or generate_record_id()),
                str(item["text"]),
                item.get("metadata"),
                item.get("embedding"),
            )
        return True

    def get_information(self, collection: str, id: str) -> Optional[MemoryRecord]:
        coll = self._collections.get(collection)
        if coll is None:
            return None
        return coll.records.get(id)

    def remove_information(self, collection: str, id: str) -> bool:
        coll = self._collections.get(collection)
        if coll is None:
            return False
        return coll.records.pop(id, None) is not None

    def get_information_count(self, collection: str) -> int:
        coll = self._collections.get(collection)
        return len(coll.records) if coll is not None else 0

    # ------------------ retrieval ------------------
    def search_by_vector(
        self,
        collection: str,
        query_vector: Sequence[float],
        limit: int = 10,
        min_score: float = 0.0,
    ) -> List[MemoryQueryResult]:
        coll = self._collections.get(collection)
        query = _as_vector(query_vector)
        if coll is None or query is None or limit <= 0:
            return []

        hits: List[MemoryQueryResult] = []
        for record in coll.records.values():
            if not record.embedding or len(record.embedding) != len(query):
                continue
            score = cosine_similarity(query, record.embedding)
            if score >= min_score:
                hits.append(MemoryQueryResult(record=record, relevance_score=score, strategy="vector"))
        return _rank(hits, limit)

    def get_relevant(
        self,
        collection: str,
        query_text: str,
        limit: int = 10,
        min_score: float = 0.0,
        query_vector: Optional[Sequence[float]] = None,
    ) -> List[MemoryQueryResult]:
        coll = self._collections.get(collection)
        if coll is None or not coll.records or limit <= 0:
            return []

        query = _as_vector(query_vector)
        if query is None and self.embedder is not None:
            try:
                query = _as_vector(self.embedder(query_text))
            except Exception as e:
                self._logger.warning(f"Failed to embed query for {collection}, using text overlap: {e}")
                query = None

        hits: List[MemoryQueryResult] = []
        for record in coll.records.values():
            if query is not None and record.embedding and len(record.embedding) == len(query):
                score = cosine_similarity(query, record.embedding)
                strategy = "vector"
            else:
                score = text_similarity(query_text, record.text)
                strategy = "text"
            if score >= min_score:
                hits.append(MemoryQueryResult(record=record, relevance_score=score, strategy=strategy))
        return _rank(hits, limit)

    # ------------------ stats ------------------
    def get_stats(self) -> Dict[str, Any]:
        return {
            "total_collections": len(self._collections),
            "total_items": sum(len(c.records) for c in self._collections.values()),
            "collections": {
                name: {"item_count": len(c.records), "dimension": c.dimension()}
                for name, c in self._collections.items()
            },
        }


__all__ = [
    "Embedder",
    "MemoryStore",
    "VolatileMemoryStore",
    "cosine_similarity",
    "text_similarity",
    "tokenize",
]
