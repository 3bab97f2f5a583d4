"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
Store interface and the numpy-backed in-memory implementation.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from .types import VectorRecord, QueryResult, VectorMetadata, similarity_to_score


def normalize(vector) -> Optional[np.ndarray]:
    """Return a float32 unit vector, or None for empty/zero vectors."""
    if vector is None:
        return None
    array = np.asarray(vector, dtype=np.float32).reshape(-1)
    if array.size == 0:
        return None
    norm = np.linalg.norm(array)
    if norm == 0:
        return None
    return array / norm


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    @abstractmethod
    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the store, replacing any record with the same ID."""
        pass

    @abstractmethod
    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the store."""
        pass

    @abstractmethod
    def search(self, query_vector: np.ndarray, top_k: int = 5,
               filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Number of vectors currently indexed."""
        pass


class SimpleInMemoryVectorStore(IVectorStore):
    """Simple in-memory implementation of IVectorStore using cosine similarity."""

    def __init__(self):
        self._vectors = {}  # record_id -> VectorRecord
        self._index = {}    # record_id -> normalized_vector (for fast lookup)

    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the store."""
        normalized = normalize(record.vector)
        if normalized is None:
            # Zero or missing vectors cannot be ranked by cosine similarity
            self.delete(record.id)
            return

        self._vectors[record.id] = record
        self._index[record.id] = normalized

    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the store."""
        for record in records:
            self.add(record)

    def search(self, query_vector: np.ndarray, top_k: int = 5,
               filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self._index or top_k <= 0:
            return []

        normalized_query = normalize(query_vector)
        if normalized_query is None:
            return []

        # Calculate cosine similarities over records passing the filter
        similarities = []
        for record_id, stored_vector in self._index.items():
            metadata = self._vectors[record_id].metadata
            if filter is not None and not filter.matches(metadata):
                continue
            if stored_vector.shape != normalized_query.shape:
                raise ValueError(
                    f"Query dimension {normalized_query.shape[0]} does not match stored dimension {stored_vector.shape[0]}"
                )
            similarities.append((record_id, float(np.dot(normalized_query, stored_vector))))

        # Sort by similarity (descending), ties by id for determinism
        similarities.sort(key=lambda x: (-x[1], x[0]))

        return [
            QueryResult(
                id=record_id,
                score=similarity_to_score(score),
                metadata=dict(self._vectors[record_id].metadata),
            )
            for record_id, score in similarities[:top_k]
        ]

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID. Unknown IDs are ignored."""
        self._vectors.pop(record_id, None)
        self._index.pop(record_id, None)

    def clear(self) -> None:
        """Clear all records from the store."""
        self._vectors.clear()
        self._index.clear()

    def size(self) -> int:
        return len(self._index)
