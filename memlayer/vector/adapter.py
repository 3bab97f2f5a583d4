"""
Text-level vector adapter: the add/query/delete capability the retrieval engine consumes.
Embeds text with an injected provider and stores vectors in an injected store.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from .embeddings import IEmbeddingProvider
from .index import IVectorStore
from .types import QueryResult, VectorMetadata, VectorRecord
from ..core.errors import StoreUnavailableError


class VectorAdapter(ABC):
    """Capability surface of a text vector index."""

    @abstractmethod
    def add(self, id: str, text: str, metadata: Optional[VectorMetadata] = None) -> None:
        """Embed and index text under id."""
        pass

    @abstractmethod
    def query(self, text: str, k: int, filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        """Return up to k matches ordered by similarity, best first."""
        pass

    @abstractmethod
    def delete(self, id: str) -> None:
        """Remove id from the index."""
        pass


class EmbeddingVectorAdapter(VectorAdapter):
    """VectorAdapter over an IVectorStore and an IEmbeddingProvider."""

    def __init__(self, store: IVectorStore, embedder: IEmbeddingProvider):
        self.store = store
        self.embedder = embedder

    def _embed(self, text: str) -> np.ndarray:
        return np.asarray(self.embedder.embed_text(text), dtype=np.float32)

    def add(self, id: str, text: str, metadata: Optional[VectorMetadata] = None) -> None:
        try:
            vector = self._embed(text)
            self.store.add(VectorRecord(id=id, vector=vector, metadata=(metadata or VectorMetadata()).to_dict()))
        except Exception as e:
            raise StoreUnavailableError(f"Vector add failed for '{id}': {e}", backend="vector") from e

    def add_batch(self, items: List[tuple]) -> None:
        """Index several (id, text, metadata) triples with one embedding call."""
        if not items:
            return
        try:
            vectors = self.embedder.embed_batch([text for _, text, _ in items])
            records = [
                VectorRecord(id=id, vector=np.asarray(vector, dtype=np.float32),
                             metadata=(metadata or VectorMetadata()).to_dict())
                for (id, _, metadata), vector in zip(items, vectors)
            ]
            self.store.batch_add(records)
        except Exception as e:
            raise StoreUnavailableError(f"Vector batch add failed: {e}", backend="vector") from e

    def query(self, text: str, k: int, filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        if k <= 0:
            return []
        try:
            vector = self._embed(text)
            return self.store.search(vector, top_k=k, filter=filter)
        except Exception as e:
            raise StoreUnavailableError(f"Vector query failed: {e}", backend="vector") from e

    def delete(self, id: str) -> None:
        try:
            self.store.delete(id)
        except Exception as e:
            raise StoreUnavailableError(f"Vector delete failed for '{id}': {e}", backend="vector") from e

    def clear(self) -> None:
        self.store.clear()
