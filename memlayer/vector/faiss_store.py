"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
FAISS-backed store with stable string IDs and true deletion.
"""

import json
import os
from typing import Dict, List, Optional

import numpy as np

from .types import VectorRecord, QueryResult, VectorMetadata, similarity_to_score
from .index import IVectorStore, normalize
from ..util.logging import logger

# Sidecar holding the string ID maps next to a saved index
ID_MAP_SUFFIX = ".ids.json"


class FaissVectorStore(IVectorStore):
    """FAISS-backed implementation of IVectorStore."""

    def __init__(self, dimension: int = 384):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Dimension of the vectors (default: 384 for hash embeddings)
        """
        try:
            import faiss
        except ImportError:
            raise ImportError("FAISS not installed. Please install faiss-cpu package.")

        self.faiss = faiss
        self.dimension = dimension

        # Flat inner-product index over unit vectors (cosine similarity), wrapped to allow remove_ids
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))

        # FAISS labels are int64; keep both directions of the mapping
        self.id_to_vector_index: Dict[str, int] = {}
        self.vector_id_map: Dict[int, str] = {}
        self.id_to_metadata: Dict[str, dict] = {}
        self.next_vector_index = 0

    def _check_dimension(self, vector: np.ndarray) -> None:
        if vector.shape[0] != self.dimension:
            raise ValueError(f"Vector dimension {vector.shape[0]} does not match expected dimension {self.dimension}")

    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the FAISS store."""
        self.batch_add([record])

    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the FAISS store."""
        if not records:
            return

        # Last record wins when an ID repeats within the batch
        latest = {record.id: record for record in records}

        vectors_to_add = []
        labels = []
        for record in latest.values():
            normalized = normalize(record.vector)
            if normalized is None:
                self.delete(record.id)
                continue
            self._check_dimension(normalized)

            # Replace any existing vector for this ID
            self.delete(record.id)

            label = self.next_vector_index
            self.next_vector_index += 1
            self.id_to_vector_index[record.id] = label
            self.vector_id_map[label] = record.id
            self.id_to_metadata[record.id] = dict(record.metadata)
            vectors_to_add.append(normalized)
            labels.append(label)

        if not vectors_to_add:
            return

        batch_vectors = np.vstack(vectors_to_add).astype(np.float32)
        self.index.add_with_ids(batch_vectors, np.asarray(labels, dtype=np.int64))

    def search(self, query_vector: np.ndarray, top_k: int = 5,
               filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self.index.ntotal or top_k <= 0:
            return []

        normalized_query = normalize(query_vector)
        if normalized_query is None:
            return []
        self._check_dimension(normalized_query)

        # Filters are applied after the search, so scan the whole index when one is set
        active_filter = filter if filter is not None and not filter.is_empty() else None
        fetch = self.index.ntotal if active_filter else min(top_k, self.index.ntotal)

        scores, labels = self.index.search(normalized_query.reshape(1, -1), fetch)

        results = []
        for score, label in zip(scores[0], labels[0]):
            record_id = self.vector_id_map.get(int(label))
            if record_id is None:
                continue
            metadata = self.id_to_metadata.get(record_id, {})
            if active_filter and not active_filter.matches(metadata):
                continue
            results.append(QueryResult(id=record_id, score=similarity_to_score(score), metadata=dict(metadata)))
            if len(results) >= top_k:
                break

        return results

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID. Unknown IDs are ignored."""
        label = self.id_to_vector_index.pop(record_id, None)
        if label is None:
            return
        self.index.remove_ids(np.asarray([label], dtype=np.int64))
        self.vector_id_map.pop(label, None)
        self.id_to_metadata.pop(record_id, None)

    def clear(self) -> None:
        """Clear all records from the FAISS store."""
        self.index.reset()
        self.id_to_vector_index.clear()
        self.vector_id_map.clear()
        self.id_to_metadata.clear()
        self.next_vector_index = 0

    def size(self) -> int:
        return int(self.index.ntotal)

    def save(self, path: str) -> None:
        """Write the FAISS index to `path` and the ID maps to `path`.ids.json."""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.faiss.write_index(self.index, path)
        with open(path + ID_MAP_SUFFIX, "w", encoding="utf-8") as f:
            json.dump({
                "dimension": self.dimension,
                "next_vector_index": self.next_vector_index,
                "labels": self.id_to_vector_index,
                "metadata": self.id_to_metadata,
            }, f)
        logger.log_vector_operation("save", "-", {"path": path, "size": self.size()})

    def load(self, path: str) -> None:
        """Replace this store's contents with an index written by save()."""
        with open(path + ID_MAP_SUFFIX, "r", encoding="utf-8") as f:
            state = json.load(f)
        if state["dimension"] != self.dimension:
            raise ValueError(f"Saved index dimension {state['dimension']} does not match expected dimension {self.dimension}")

        self.index = self.faiss.read_index(path)
        self.id_to_vector_index = {record_id: int(label) for record_id, label in state["labels"].items()}
        self.vector_id_map = {label: record_id for record_id, label in self.id_to_vector_index.items()}
        self.id_to_metadata = state["metadata"]
        self.next_vector_index = state["next_vector_index"]
        logger.log_vector_operation("load", "-", {"path": path, "size": self.size()})
