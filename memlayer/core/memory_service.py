"""
Memory writes that keep the vector index in step with the SQLite store.
SQLite is canonical; the vector index is rebuilt from it when they disagree.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, List, Optional

from .dao import MemoryDAO
from .schema import CreateMemoryInput, MemoryRecord, utcnow
from ..util.logging import logger
from ..vector.adapter import VectorAdapter
from ..vector.fallback import VectorFallbackAdapter
from ..vector.types import VectorMetadata


@dataclass
class CreateResult:
    memory: Optional[MemoryRecord]
    indexed: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.memory is not None


def index_text(memory: MemoryRecord) -> str:
    return f"{memory.title} {memory.content}"


def index_metadata(memory: MemoryRecord) -> VectorMetadata:
    return VectorMetadata(project_id=memory.project_id, memory_id=memory.id, type=memory.type.value)


class MemoryService:
    """Create, update, delete and prune memories across the store and the vector index."""

    def __init__(self, dao: MemoryDAO, vector: VectorAdapter):
        self.dao = dao
        self.vector = vector

    def _index(self, memory: MemoryRecord) -> bool:
        """Index one memory; True when this call put it in the vector index."""
        if isinstance(self.vector, VectorFallbackAdapter):
            return self.vector.try_add(memory.id, index_text(memory), index_metadata(memory))
        # Other adapters raise on failure
        self.vector.add(memory.id, index_text(memory), index_metadata(memory))
        return True

    def create(self, data: CreateMemoryInput) -> CreateResult:
        """
        Store a memory and index it.

        Store errors propagate. Vector errors follow the adapter's policy: an
        optional fallback adapter swallows them and the result reports
        indexed=False.
        """
        memory = self.dao.create(data)
        indexed = self._index(memory)
        return CreateResult(memory=memory, indexed=indexed)

    def create_many(self, inputs: List[CreateMemoryInput]) -> List[CreateResult]:
        """Create each input; validation failures are reported per item."""
        results = []
        for data in inputs:
            try:
                results.append(self.create(data))
            except ValueError as e:
                logger.log_store_operation("create", "-", status="rejected", details={"error": str(e)})
                results.append(CreateResult(memory=None, indexed=False, error=str(e)))
        return results

    def update(self, memory_id: str, **fields: Any) -> Optional[MemoryRecord]:
        """Update a memory and re-index it. Returns None if it does not exist."""
        memory = self.dao.update(memory_id, **fields)
        if memory is None:
            return None

        try:
            self.vector.delete(memory.id)
        except Exception as e:
            logger.debug(f"Ignoring vector delete failure before re-index of {memory.id}: {e}")
        self._index(memory)
        return memory

    def delete(self, memory_id: str) -> bool:
        """Delete a memory and its vector. Returns False if it did not exist."""
        try:
            self.vector.delete(memory_id)
        except Exception as e:
            logger.debug(f"Ignoring vector delete failure for {memory_id}: {e}")
        return self.dao.delete(memory_id)

    def get(self, memory_id: str) -> Optional[MemoryRecord]:
        return self.dao.get(memory_id)

    def get_by_ids(self, ids: List[str]) -> List[MemoryRecord]:
        return self.dao.fetch_by_ids(ids)

    def prune_older_than(self, days: float) -> int:
        """
        Delete memories older than `days`. Pinned and favorite memories are never pruned.

        Returns:
            Number of memories deleted
        """
        if days <= 0:
            raise ValueError("days must be > 0")

        cutoff = utcnow() - timedelta(days=days)
        candidates = self.dao.list_older_than(cutoff, include_curated=False)

        deleted = 0
        for memory in candidates:
            try:
                self.vector.delete(memory.id)
            except Exception as e:
                logger.debug(f"Ignoring vector delete failure for {memory.id}: {e}")
            if self.dao.delete(memory.id):
                deleted += 1

        logger.log_operation("prune", "success", {"days": days, "deleted": deleted})
        return deleted
