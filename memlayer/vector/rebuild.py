"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
Rebuilds the vector index from the canonical memory store.
"""

from dataclasses import dataclass
from typing import List

from .adapter import EmbeddingVectorAdapter
from ..core.dao import MemoryDAO
from ..core.errors import StoreUnavailableError
from ..core.memory_service import index_metadata, index_text
from ..util.logging import logger


@dataclass
class RebuildStats:
    total: int = 0
    embedded: int = 0
    failed: int = 0
    failed_ids: List[str] = None

    def __post_init__(self):
        if self.failed_ids is None:
            self.failed_ids = []


def rebuild_index(dao: MemoryDAO, adapter: EmbeddingVectorAdapter, batch_size: int = 100) -> RebuildStats:
    """
    Clear the index and re-embed every memory in the store.

    Batches that fail as a whole are retried one memory at a time so a single
    bad record does not drop its neighbours.
    """
    stats = RebuildStats()
    adapter.clear()

    for batch in dao.iter_all(batch_size=batch_size):
        stats.total += len(batch)
        items = [(m.id, index_text(m), index_metadata(m)) for m in batch]
        try:
            adapter.add_batch(items)
            stats.embedded += len(items)
            continue
        except StoreUnavailableError as e:
            logger.warning(f"Batch embed failed, retrying individually: {e}")

        for memory_id, text, metadata in items:
            try:
                adapter.add(memory_id, text, metadata)
                stats.embedded += 1
            except StoreUnavailableError as e:
                stats.failed += 1
                stats.failed_ids.append(memory_id)
                logger.log_vector_operation("rebuild", memory_id, {"error": str(e)}, status="failed")

    logger.log_operation("vector.rebuild", "success" if not stats.failed else "partial", {
        "total": stats.total,
        "embedded": stats.embedded,
        "failed": stats.failed,
    })
    return stats
