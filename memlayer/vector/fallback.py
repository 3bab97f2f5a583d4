"""
Failure isolation for the vector index.

Wraps a VectorAdapter and catches its errors. In optional mode a failed
add/delete is skipped and a failed query returns no matches, so routes that do
not need the vector index keep working. In mandatory mode errors propagate.
Either way the first failure marks the adapter unhealthy for its lifetime.
"""

from typing import List, Optional

from .adapter import VectorAdapter
from .types import QueryResult, VectorMetadata
from ..util.logging import logger


class VectorFallbackAdapter(VectorAdapter):

    def __init__(self, inner: VectorAdapter, optional: bool):
        self.inner = inner
        self.optional = optional
        # One-way flag, written without a lock: advisory only
        self._failed = False

    def _record_failure(self, operation: str, record_id: str, error: Exception) -> None:
        self._failed = True
        logger.log_vector_operation(operation, record_id, {
            "error": str(error),
            "optional": self.optional,
        }, status="degraded" if self.optional else "failed")

    def add(self, id: str, text: str, metadata: Optional[VectorMetadata] = None) -> None:
        self.try_add(id, text, metadata)

    def try_add(self, id: str, text: str, metadata: Optional[VectorMetadata] = None) -> bool:
        """Add and report whether this call indexed the text. Optional mode returns False on failure."""
        try:
            self.inner.add(id, text, metadata)
        except Exception as e:
            self._record_failure("add", id, e)
            if not self.optional:
                raise
            return False
        return True

    def query(self, text: str, k: int, filter: Optional[VectorMetadata] = None) -> List[QueryResult]:
        try:
            return self.inner.query(text, k, filter)
        except Exception as e:
            self._record_failure("query", "-", e)
            if not self.optional:
                raise
            return []

    def delete(self, id: str) -> None:
        try:
            self.inner.delete(id)
        except Exception as e:
            self._record_failure("delete", id, e)
            if not self.optional:
                raise

    def is_healthy(self) -> bool:
        return not self._failed
