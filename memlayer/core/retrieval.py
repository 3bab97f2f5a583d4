"""
Retrieval engine: vector search + hybrid ranking + context budgeter.

The vector adapter and the record fetcher are passed in at construction; the
engine holds no other state and is safe to share between requests.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .budgeter import DEFAULT_SEPARATOR, pack_into_budget
from .ranking import (
    DEFAULT_RECENCY_DAYS,
    RankingOptions,
    rank_memories,
    rank_memories_with_explain,
)
from .schema import BudgetItem, MemoryRecord, RankableMemory, ScoreExplanation
from ..util.logging import logger
from ..vector.adapter import VectorAdapter
from ..vector.types import VectorMetadata

DEFAULT_LIMIT = 20
DEFAULT_MAX_K = 100
DEFAULT_RECALL_BUDGET_TOKENS = 2000
OVERFETCH_FACTOR = 2

FetchMemoriesByIds = Callable[[List[str]], List[MemoryRecord]]


@dataclass
class SearchResult:
    memories: List[MemoryRecord]
    explanations: Optional[List[ScoreExplanation]] = None


@dataclass
class RecallResult:
    memories: List[MemoryRecord]
    packed: str
    used_chars: int
    dropped: int
    explanations: Optional[List[ScoreExplanation]] = None


class RetrievalEngine:
    """Composes vector candidates, record hydration, ranking and packing."""

    def __init__(self, vector: VectorAdapter, fetch_memories_by_ids: FetchMemoriesByIds,
                 default_max_k: int = DEFAULT_MAX_K):
        self.vector = vector
        self.fetch_memories_by_ids = fetch_memories_by_ids
        self.default_max_k = default_max_k

    def _hydrate(self, ids: List[str]) -> List[MemoryRecord]:
        if not ids:
            return []
        return self.fetch_memories_by_ids(ids)

    def search(self, query: str, project_id: Optional[str] = None, tags: Optional[Sequence[str]] = None,
               limit: int = DEFAULT_LIMIT, recency_boost_days: Optional[float] = None,
               explain: bool = False, max_k: Optional[int] = None,
               type: Optional[str] = None) -> SearchResult:
        """
        Rank vector candidates for a query.

        Args:
            query: Free-text query, used for both vector and keyword matching
            project_id: Restrict candidates and results to one project
            tags: Require overlap with these tags
            limit: Maximum number of memories returned
            recency_boost_days: Recency decay constant (default 30)
            explain: Also return index-aligned score breakdowns
            max_k: Cap on vector candidates (default from construction)
            type: Restrict vector candidates to one memory type

        Returns:
            SearchResult with memories in rank order
        """
        if limit <= 0:
            return SearchResult(memories=[], explanations=[] if explain else None)

        max_k = self.default_max_k if max_k is None else max_k
        vector_filter = VectorMetadata(project_id=project_id or None, type=type or None)

        # Over-fetch so project/tag filtering still leaves enough results
        k = min(limit * OVERFETCH_FACTOR, max_k)
        vector_results = self.vector.query(query, k, vector_filter)

        ids = [r.id for r in vector_results]
        score_map: Dict[str, float] = {r.id: r.score for r in vector_results}

        memories = self._hydrate(ids)
        memory_by_id = {m.id: m for m in memories}
        rankable = [RankableMemory.from_record(m, score_map.get(m.id)) for m in memories]

        options = RankingOptions(
            query=query,
            project_id=project_id,
            tags=list(tags or []),
            recency_boost_days=DEFAULT_RECENCY_DAYS if recency_boost_days is None else recency_boost_days,
        )

        explanations = None
        if explain:
            ranked, explanations = rank_memories_with_explain(rankable, options)
            explanations = explanations[:limit]
        else:
            ranked = rank_memories(rankable, options)

        ordered = [memory_by_id[r.id] for r in ranked[:limit]]

        logger.log_retrieval("search", query, len(ordered), {
            "project_id": project_id,
            "candidates": len(vector_results),
            "hydrated": len(memories),
        })
        return SearchResult(memories=ordered, explanations=explanations)

    def recall(self, query: str, budget_tokens: int = DEFAULT_RECALL_BUDGET_TOKENS,
               project_id: Optional[str] = None, tags: Optional[Sequence[str]] = None,
               limit: int = DEFAULT_LIMIT, recency_boost_days: Optional[float] = None,
               explain: bool = False, max_k: Optional[int] = None,
               type: Optional[str] = None) -> RecallResult:
        """Search, then pack the ranked memories into a token budget."""
        result = self.search(
            query,
            project_id=project_id,
            tags=tags,
            limit=limit,
            recency_boost_days=recency_boost_days,
            explain=explain,
            max_k=max_k,
            type=type,
        )

        items = [
            BudgetItem(id=m.id, text=f"{m.title}\n{m.content}", score=0.0, meta={"type": m.type.value})
            for m in result.memories
        ]
        pack = pack_into_budget(items, budget_tokens=budget_tokens, separator=DEFAULT_SEPARATOR, include_ids=True)

        logger.log_retrieval("recall", query, len(items) - pack.dropped, {
            "budget_tokens": budget_tokens,
            "used_chars": pack.used,
            "dropped": pack.dropped,
        })
        return RecallResult(
            memories=result.memories,
            packed=pack.packed,
            used_chars=pack.used,
            dropped=pack.dropped,
            explanations=result.explanations,
        )
