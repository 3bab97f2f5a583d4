"""
Hybrid ranking: semantic score, keyword match, recency, tag filter, pinned/favorite boost.
Pure and deterministic; no I/O. Ties keep input order.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from .errors import InvalidFilterError
from .schema import RankableMemory, ScoreExplanation, as_utc, parse_tags
from ..util.logging import logger

DEFAULT_RECENCY_DAYS = 30.0
DEFAULT_PINNED_BOOST = 1.5
DEFAULT_FAVORITE_BOOST = 1.2
DEFAULT_KEYWORD_WEIGHT = 0.3
DEFAULT_SEMANTIC_WEIGHT = 0.7

# Floor for the recency constant; zero or negative values would divide by zero or invert decay.
MIN_RECENCY_DAYS = 1e-3

MIN_TERM_LENGTH = 2
EXCLUDED = -1.0

_SECONDS_PER_DAY = 24 * 60 * 60


@dataclass
class RankingOptions:
    query: str = ""
    project_id: Optional[str] = None
    tags: Sequence[str] = ()
    recency_boost_days: float = DEFAULT_RECENCY_DAYS
    pinned_boost: float = DEFAULT_PINNED_BOOST
    favorite_boost: float = DEFAULT_FAVORITE_BOOST
    keyword_weight: float = DEFAULT_KEYWORD_WEIGHT
    semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT


def keyword_match_score(query: str, text: str) -> float:
    """
    Fraction of whitespace-separated query terms found in text (case-insensitive).

    Terms shorter than two characters never match but still count in the denominator.
    """
    if not query or not query.strip():
        return 0.0
    haystack = (text or "").lower()
    terms = query.lower().split()
    if not terms:
        return 0.0
    hits = sum(1 for term in terms if len(term) >= MIN_TERM_LENGTH and term in haystack)
    return hits / len(terms)


def recency_score(created_at: datetime, now: datetime, decay_days: float) -> float:
    """Exponential decay by age in days; 1.0 for zero or negative age."""
    decay_days = max(decay_days, MIN_RECENCY_DAYS)
    age_days = (as_utc(now) - as_utc(created_at)).total_seconds() / _SECONDS_PER_DAY
    if age_days <= 0:
        return 1.0
    return math.exp(-age_days / decay_days)


def tag_match_score(tags_json: Optional[str], filter_tags: Sequence[str]) -> float:
    """
    Fraction of requested tags present on the memory.

    Returns 1.0 when no tags are requested. A malformed stored encoding counts
    as no tags at all.
    """
    if not filter_tags:
        return 1.0
    try:
        stored = set(parse_tags(tags_json, strict=True))
    except InvalidFilterError as e:
        logger.debug(f"Treating malformed tags as empty: {e}")
        return 0.0
    if not stored:
        return 0.0
    matched = sum(1 for t in filter_tags if t.lower() in stored)
    return matched / len(filter_tags)


def _score(memory: RankableMemory, options: RankingOptions, now: datetime) -> Tuple[float, Optional[ScoreExplanation]]:
    if options.project_id and memory.project_id != options.project_id:
        return EXCLUDED, None

    tag_score = tag_match_score(memory.tags_json, options.tags)
    if tag_score == 0:
        return EXCLUDED, None

    kw = keyword_match_score(options.query, f"{memory.title} {memory.content}")
    sem = memory.semantic_score if memory.semantic_score is not None else 0.0
    rec = recency_score(memory.created_at, now, options.recency_boost_days)

    score = options.keyword_weight * kw + options.semantic_weight * sem
    score *= rec
    score *= tag_score

    pinned = options.pinned_boost if memory.is_pinned else 1.0
    favorite = options.favorite_boost if memory.is_favorite else 1.0
    score *= pinned
    score *= favorite

    confidence_factor = 1.0
    if memory.confidence is not None and memory.confidence > 0:
        confidence_factor = 0.5 + 0.5 * memory.confidence
    score *= confidence_factor

    explanation = ScoreExplanation(
        id=memory.id,
        keyword_score=kw,
        semantic_score=sem,
        recency_score=rec,
        tag_score=tag_score,
        pinned_boost=pinned,
        favorite_boost=favorite,
        confidence_factor=confidence_factor,
        final_score=score,
    )
    return score, explanation


def _rank(memories: Sequence[RankableMemory], options: RankingOptions,
          now: Optional[datetime]) -> List[Tuple[float, RankableMemory, ScoreExplanation]]:
    now = now or datetime.now(timezone.utc)
    scored = []
    for memory in memories:
        score, explanation = _score(memory, options, now)
        if score >= 0:
            scored.append((score, memory, explanation))
    # list.sort is stable, so equal scores keep input order
    scored.sort(key=lambda s: s[0], reverse=True)
    return scored


def rank_memories(memories: Sequence[RankableMemory], options: RankingOptions,
                  now: Optional[datetime] = None) -> List[RankableMemory]:
    """Filter and order candidates by hybrid score, highest first."""
    return [memory for _, memory, _ in _rank(memories, options, now)]


def rank_memories_with_explain(memories: Sequence[RankableMemory], options: RankingOptions,
                               now: Optional[datetime] = None) -> Tuple[List[RankableMemory], List[ScoreExplanation]]:
    """Same order as rank_memories, plus an index-aligned score breakdown."""
    ranked = _rank(memories, options, now)
    return [memory for _, memory, _ in ranked], [explanation for _, _, explanation in ranked]
