"""
Memory records and the transient views built from them per request.
Records are owned by the SQLite store; ranking and budgeting only read them.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidFilterError


class MemoryType(str, Enum):
    FACT = "FACT"
    DECISION = "DECISION"
    SNIPPET = "SNIPPET"
    TASK = "TASK"
    SUMMARY = "SUMMARY"


def parse_tags(tags_json: Optional[str], strict: bool = False) -> List[str]:
    """
    Decode a stored tag list into lowercase strings.

    Args:
        tags_json: JSON-encoded list of strings, or None for no tags
        strict: Raise InvalidFilterError on malformed input instead of returning []

    Returns:
        Lowercased tags in stored order
    """
    if not tags_json:
        return []
    try:
        parsed = json.loads(tags_json)
    except (TypeError, ValueError) as e:
        if strict:
            raise InvalidFilterError(f"Malformed tags encoding: {e}") from e
        return []

    if not isinstance(parsed, list) or not all(isinstance(t, str) for t in parsed):
        if strict:
            raise InvalidFilterError("Tags must be encoded as a list of strings")
        return []

    return [t.lower() for t in parsed]


def encode_tags(tags: Optional[List[str]]) -> Optional[str]:
    """Encode tags for storage; empty or missing tags are stored as NULL."""
    if not tags:
        return None
    cleaned = [t.strip().lower() for t in tags if t and t.strip()]
    return json.dumps(cleaned) if cleaned else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class MemoryRecord:
    id: str
    project_id: str
    type: MemoryType
    title: str
    content: str
    tags_json: Optional[str] = None
    is_favorite: bool = False
    is_pinned: bool = False
    confidence: Optional[float] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    source: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def tags(self) -> List[str]:
        return parse_tags(self.tags_json)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "tags": self.tags,
            "is_favorite": self.is_favorite,
            "is_pinned": self.is_pinned,
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "source": self.source,
            "session_id": self.session_id,
        }


@dataclass
class CreateMemoryInput:
    project_id: str
    type: MemoryType
    title: str
    content: str
    tags: List[str] = field(default_factory=list)
    is_favorite: bool = False
    is_pinned: bool = False
    confidence: Optional[float] = None
    source: Optional[str] = None
    session_id: Optional[str] = None


@dataclass
class RankableMemory:
    """A memory record under consideration for one ranking pass."""
    id: str
    project_id: str
    type: MemoryType
    title: str
    content: str
    tags_json: Optional[str]
    is_favorite: bool
    is_pinned: bool
    confidence: Optional[float]
    created_at: datetime
    semantic_score: Optional[float] = None

    @classmethod
    def from_record(cls, record: MemoryRecord, semantic_score: Optional[float] = None) -> "RankableMemory":
        return cls(
            id=record.id,
            project_id=record.project_id,
            type=record.type,
            title=record.title,
            content=record.content,
            tags_json=record.tags_json,
            is_favorite=record.is_favorite,
            is_pinned=record.is_pinned,
            confidence=record.confidence,
            created_at=record.created_at,
            semantic_score=semantic_score,
        )


@dataclass
class ScoreExplanation:
    """Per-memory score breakdown reported by explain mode."""
    id: str
    keyword_score: float
    semantic_score: float
    recency_score: float
    tag_score: float
    pinned_boost: float
    favorite_boost: float
    confidence_factor: float
    final_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "keyword_score": self.keyword_score,
            "semantic_score": self.semantic_score,
            "recency_score": self.recency_score,
            "tag_score": self.tag_score,
            "pinned_boost": self.pinned_boost,
            "favorite_boost": self.favorite_boost,
            "confidence_factor": self.confidence_factor,
            "final_score": self.final_score,
        }


@dataclass
class BudgetItem:
    # score is carried for future budget-aware reordering; the packer keeps input order
    id: str
    text: str
    score: float = 0.0
    meta: Dict[str, Any] = field(default_factory=dict)
