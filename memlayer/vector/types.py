"""
Vector memory overlay - non-canonical, advisory layer over SQLite canonical truth.
Records, query results and the metadata attached to indexed memories.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

import numpy as np

Scalar = Union[str, int, float, bool]


@dataclass
class VectorMetadata:
    """Metadata stored next to a vector: fixed filter fields plus scalar extras."""

    project_id: Optional[str] = None
    memory_id: Optional[str] = None
    type: Optional[str] = None
    extra: Dict[str, Scalar] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Scalar]:
        """Flatten to a scalar mapping, dropping unset fields."""
        out: Dict[str, Scalar] = {}
        for key, value in self.extra.items():
            if isinstance(value, (str, int, float, bool)):
                out[key] = value
        if self.project_id is not None:
            out["project_id"] = self.project_id
        if self.memory_id is not None:
            out["memory_id"] = self.memory_id
        if self.type is not None:
            out["type"] = self.type
        return out

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Scalar]]) -> "VectorMetadata":
        data = dict(data or {})
        project_id = data.pop("project_id", None)
        memory_id = data.pop("memory_id", None)
        type_ = data.pop("type", None)
        return cls(
            project_id=str(project_id) if project_id is not None else None,
            memory_id=str(memory_id) if memory_id is not None else None,
            type=str(type_) if type_ is not None else None,
            extra={k: v for k, v in data.items() if isinstance(v, (str, int, float, bool))},
        )

    def is_empty(self) -> bool:
        return not self.to_dict()

    def matches(self, stored: Dict[str, Scalar]) -> bool:
        """True when every field set on this filter equals the stored value."""
        return all(stored.get(key) == value for key, value in self.to_dict().items())


@dataclass
class VectorRecord:
    """Represents a vector record with metadata."""

    id: str
    """Unique identifier for the vector record"""

    vector: Optional[np.ndarray]
    """The vector representation of the content"""

    metadata: Dict[str, Scalar] = field(default_factory=dict)
    """Flattened metadata associated with the vector"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Similarity score of the match (0-1)"""

    metadata: Dict[str, Scalar] = field(default_factory=dict)
    """Metadata associated with the matched record"""


def similarity_to_score(cosine: float) -> float:
    """Clamp a cosine similarity into the [0, 1] score range."""
    return float(min(1.0, max(0.0, cosine)))
