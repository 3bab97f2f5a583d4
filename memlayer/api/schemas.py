"""
Request and response models for the memlayer HTTP API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..core.schema import MemoryRecord, MemoryType, ScoreExplanation


class MemoryCreateRequest(BaseModel):
    project_id: str
    type: MemoryType
    title: str
    content: str
    session_id: Optional[str] = None
    source: Optional[str] = None
    tags: List[str] = []
    is_favorite: bool = False
    is_pinned: bool = False
    confidence: Optional[float] = None

    @field_validator('project_id')
    @classmethod
    def project_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('project_id cannot be empty')
        return v

    @field_validator('confidence')
    @classmethod
    def confidence_must_be_in_range(cls, v):
        if v is not None and not 0 <= v <= 1:
            raise ValueError('confidence must be between 0 and 1')
        return v


class MemoryUpdateRequest(BaseModel):
    type: Optional[MemoryType] = None
    title: Optional[str] = None
    content: Optional[str] = None
    source: Optional[str] = None
    tags: Optional[List[str]] = None
    is_favorite: Optional[bool] = None
    is_pinned: Optional[bool] = None
    confidence: Optional[float] = None

    @field_validator('confidence')
    @classmethod
    def confidence_must_be_in_range(cls, v):
        if v is not None and not 0 <= v <= 1:
            raise ValueError('confidence must be between 0 and 1')
        return v


class MemoryResponse(BaseModel):
    id: str
    project_id: str
    type: MemoryType
    title: str
    content: str
    tags: List[str]
    is_favorite: bool
    is_pinned: bool
    confidence: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    source: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: MemoryRecord) -> "MemoryResponse":
        return cls(
            id=record.id,
            project_id=record.project_id,
            type=record.type,
            title=record.title,
            content=record.content,
            tags=record.tags,
            is_favorite=record.is_favorite,
            is_pinned=record.is_pinned,
            confidence=record.confidence,
            created_at=record.created_at,
            updated_at=record.updated_at,
            source=record.source,
            session_id=record.session_id,
        )


class MemoryEnvelope(BaseModel):
    memory: MemoryResponse
    indexed: Optional[bool] = None


class DeleteResponse(BaseModel):
    deleted: str


class ScoreExplanationModel(BaseModel):
    id: str
    keyword_score: float
    semantic_score: float
    recency_score: float
    tag_score: float
    pinned_boost: float
    favorite_boost: float
    confidence_factor: float
    final_score: float

    @classmethod
    def from_explanation(cls, explanation: ScoreExplanation) -> "ScoreExplanationModel":
        return cls(**explanation.to_dict())


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class SearchResponse(BaseModel):
    memories: List[MemoryResponse]
    explanations: Optional[List[ScoreExplanationModel]] = None
    pagination: Pagination


class RecallResponse(BaseModel):
    memories: List[MemoryResponse]
    packed: str
    used_chars: int
    dropped: int
    explanations: Optional[List[ScoreExplanationModel]] = None


class TimelineResponse(BaseModel):
    memories: List[MemoryResponse]
    pagination: Pagination


class ProjectCount(BaseModel):
    project_id: str
    count: int


class StatsResponse(BaseModel):
    total: int
    by_project: List[ProjectCount]


class ExportResponse(BaseModel):
    format: str  # json, csv, md
    export: str
    pagination: Pagination


class ReindexResponse(BaseModel):
    total: int
    embedded: int
    failed: int


class HealthResponse(BaseModel):
    status: str  # ok, degraded
    service: str
    version: str
    dependencies: Dict[str, str]


class ErrorResponse(BaseModel):
    code: str
    message: str
    status_code: int
    details: Optional[Any] = None
