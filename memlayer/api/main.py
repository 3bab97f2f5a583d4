"""
FastAPI application: health, search, recall, memory CRUD, timeline, stats and export.

The app is built by create_app() from explicit collaborators; build_default_app()
wires those from environment configuration.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .schemas import (
    DeleteResponse,
    ExportResponse,
    HealthResponse,
    MemoryCreateRequest,
    MemoryEnvelope,
    MemoryResponse,
    MemoryUpdateRequest,
    Pagination,
    ProjectCount,
    RecallResponse,
    ReindexResponse,
    ScoreExplanationModel,
    SearchResponse,
    StatsResponse,
    TimelineResponse,
)
from ..core.config import (
    API_DEFAULT_PAGE_SIZE,
    API_MAX_PAGE_SIZE,
    PRUNE_DAYS,
    RECENCY_HALF_LIFE_DAYS,
    VERSION,
    build_retrieval_engine,
    build_vector_adapter,
    debug_enabled,
)
from ..core.dao import MemoryDAO
from ..core.errors import AppError, StoreUnavailableError, bad_request, not_found
from ..core.export import EXPORT_FORMATS, export_memories
from ..core.memory_service import MemoryService
from ..core.retrieval import DEFAULT_RECALL_BUDGET_TOKENS, RetrievalEngine
from ..core.schema import CreateMemoryInput, utcnow
from ..util.logging import logger
from ..vector.adapter import EmbeddingVectorAdapter, VectorAdapter
from ..vector.fallback import VectorFallbackAdapter
from ..vector.rebuild import rebuild_index

SERVICE_NAME = "memlayer"

TIMELINE_DEFAULT_DAYS = 7
EXPORT_MAX_PAGE_SIZE = 1000

# Fields that cannot be cleared to null through PATCH
_NON_NULLABLE_FIELDS = ("type", "title", "content", "is_favorite", "is_pinned")


def _split_tags(tags: Optional[str]) -> List[str]:
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def _explanation_models(explanations):
    if explanations is None:
        return None
    return [ScoreExplanationModel.from_explanation(e) for e in explanations]


def _vector_status(vector: Optional[VectorAdapter]) -> str:
    if vector is None:
        return "disabled"
    if isinstance(vector, VectorFallbackAdapter) and not vector.is_healthy():
        return "degraded"
    return "ok"


def _embedding_adapter(vector: Optional[VectorAdapter]) -> Optional[EmbeddingVectorAdapter]:
    """The embedding adapter under an optional fallback wrapper, if there is one."""
    if isinstance(vector, VectorFallbackAdapter):
        vector = vector.inner
    return vector if isinstance(vector, EmbeddingVectorAdapter) else None


def create_app(retrieval: RetrievalEngine, service: MemoryService, vector: Optional[VectorAdapter] = None,
               recency_half_life_days: float = RECENCY_HALF_LIFE_DAYS,
               debug: Optional[bool] = None) -> FastAPI:
    """
    Build the HTTP application around explicit collaborators.

    Args:
        retrieval: Engine serving /api/search and /api/recall
        service: Memory service backing /api/memories
        vector: Vector adapter reported by /health (defaults to the engine's)
        recency_half_life_days: Recency decay constant applied to every query
        debug: Enables docs and admin routes (default from DEBUG)
    """
    debug = debug_enabled() if debug is None else debug
    vector = vector if vector is not None else retrieval.vector
    if debug:
        logger.set_level(logging.DEBUG)

    app = FastAPI(
        title="memlayer API",
        version=VERSION,
        description="Memory retrieval layer with hybrid ranking and context budgeting",
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error(f"Store unavailable ({exc.backend}) on {request.url.path}: {exc}")
        error = AppError("STORE_UNAVAILABLE", str(exc), 503, {"backend": exc.backend})
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        error = bad_request(str(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/health", response_model=HealthResponse)
    def health_endpoint():
        """Report database and vector index health."""
        db_status = "ok" if service.dao.health_check() else "error"
        vector_status = _vector_status(vector)
        status = "ok" if db_status == "ok" and vector_status != "degraded" else "degraded"

        body = HealthResponse(
            status=status,
            service=SERVICE_NAME,
            version=VERSION,
            dependencies={"db": db_status, "vector": vector_status},
        )
        return JSONResponse(status_code=200 if db_status == "ok" else 503, content=body.model_dump())

    @app.get("/api/search", response_model=SearchResponse, response_model_exclude_none=True)
    def search_endpoint(q: str = "", project: Optional[str] = None, tags: Optional[str] = None,
                        limit: Optional[int] = None, offset: int = 0, explain: bool = False):
        """Rank memories for a query, paginated by limit and offset."""
        limit = min(limit or API_DEFAULT_PAGE_SIZE, API_MAX_PAGE_SIZE)
        if limit < 0:
            raise bad_request("limit must be >= 0", {"limit": limit})
        offset = max(0, offset)

        # Ranking is global, so fetch the prefix up to offset + limit and slice it
        result = retrieval.search(
            q,
            project_id=project or None,
            tags=_split_tags(tags),
            limit=limit + offset,
            recency_boost_days=recency_half_life_days,
            explain=explain,
        )

        page = result.memories[offset:offset + limit]
        explanations = result.explanations[offset:offset + limit] if result.explanations is not None else None

        return SearchResponse(
            memories=[MemoryResponse.from_record(m) for m in page],
            explanations=_explanation_models(explanations),
            pagination=Pagination(limit=limit, offset=offset, total=len(result.memories)),
        )

    @app.get("/api/recall", response_model=RecallResponse, response_model_exclude_none=True)
    def recall_endpoint(q: str = "", project: Optional[str] = None, tags: Optional[str] = None,
                        budget_tokens: Optional[int] = Query(None, alias="budgetTokens"),
                        explain: bool = False):
        """Search and pack the ranked memories into a token budget."""
        result = retrieval.recall(
            q,
            budget_tokens=budget_tokens or DEFAULT_RECALL_BUDGET_TOKENS,
            project_id=project or None,
            tags=_split_tags(tags),
            recency_boost_days=recency_half_life_days,
            explain=explain,
        )

        return RecallResponse(
            memories=[MemoryResponse.from_record(m) for m in result.memories],
            packed=result.packed,
            used_chars=result.used_chars,
            dropped=result.dropped,
            explanations=_explanation_models(result.explanations),
        )

    @app.post("/api/memories", response_model=MemoryEnvelope, status_code=201)
    def create_memory_endpoint(request: MemoryCreateRequest):
        """Store and index a new memory."""
        result = service.create(CreateMemoryInput(
            project_id=request.project_id,
            session_id=request.session_id,
            type=request.type,
            title=request.title,
            content=request.content,
            source=request.source,
            tags=request.tags,
            is_favorite=request.is_favorite,
            is_pinned=request.is_pinned,
            confidence=request.confidence,
        ))
        return MemoryEnvelope(memory=MemoryResponse.from_record(result.memory), indexed=result.indexed)

    @app.get("/api/memories/{memory_id}", response_model=MemoryEnvelope, response_model_exclude_none=True)
    def get_memory_endpoint(memory_id: str):
        """Get a single memory."""
        memory = service.get(memory_id)
        if not memory:
            raise not_found("Memory not found", {"id": memory_id})
        return MemoryEnvelope(memory=MemoryResponse.from_record(memory))

    @app.patch("/api/memories/{memory_id}", response_model=MemoryEnvelope, response_model_exclude_none=True)
    def update_memory_endpoint(memory_id: str, request: MemoryUpdateRequest):
        """Update a memory and re-index it."""
        fields = request.model_dump(exclude_unset=True)
        for name in _NON_NULLABLE_FIELDS:
            if name in fields and fields[name] is None:
                raise bad_request(f"{name} cannot be null", {"field": name})
        if not fields:
            raise bad_request("No fields to update")

        memory = service.update(memory_id, **fields)
        if not memory:
            raise not_found("Memory not found", {"id": memory_id})
        return MemoryEnvelope(memory=MemoryResponse.from_record(memory))

    @app.delete("/api/memories/{memory_id}", response_model=DeleteResponse)
    def delete_memory_endpoint(memory_id: str):
        """Delete a memory and its vector."""
        if not service.delete(memory_id):
            raise not_found("Memory not found", {"id": memory_id})
        return DeleteResponse(deleted=memory_id)

    @app.get("/api/timeline", response_model=TimelineResponse, response_model_exclude_none=True)
    def timeline_endpoint(project: Optional[str] = None, days: float = TIMELINE_DEFAULT_DAYS,
                          limit: Optional[int] = None, offset: int = 0):
        """Memories created in the last `days`, newest first."""
        if days <= 0:
            raise bad_request("days must be > 0", {"days": days})
        limit = min(limit or API_DEFAULT_PAGE_SIZE, API_MAX_PAGE_SIZE)
        if limit < 0:
            raise bad_request("limit must be >= 0", {"limit": limit})
        offset = max(0, offset)
        since = utcnow() - timedelta(days=days)

        memories = service.dao.list_memories(project_id=project or None, limit=limit, offset=offset, since=since)
        total = service.dao.count(project_id=project or None, since=since)
        return TimelineResponse(
            memories=[MemoryResponse.from_record(m) for m in memories],
            pagination=Pagination(limit=limit, offset=offset, total=total),
        )

    @app.get("/api/stats", response_model=StatsResponse)
    def stats_endpoint(project: Optional[str] = None):
        """Memory counts overall and per project."""
        counts = service.dao.count_by_project()
        if project:
            counts = {project: counts.get(project, 0)}
        return StatsResponse(
            total=sum(counts.values()),
            by_project=[ProjectCount(project_id=p, count=n) for p, n in counts.items()],
        )

    @app.get("/api/export", response_model=ExportResponse)
    def export_endpoint(format: str = "json", project: Optional[str] = None,
                        limit: Optional[int] = None, offset: int = 0):
        """Export memories, newest first, as json, csv or md text."""
        if format not in EXPORT_FORMATS:
            raise bad_request(f"format must be one of {', '.join(EXPORT_FORMATS)}", {"format": format})
        limit = min(limit or EXPORT_MAX_PAGE_SIZE, EXPORT_MAX_PAGE_SIZE)
        if limit < 0:
            raise bad_request("limit must be >= 0", {"limit": limit})
        offset = max(0, offset)

        memories = service.dao.list_memories(project_id=project or None, limit=limit, offset=offset)
        return ExportResponse(
            format=format,
            export=export_memories(memories, format),
            pagination=Pagination(limit=limit, offset=offset, total=service.dao.count(project_id=project or None)),
        )

    def require_debug():
        if not debug:
            raise AppError("FORBIDDEN", "Admin endpoints require debug mode", 403)

    @app.post("/admin/prune")
    def prune_endpoint(days: float):
        """Delete unpinned, non-favorite memories older than `days`."""
        require_debug()
        if days <= 0:
            raise bad_request("days must be > 0", {"days": days})
        return {"pruned": service.prune_older_than(days)}

    @app.post("/admin/reindex_vectors", response_model=ReindexResponse)
    def reindex_vectors_endpoint():
        """Clear the vector index and re-embed every stored memory."""
        require_debug()
        adapter = _embedding_adapter(service.vector)
        if adapter is None:
            raise bad_request("Vector index does not support rebuilds")

        stats = rebuild_index(service.dao, adapter)
        return ReindexResponse(total=stats.total, embedded=stats.embedded, failed=stats.failed)

    return app


def build_default_app(db_path: Optional[str] = None) -> FastAPI:
    """
    Wire the app from environment configuration.

    The vector index is in-process, so it is rebuilt from SQLite before serving.
    """
    dao = MemoryDAO(db_path)
    vector = build_vector_adapter()
    retrieval = build_retrieval_engine(vector, dao)
    service = MemoryService(dao, vector)

    if PRUNE_DAYS is not None and PRUNE_DAYS > 0:
        pruned = service.prune_older_than(PRUNE_DAYS)
        if pruned:
            logger.info(f"Pruned {pruned} memories older than {PRUNE_DAYS} days")

    stats = rebuild_index(dao, vector.inner)
    if stats.failed:
        logger.warning(f"Vector index rebuilt with {stats.failed} of {stats.total} memories missing")
    else:
        logger.info(f"Vector index rebuilt with {stats.embedded} memories")

    return create_app(retrieval, service, vector=vector, recency_half_life_days=RECENCY_HALF_LIFE_DAYS)
