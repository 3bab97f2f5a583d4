"""
Data access for memory records in SQLite.
Typed results in, typed results out; sqlite errors surface as StoreUnavailableError.
"""

import sqlite3
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from .db import get_db, init_db, health_check
from .schema import CreateMemoryInput, MemoryRecord, MemoryType, as_utc, encode_tags, utcnow
from ..util.logging import logger

# SQLite's default host-parameter limit is 999 on older builds
FETCH_CHUNK_SIZE = 500

UPDATABLE_FIELDS = frozenset({
    "type", "title", "content", "source", "tags", "is_favorite", "is_pinned", "confidence",
})

_COLUMNS = (
    "id, project_id, session_id, type, title, content, source, tags_json, "
    "is_favorite, is_pinned, confidence, created_at, updated_at"
)


def _row_to_record(row: sqlite3.Row) -> MemoryRecord:
    return MemoryRecord(
        id=row["id"],
        project_id=row["project_id"],
        session_id=row["session_id"],
        type=MemoryType(row["type"]),
        title=row["title"],
        content=row["content"],
        source=row["source"],
        tags_json=row["tags_json"],
        is_favorite=bool(row["is_favorite"]),
        is_pinned=bool(row["is_pinned"]),
        confidence=row["confidence"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _filters(project_id: Optional[str], since: Optional[datetime]):
    clauses = []
    params: List[Any] = []
    if project_id:
        clauses.append("project_id = ?")
        params.append(project_id)
    if since is not None:
        clauses.append("created_at >= ?")
        params.append(as_utc(since).isoformat())
    where = " WHERE " + " AND ".join(clauses) if clauses else ""
    return where, params


def validate_confidence(confidence: Optional[float]) -> None:
    if confidence is not None and not 0 <= confidence <= 1:
        raise ValueError("confidence must be between 0 and 1")


class MemoryDAO:
    """SQLite-backed memory store. Opens one connection per operation."""

    def __init__(self, db_path: Optional[str] = None, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    def create(self, data: CreateMemoryInput, created_at: Optional[datetime] = None) -> MemoryRecord:
        """Insert a new memory and return the stored record."""
        if not data.project_id or not data.project_id.strip():
            raise ValueError("project_id cannot be empty")
        if not data.title.strip() and not data.content.strip():
            raise ValueError("title and content cannot both be empty")
        validate_confidence(data.confidence)

        now = utcnow()
        record = MemoryRecord(
            id=uuid.uuid4().hex,
            project_id=data.project_id.strip(),
            session_id=data.session_id,
            type=MemoryType(data.type),
            title=data.title,
            content=data.content,
            source=data.source,
            tags_json=encode_tags(data.tags),
            is_favorite=data.is_favorite,
            is_pinned=data.is_pinned,
            confidence=data.confidence,
            created_at=as_utc(created_at) if created_at else now,
            updated_at=now,
        )

        with get_db(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO memories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id, record.project_id, record.session_id, record.type.value,
                    record.title, record.content, record.source, record.tags_json,
                    record.is_favorite, record.is_pinned, record.confidence,
                    record.created_at.isoformat(), record.updated_at.isoformat(),
                ),
            )
            conn.commit()

        logger.log_store_operation("create", record.id, details={"project_id": record.project_id})
        return record

    def get(self, memory_id: str) -> Optional[MemoryRecord]:
        """Get a memory by id."""
        with get_db(self.db_path) as conn:
            row = conn.execute(f"SELECT {_COLUMNS} FROM memories WHERE id = ?", (memory_id,)).fetchone()
        return _row_to_record(row) if row else None

    def update(self, memory_id: str, **fields: Any) -> Optional[MemoryRecord]:
        """
        Update the given fields of a memory.

        Args:
            memory_id: Memory to update
            **fields: Any of type, title, content, source, tags, is_favorite, is_pinned, confidence

        Returns:
            The updated record, or None if the memory does not exist
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if "confidence" in fields:
            validate_confidence(fields["confidence"])

        columns: Dict[str, Any] = {}
        for name, value in fields.items():
            if name == "tags":
                columns["tags_json"] = encode_tags(value)
            elif name == "type":
                columns["type"] = MemoryType(value).value
            else:
                columns[name] = value
        columns["updated_at"] = utcnow().isoformat()

        assignments = ", ".join(f"{name} = ?" for name in columns)
        with get_db(self.db_path) as conn:
            cursor = conn.execute(
                f"UPDATE memories SET {assignments} WHERE id = ?",
                (*columns.values(), memory_id),
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None

        logger.log_store_operation("update", memory_id, details={"fields": sorted(fields)})
        return self.get(memory_id)

    def delete(self, memory_id: str) -> bool:
        """Delete a memory. Returns False when it did not exist."""
        with get_db(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            conn.commit()
            deleted = cursor.rowcount > 0

        if deleted:
            logger.log_store_operation("delete", memory_id)
        return deleted

    def fetch_by_ids(self, ids: List[str]) -> List[MemoryRecord]:
        """Fetch records for ids. Order is not guaranteed; unknown ids are skipped."""
        if not ids:
            return []

        unique_ids = list(dict.fromkeys(ids))
        records: List[MemoryRecord] = []
        with get_db(self.db_path) as conn:
            for start in range(0, len(unique_ids), FETCH_CHUNK_SIZE):
                chunk = unique_ids[start:start + FETCH_CHUNK_SIZE]
                placeholders = ", ".join("?" for _ in chunk)
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM memories WHERE id IN ({placeholders})", chunk
                ).fetchall()
                records.extend(_row_to_record(row) for row in rows)
        return records

    def list_memories(self, project_id: Optional[str] = None, limit: int = 100, offset: int = 0,
                      since: Optional[datetime] = None) -> List[MemoryRecord]:
        """List memories newest first, optionally for one project or created at/after `since`."""
        where, params = _filters(project_id, since)
        query = f"SELECT {_COLUMNS} FROM memories{where} ORDER BY created_at DESC, id ASC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with get_db(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def list_older_than(self, cutoff: datetime, include_curated: bool = False) -> List[MemoryRecord]:
        """Memories created before cutoff; pinned and favorite ones only when include_curated."""
        query = f"SELECT {_COLUMNS} FROM memories WHERE created_at < ?"
        if not include_curated:
            query += " AND is_pinned = 0 AND is_favorite = 0"

        with get_db(self.db_path) as conn:
            rows = conn.execute(query, (as_utc(cutoff).isoformat(),)).fetchall()
        return [_row_to_record(row) for row in rows]

    def iter_all(self, batch_size: int = 500):
        """Yield every memory in batches, oldest first."""
        offset = 0
        while True:
            with get_db(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM memories ORDER BY created_at ASC, id ASC LIMIT ? OFFSET ?",
                    (batch_size, offset),
                ).fetchall()
            if not rows:
                return
            yield [_row_to_record(row) for row in rows]
            offset += len(rows)

    def count(self, project_id: Optional[str] = None, since: Optional[datetime] = None) -> int:
        """Count memories, with the same filters as list_memories."""
        where, params = _filters(project_id, since)
        with get_db(self.db_path) as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM memories{where}", params).fetchone()
        return row[0]

    def count_by_project(self) -> Dict[str, int]:
        """Memory counts keyed by project id."""
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT project_id, COUNT(*) AS n FROM memories GROUP BY project_id ORDER BY project_id"
            ).fetchall()
        return {row["project_id"]: row["n"] for row in rows}

    def health_check(self) -> bool:
        return health_check(self.db_path)
