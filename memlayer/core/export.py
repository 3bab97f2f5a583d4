"""
Memory export as JSON, CSV or Markdown text.
"""

import csv
import io
import json
from typing import Iterable, List

from .schema import MemoryRecord

EXPORT_FORMATS = ("json", "csv", "md")

CSV_COLUMNS = [
    "id", "project_id", "type", "title", "content", "source", "tags",
    "is_favorite", "is_pinned", "confidence", "created_at", "updated_at",
]


def export_json(memories: Iterable[MemoryRecord]) -> str:
    """Pretty-printed JSON array of memory dicts."""
    return json.dumps([m.to_dict() for m in memories], indent=2)


def export_csv(memories: Iterable[MemoryRecord]) -> str:
    """
    One row per memory under a fixed header.

    Tags are written as their JSON array text; missing optional values are empty cells.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for m in memories:
        writer.writerow([
            m.id,
            m.project_id,
            m.type.value,
            m.title,
            m.content,
            m.source or "",
            json.dumps(m.tags),
            str(m.is_favorite).lower(),
            str(m.is_pinned).lower(),
            "" if m.confidence is None else m.confidence,
            m.created_at.isoformat(),
            m.updated_at.isoformat() if m.updated_at else "",
        ])
    return buffer.getvalue()


def export_markdown(memories: Iterable[MemoryRecord]) -> str:
    lines: List[str] = ["# Memory Export", ""]
    for m in memories:
        lines.append(f"## {m.title}")
        lines.append("")
        lines.append(f"- **ID**: {m.id}")
        lines.append(f"- **Type**: {m.type.value}")
        lines.append(f"- **Project**: {m.project_id}")
        if m.source:
            lines.append(f"- **Source**: {m.source}")
        if m.tags:
            lines.append(f"- **Tags**: {', '.join(m.tags)}")
        lines.append(f"- **Created**: {m.created_at.isoformat()}")
        lines.append("")
        lines.append(m.content)
        lines.append("")
        lines.append("---")
        lines.append("")
    return "\n".join(lines)


def export_memories(memories: List[MemoryRecord], format: str) -> str:
    """Render memories in one of EXPORT_FORMATS."""
    if format == "json":
        return export_json(memories)
    if format == "csv":
        return export_csv(memories)
    if format == "md":
        return export_markdown(memories)
    raise ValueError(f"Unsupported export format: {format}")
