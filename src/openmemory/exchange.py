"""
Export and import formats for the memory collection.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from datetime import datetime, timezone

from .models import MemoryRecord

EXPORT_FORMATS = ("json", "csv", "txt")

CSV_HEADERS = ["Timestamp", "Category", "Platform", "Type", "Summary", "Content"]


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def to_json(records: Sequence[MemoryRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False)


def to_csv(records: Sequence[MemoryRecord]) -> str:
    """Header row, then one fully quoted row per record with quotes doubled."""
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for r in records:
        writer.writerow(
            [
                _iso(r.timestamp),
                r.category or "general",
                r.metadata.get("platform") or "unknown",
                r.type or "memory",
                r.summary or "",
                r.content or "",
            ]
        )
    return buf.getvalue().rstrip("\n")


def to_text(records: Sequence[MemoryRecord]) -> str:
    """A human-readable digest: one dated, ruled block per record."""
    blocks = []
    for r in records:
        date = datetime.fromtimestamp(r.timestamp).strftime("%Y-%m-%d")
        category = (r.category or "general").upper()
        platform = (r.metadata.get("platform") or "unknown").upper()
        blocks.append(f"[{date}] {category} - {platform}\n{r.summary or r.content}\n{'=' * 80}\n")
    return "\n".join(blocks)


def export_records(records: Sequence[MemoryRecord], fmt: str = "json") -> str:
    """Serialise *records* as ``json``, ``csv`` or ``txt``."""
    if fmt == "json":
        return to_json(records)
    if fmt == "csv":
        return to_csv(records)
    if fmt == "txt":
        return to_text(records)
    raise ValueError(f"Unsupported export format: {fmt!r}")


def parse_import(payload: str) -> list[MemoryRecord]:
    """
    Parse a JSON array of memory objects.

    Raises ``ValueError`` for invalid JSON, a non-array payload, or any
    entry that is not a usable memory.
    """
    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError("Invalid format: expected array of memories")
    return [MemoryRecord.from_dict(item) for item in data]
