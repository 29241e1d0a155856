"""
MemoryRecord: the unit of storage.

Records are persisted as flat JSON objects.  Known fields map to dataclass
attributes; every other key a caller supplied at creation lives in
``metadata`` and is flattened back into the top level on serialisation.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

#: Fields derived by the engine that caller metadata can never override.
PROTECTED_FIELDS = frozenset({"id", "content", "timestamp", "category", "summary"})

# camelCase spellings written by browser-side exports.
_ALIASES = {
    "conversationId": "conversation_id",
    "lastUpdated": "last_updated",
}

# Epoch values above this are milliseconds (seconds would be past year 5000).
_MILLIS_CUTOFF = 1e11


def canonical_key(key: str) -> str:
    """Map a camelCase field spelling to its snake_case name."""
    return _ALIASES.get(key, key)


def _epoch_seconds(value: Any) -> float | None:
    if value is None or value == "":
        return None
    seconds = float(value)
    return seconds / 1000 if abs(seconds) > _MILLIS_CUTOFF else seconds


@dataclass
class MemoryRecord:
    id: str
    content: str
    timestamp: float
    source: str = ""
    url: str = ""
    conversation_id: str = ""
    category: str = "general"
    summary: str = ""
    type: str | None = None
    last_updated: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def platform(self) -> str:
        """Caller-supplied platform name, falling back to the source host."""
        return self.metadata.get("platform") or self.source

    def copy(self) -> "MemoryRecord":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.metadata)
        data.update(
            {
                "id": self.id,
                "content": self.content,
                "timestamp": self.timestamp,
                "source": self.source,
                "url": self.url,
                "conversation_id": self.conversation_id,
                "category": self.category,
                "summary": self.summary,
                "type": self.type,
            }
        )
        if self.last_updated is not None:
            data["last_updated"] = self.last_updated
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryRecord":
        """
        Build a record from its flat dict form.

        Raises ``ValueError`` when *data* is not a mapping or lacks an
        ``id`` or non-empty ``content``.  Millisecond timestamps are
        converted to seconds.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        fields: dict[str, Any] = {}
        for key, value in data.items():
            # The snake_case spelling wins over its alias.
            if key in _ALIASES and _ALIASES[key] in data:
                continue
            fields[canonical_key(key)] = value
        if fields.get("id") in (None, ""):
            raise ValueError("memory is missing an id")
        content = str(fields.get("content") or "").strip()
        if not content:
            raise ValueError(f"memory {fields['id']} has no content")

        known = {
            "id", "content", "timestamp", "source", "url", "conversation_id",
            "category", "summary", "type", "last_updated",
        }
        return cls(
            id=str(fields["id"]),
            content=content,
            timestamp=_epoch_seconds(fields.get("timestamp")) or 0.0,
            source=fields.get("source") or "",
            url=fields.get("url") or "",
            conversation_id=fields.get("conversation_id") or "",
            category=fields.get("category") or "general",
            summary=fields.get("summary") or "",
            type=fields.get("type"),
            last_updated=_epoch_seconds(fields.get("last_updated")),
            metadata={k: v for k, v in fields.items() if k not in known},
        )
