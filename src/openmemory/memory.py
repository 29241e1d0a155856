"""
MemoryManager: high-level API for saving and retrieving memories.

This is the main entry-point for collaborators (page scrapers, the CLI,
the MCP server) that want to remember things said in a conversation and
recall the relevant ones later.

Usage example::

    from openmemory import FileBlobStore, MemoryManager, StaticContext

    memory = MemoryManager(
        blob_store=FileBlobStore("./my_memory"),
        context=StaticContext("https://chat.openai.com/c/abc123"),
    )

    # Remember something from the current conversation
    memory.save("I am a vegetarian and I work as a teacher")

    # Later, pull the most relevant memories for a prompt
    for hit in memory.query("what does the user eat?"):
        print(hit["content"], hit["score"])
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter
from collections.abc import Callable
from typing import Any

from . import classifier, exchange
from .context import ContextProvider, StaticContext
from .intelligence import (
    conversation_id_for,
    find_active_conversation,
    generate_id,
    is_duplicate,
)
from .models import PROTECTED_FIELDS, MemoryRecord, canonical_key
from .scoring import MIN_QUERY_LENGTH, rank
from .store import BlobStore, InMemoryBlobStore
from .text import normalize, signature

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "openmemory_data"
DEFAULT_MAX_MEMORIES = 1000

_DAY = 24 * 60 * 60

#: Date-range filter buckets, in seconds.
DATE_RANGES: dict[str, float] = {
    "today": _DAY,
    "week": 7 * _DAY,
    "month": 30 * _DAY,
    "year": 365 * _DAY,
}

# Content longer than this is saved whole by ``ingest``.
_INGEST_MIN_CONVERSATION_LENGTH = 50
# Extracted facts longer than this are saved on their own by ``ingest``.
_INGEST_MIN_FACT_LENGTH = 30


class MemoryManager:
    """
    Memory store over a single persisted, newest-first collection.

    Responsibilities
    ----------------
    * **Save** – Classifies and summarises new content, drops duplicates of
      anything already stored, and appends content that continues an open
      conversation to that conversation's record instead of creating a new
      one.  The collection is capped at *max_memories*, oldest dropped first.
    * **Retrieve** – Ranks records against a query with TF-IDF computed over
      the live collection, optionally filtered by category, platform, type
      and age.
    * **Manage** – Update, delete, clear, deduplicate, export/import and
      report statistics.

    Every mutation computes the new in-memory state, writes it back to the
    blob store once, then returns.  Persistence failures are logged and
    swallowed; the in-memory collection stays authoritative.

    Parameters
    ----------
    blob_store:
        Where the serialised collection lives.  Defaults to an in-memory
        store.
    context:
        Supplies the source and location stamped onto new records.
    storage_key:
        Key under which the whole collection is written.
    max_memories:
        Capacity of the collection.
    """

    def __init__(
        self,
        blob_store: BlobStore | None = None,
        context: ContextProvider | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        max_memories: int = DEFAULT_MAX_MEMORIES,
        _clock: Callable[[], float] | None = None,
    ) -> None:
        self._blobs = blob_store if blob_store is not None else InMemoryBlobStore()
        self._context = context or StaticContext("local://openmemory")
        self.storage_key = storage_key
        self.max_memories = max_memories
        self._clock = _clock or time.time
        self._memories: list[MemoryRecord] = []
        self._initialized = False

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def init(self) -> None:
        """Load the collection from the blob store once; later calls are no-ops."""
        if self._initialized:
            return
        try:
            self._memories = self._load()
            logger.info("Loaded %d memories", len(self._memories))
        except Exception:
            logger.exception("Failed to load memories; starting empty")
            self._memories = []
        self._initialized = True

    def _load(self) -> list[MemoryRecord]:
        raw = self._blobs.get(self.storage_key)
        if not raw:
            return []
        data = json.loads(raw)
        if not isinstance(data, list):
            logger.warning("Stored memories are not a list; starting empty")
            return []

        records: list[MemoryRecord] = []
        for item in data:
            try:
                records.append(MemoryRecord.from_dict(item))
            except (ValueError, TypeError) as exc:
                logger.warning("Skipping malformed stored memory: %s", exc)
        return records

    def _persist(self) -> None:
        try:
            payload = json.dumps(
                [r.to_dict() for r in self._memories], ensure_ascii=False, default=str
            )
            self._blobs.set(self.storage_key, payload.encode("utf-8"))
        except Exception:
            logger.exception("Failed to persist memories")

    def _truncate(self) -> None:
        if len(self._memories) > self.max_memories:
            del self._memories[self.max_memories:]

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def save(self, content: str, metadata: dict[str, Any] | None = None) -> MemoryRecord | None:
        """
        Remember *content*.

        Returns the new record, the existing record it was appended to, or
        ``None`` when *content* is empty or duplicates a stored memory.
        """
        self.init()
        content = (content or "").strip()
        if not content:
            return None

        now = self._clock()
        candidate = self._build_record(content, metadata or {}, now)

        if is_duplicate(candidate, self._memories):
            logger.debug("Skipping duplicate memory: %s", content[:50])
            return None

        existing = find_active_conversation(candidate, self._memories, now)
        if existing is not None:
            existing.content += "\n\n" + candidate.content
            existing.timestamp = now
            existing.last_updated = now
            self._reclassify(existing)
            self._persist()
            logger.info("Appended to conversation %s: %s", existing.conversation_id, content[:50])
            return existing.copy()

        self._memories.insert(0, candidate)
        self._truncate()
        self._persist()
        logger.info("Saved new memory %s: %s", candidate.id, content[:50])
        return candidate.copy()

    def _build_record(self, content: str, metadata: dict[str, Any], now: float) -> MemoryRecord:
        location = self._context.current_location()
        record = MemoryRecord(
            id=generate_id(now),
            content=content,
            timestamp=now,
            source=self._context.current_source(),
            url=location,
            conversation_id=conversation_id_for(location),
            category=classifier.categorize(content),
            summary=classifier.summarize(content),
        )
        for key, value in metadata.items():
            key = canonical_key(key)
            if key in PROTECTED_FIELDS or key == "last_updated":
                continue
            if key in ("source", "url", "conversation_id", "type"):
                setattr(record, key, value)
            else:
                record.metadata[key] = value
        return record

    @staticmethod
    def _reclassify(record: MemoryRecord) -> None:
        record.category = classifier.categorize(record.content)
        record.summary = classifier.summarize(record.content)

    def save_structured(
        self,
        user_input: str | None,
        ai_output: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryRecord | None:
        """Save one user/assistant exchange as a JSON document."""
        meta = dict(metadata or {})
        document = {
            "user": user_input or "[User input not captured]",
            "ai_output": ai_output or "[AI response not captured]",
            "timestamp": self._clock(),
            "platform": meta.get("platform", "unknown"),
        }
        meta.update(
            {
                "type": "structured_conversation",
                "structured": True,
                "user_input": user_input,
                "ai_output": ai_output,
            }
        )
        return self.save(json.dumps(document, indent=2, ensure_ascii=False), meta)

    def ingest(self, content: str, metadata: dict[str, Any] | None = None) -> list[MemoryRecord]:
        """
        Save what is worth keeping from one assistant response.

        The response itself is saved as a ``conversation`` memory, then each
        substantial key fact in it is saved as an ``extracted_fact``.
        Returns the records created or appended to.
        """
        if not classifier.is_worth_saving(content):
            logger.debug("Content not worth saving: %s", (content or "")[:50])
            return []

        saved: list[MemoryRecord] = []
        if len(content) > _INGEST_MIN_CONVERSATION_LENGTH:
            record = self.save(content, {**(metadata or {}), "type": "conversation"})
            if record is not None:
                saved.append(record)

        facts = classifier.extract_key_facts(content)
        logger.debug("Extracted %d key facts", len(facts))
        for fact in facts:
            if len(fact) <= _INGEST_MIN_FACT_LENGTH:
                continue
            record = self.save(fact, {**(metadata or {}), "type": "extracted_fact"})
            if record is not None:
                saved.append(record)
        return saved

    def update(self, memory_id: str, patch: dict[str, Any]) -> MemoryRecord | None:
        """
        Merge *patch* into the memory with *memory_id*.

        A new ``content`` re-derives category and summary.  A ``category``
        outside ``classifier.category_labels()`` is ignored.  Returns the
        updated record, or ``None`` if no memory has that ID.
        """
        self.init()
        record = self._find(memory_id)
        if record is None:
            return None

        for key, value in patch.items():
            key = canonical_key(key)
            if key in ("id", "last_updated"):
                continue
            if key == "content":
                record.content = str(value).strip() or record.content
            elif key == "category":
                if value in classifier.category_labels():
                    record.category = value
                else:
                    logger.warning("Ignoring unknown category %r for %s", value, memory_id)
            elif key in ("timestamp", "source", "url", "conversation_id", "summary", "type"):
                setattr(record, key, value)
            else:
                record.metadata[key] = value
        record.last_updated = self._clock()
        if patch.get("content"):
            self._reclassify(record)

        self._persist()
        return record.copy()

    def delete(self, memory_id: str) -> bool:
        """Delete a memory by its ID.  Returns whether anything was removed."""
        self.init()
        before = len(self._memories)
        self._memories = [r for r in self._memories if r.id != memory_id]
        if len(self._memories) == before:
            return False
        self._persist()
        return True

    def clear(self) -> None:
        """Delete every memory."""
        self.init()
        self._memories = []
        self._persist()
        logger.info("Cleared all memories")

    def deduplicate(self) -> dict[str, int]:
        """
        Drop memories whose leading keywords match an earlier memory's.

        Returns ``{"removed": n, "remaining": m}``.
        """
        self.init()
        before = len(self._memories)
        seen: set[str] = set()
        kept: list[MemoryRecord] = []
        for record in self._memories:
            sig = signature(record.content)
            if sig in seen:
                continue
            seen.add(sig)
            kept.append(record)
        self._memories = kept

        removed = before - len(kept)
        if removed:
            self._persist()
        return {"removed": removed, "remaining": len(kept)}

    def import_memories(self, payload: str, merge: bool = True) -> dict[str, Any]:
        """
        Load memories from a JSON array.

        With *merge* the records whose IDs are not yet stored are added;
        otherwise the collection is replaced.  Either way the result is
        re-sorted newest-first and capped.  Returns a result dict with
        ``success`` and either counts or an ``error`` message.
        """
        self.init()
        try:
            imported = exchange.parse_import(payload)
        except (ValueError, TypeError) as exc:
            return {"success": False, "error": str(exc)}

        # Repeated IDs within the payload keep their first occurrence.
        seen_ids: set[str] = set()
        unique: list[MemoryRecord] = []
        for record in imported:
            if record.id not in seen_ids:
                seen_ids.add(record.id)
                unique.append(record)
        imported = unique

        if merge:
            existing_ids = {r.id for r in self._memories}
            self._memories = self._memories + [r for r in imported if r.id not in existing_ids]
        else:
            self._memories = imported

        self._memories.sort(key=lambda r: r.timestamp, reverse=True)
        self._truncate()
        self._persist()
        return {
            "success": True,
            "imported": len(imported) if merge else len(self._memories),
            "total": len(self._memories),
        }

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def query(self, text: str, limit: int = 5) -> list[dict[str, Any]]:
        """
        Return up to *limit* memories most relevant to *text*.

        Queries shorter than three characters skip scoring and return the
        newest memories with ``score`` set to ``None``.
        """
        self.init()
        if not text or len(text.strip()) < MIN_QUERY_LENGTH:
            return [{**r.to_dict(), "score": None} for r in self._memories[:limit]]
        return rank(text, self._memories, limit=limit)

    def search(
        self,
        query: str | None = None,
        filters: dict[str, str] | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Filtered search.

        *filters* may hold ``category``, ``platform`` and ``type`` (``"all"``
        disables a filter) and ``date_range`` (one of ``DATE_RANGES``).
        With query text the filtered memories are ranked by relevance;
        without, they are sorted newest first.
        """
        self.init()
        filters = filters or {}
        results = list(self._memories)

        category = filters.get("category")
        if category and category != "all":
            results = [r for r in results if r.category == category]

        platform = filters.get("platform")
        if platform and platform != "all":
            results = [r for r in results if r.platform == platform]

        date_range = filters.get("date_range") or filters.get("dateRange")
        if date_range in DATE_RANGES:
            cutoff = self._clock() - DATE_RANGES[date_range]
            results = [r for r in results if r.timestamp >= cutoff]

        kind = filters.get("type")
        if kind and kind != "all":
            results = [r for r in results if r.type == kind]

        if query and query.strip():
            return rank(query, results, limit=limit)

        results.sort(key=lambda r: r.timestamp, reverse=True)
        if limit is not None:
            results = results[:limit]
        return [{**r.to_dict(), "score": None} for r in results]

    def get(self, memory_id: str) -> MemoryRecord | None:
        """Fetch a copy of a single memory by ID."""
        self.init()
        record = self._find(memory_id)
        return record.copy() if record else None

    def get_all(self) -> list[MemoryRecord]:
        """Return copies of every memory, newest first."""
        self.init()
        return [r.copy() for r in self._memories]

    def count(self) -> int:
        """Return the total number of stored memories."""
        self.init()
        return len(self._memories)

    def export(self, fmt: str = "json") -> str:
        """Serialise the collection as ``json``, ``csv`` or ``txt``."""
        self.init()
        return exchange.export_records(self._memories, fmt)

    def stats(self) -> dict[str, Any]:
        """Total count, counts per source, and oldest/newest timestamps."""
        self.init()
        timestamps = [r.timestamp for r in self._memories]
        return {
            "total": len(self._memories),
            "sources": dict(Counter(r.source for r in self._memories)),
            "oldest_timestamp": min(timestamps) if timestamps else None,
            "newest_timestamp": max(timestamps) if timestamps else None,
        }

    def analytics(self) -> dict[str, Any]:
        """Breakdown of the collection by category, platform, type, age and keyword."""
        self.init()
        report: dict[str, Any] = {
            "total_memories": len(self._memories),
            "categories": {},
            "platforms": {},
            "types": {},
            "time_distribution": {},
            "avg_memory_length": 0,
            "oldest_memory": None,
            "newest_memory": None,
            "top_keywords": [],
        }
        if not self._memories:
            return report

        now = self._clock()
        categories: Counter[str] = Counter()
        platforms: Counter[str] = Counter()
        types: Counter[str] = Counter()
        buckets: Counter[str] = Counter()
        keywords: Counter[str] = Counter()
        for r in self._memories:
            categories[r.category or "general"] += 1
            platforms[r.metadata.get("platform") or "unknown"] += 1
            types[r.type or "memory"] += 1

            days = int((now - r.timestamp) // _DAY)
            if days <= 1:
                buckets["today"] += 1
            elif days <= 7:
                buckets["this_week"] += 1
            elif days <= 30:
                buckets["this_month"] += 1

            keywords.update(w for w in normalize(r.content) if len(w) > 3)

        timestamps = [r.timestamp for r in self._memories]
        report.update(
            {
                "categories": dict(categories),
                "platforms": dict(platforms),
                "types": dict(types),
                "time_distribution": dict(buckets),
                "avg_memory_length": round(
                    sum(len(r.content) for r in self._memories) / len(self._memories)
                ),
                "oldest_memory": min(timestamps),
                "newest_memory": max(timestamps),
                "top_keywords": [
                    {"word": word, "count": n} for word, n in keywords.most_common(20)
                ],
            }
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _find(self, memory_id: str) -> MemoryRecord | None:
        for record in self._memories:
            if record.id == memory_id:
                return record
        return None
