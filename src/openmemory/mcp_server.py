"""
MCP (Model Context Protocol) server for openmemory.

Exposes the MemoryManager as a set of tools so that an assistant can save
and recall memories across sessions.

Run as a stdio server:
    python -m openmemory.mcp_server

Or via the installed entry-point:
    openmemory-mcp

Configuration comes from the ``OPENMEMORY_*`` environment variables read by
``openmemory.config.Settings``.
"""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from .config import Settings, configure_logging
from .context import StaticContext, detect_platform
from .memory import MemoryManager
from .store import FileBlobStore

_settings = Settings.from_env()

# Lazy-initialised singleton so the collection is only loaded once.
_manager: MemoryManager | None = None


def _get_manager() -> MemoryManager:
    global _manager
    if _manager is None:
        _manager = MemoryManager(
            blob_store=FileBlobStore(_settings.db_path),
            context=StaticContext(_settings.location),
            storage_key=_settings.storage_key,
            max_memories=_settings.max_memories,
        )
    return _manager


def _compact(hit: dict) -> dict:
    score = hit.get("score")
    return {
        "id": hit["id"],
        "content": hit["content"],
        "category": hit["category"],
        "summary": hit["summary"],
        "type": hit.get("type"),
        "timestamp": hit["timestamp"],
        "score": round(score, 4) if score is not None else None,
    }


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "openmemory",
    instructions=(
        "Long-term memory for conversations. "
        "Use `save_memory` to remember facts, preferences and decisions worth "
        "keeping; related content from the same conversation is merged. "
        "Use `query_memories` to recall what is relevant to the current topic. "
        "Use `search_memories` to filter by category, platform, type or age. "
        "Use `list_memories`, `memory_stats` and `count_memories` to browse, "
        "and `delete_memory` to forget an entry."
    ),
)


@mcp.tool()
def save_memory(content: str, memory_type: str = "conversation", platform: str = "") -> str:
    """
    Save a piece of context for later recall.

    Exact and near-duplicate content is skipped.  Content that continues a
    recent conversation on the same topic is appended to that conversation's
    memory instead of creating a new one.

    Args:
        content:     The text to remember.
        memory_type: Free-form type label, e.g. "conversation" or "extracted_fact".
        platform:    Where the content came from; detected from the
                     configured location when omitted.

    Returns:
        A confirmation naming the memory ID and category.
    """
    platform = platform or detect_platform(_settings.location)
    meta = {"type": memory_type}
    if platform != "unknown":
        meta["platform"] = platform
    record = _get_manager().save(content, meta)
    if record is None:
        return "Not saved: empty or duplicate of an existing memory."
    return f"Saved memory {record.id} [{record.category}]."


@mcp.tool()
def query_memories(query: str, limit: int = 5) -> str:
    """
    Retrieve the memories most relevant to a query.

    Args:
        query: Words describing what to recall.
        limit: Maximum number of memories to return (default 5).

    Returns:
        JSON array of memories with id, content, category, summary, type,
        timestamp and score.
    """
    hits = _get_manager().query(query, limit=limit)
    if not hits:
        return "No memories found."
    return json.dumps([_compact(h) for h in hits], indent=2)


@mcp.tool()
def search_memories(
    query: str = "",
    category: str = "all",
    platform: str = "all",
    memory_type: str = "all",
    date_range: str = "",
    limit: int = 10,
) -> str:
    """
    Search memories with filters.

    Args:
        query:       Optional query text; results are ranked when given.
        category:    Category label or "all".
        platform:    Platform name or "all".
        memory_type: Memory type or "all".
        date_range:  One of "today", "week", "month", "year", or empty.
        limit:       Maximum number of results (default 10).

    Returns:
        JSON array of matching memories.
    """
    filters = {
        "category": category,
        "platform": platform,
        "type": memory_type,
        "date_range": date_range,
    }
    hits = _get_manager().search(query, filters, limit=limit)
    if not hits:
        return "No memories found."
    return json.dumps([_compact(h) for h in hits], indent=2)


@mcp.tool()
def list_memories(limit: int = 50) -> str:
    """
    List stored memories, newest first.

    Args:
        limit: Maximum number of entries to return (default 50).

    Returns:
        JSON array of memory entries.
    """
    memories = _get_manager().get_all()[:limit]
    if not memories:
        return "No memories stored."
    return json.dumps([m.to_dict() for m in memories], indent=2)


@mcp.tool()
def delete_memory(memory_id: str) -> str:
    """
    Delete a stored memory by its ID.

    Args:
        memory_id: The ID of the memory to delete.

    Returns:
        A confirmation message.
    """
    if _get_manager().delete(memory_id):
        return f"Deleted memory {memory_id}."
    return f"No memory with id {memory_id}."


@mcp.tool()
def memory_stats() -> str:
    """
    Summarise the collection: total, counts per source, oldest and newest.

    Returns:
        JSON object with the statistics.
    """
    return json.dumps(_get_manager().stats(), indent=2)


@mcp.tool()
def count_memories() -> str:
    """
    Return the total number of memories currently stored.

    Returns:
        A short message with the count.
    """
    n = _get_manager().count()
    return f"{n} {'memory' if n == 1 else 'memories'} stored."


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    configure_logging(_settings.log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
