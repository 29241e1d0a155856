"""
openmemory: local memory for AI conversations.

Extracts, deduplicates and merges short text memories from conversations,
persists them as a single newest-first collection, and returns the most
relevant ones for a query using TF-IDF over the live collection.
"""

from .classifier import categorize, extract_key_facts, is_worth_saving, summarize
from .context import StaticContext, detect_platform
from .memory import MemoryManager
from .models import MemoryRecord
from .store import FileBlobStore, InMemoryBlobStore

__all__ = [
    "MemoryManager",
    "MemoryRecord",
    "FileBlobStore",
    "InMemoryBlobStore",
    "StaticContext",
    "categorize",
    "detect_platform",
    "extract_key_facts",
    "is_worth_saving",
    "summarize",
]
