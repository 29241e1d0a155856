"""
Runtime configuration resolved from environment variables.

    OPENMEMORY_DB_PATH        - directory holding the memory blob (default: ~/.cache/openmemory)
    OPENMEMORY_STORAGE_KEY    - key the collection is stored under (default: openmemory_data)
    OPENMEMORY_MAX_MEMORIES   - capacity of the collection (default: 1000)
    OPENMEMORY_LOCATION       - location stamped on new memories (default: local://cli)
    OPENMEMORY_LOG_LEVEL      - logging level for the CLI and MCP server (default: WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .memory import DEFAULT_MAX_MEMORIES, DEFAULT_STORAGE_KEY

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH = str(Path.home() / ".cache" / "openmemory")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", name, raw, default)
        return default


@dataclass
class Settings:
    db_path: str = _DEFAULT_DB_PATH
    storage_key: str = DEFAULT_STORAGE_KEY
    max_memories: int = DEFAULT_MAX_MEMORIES
    location: str = "local://cli"
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=os.environ.get("OPENMEMORY_DB_PATH", _DEFAULT_DB_PATH),
            storage_key=os.environ.get("OPENMEMORY_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            max_memories=_env_int("OPENMEMORY_MAX_MEMORIES", DEFAULT_MAX_MEMORIES),
            location=os.environ.get("OPENMEMORY_LOCATION", "local://cli"),
            log_level=os.environ.get("OPENMEMORY_LOG_LEVEL", "WARNING").upper(),
        )


def configure_logging(level: str) -> None:
    """Route library logs to stderr at *level*."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
