"""
Shared fixtures for Mizan Memory Engine tests
Copyright 2025 Jurden Bruce
"""

from typing import Dict, List, Optional

import pytest

from mizan_memory.config import EngineConfig
from mizan_memory.engine import MemoryEngine
from mizan_memory.models import MemoryRecord
from mizan_memory.storage import EmbeddingClient, SQLiteStore

BASE_TS = 1_700_000_000_000


class StaticEmbeddingClient(EmbeddingClient):
    """Returns fixed vectors per text and records every call"""

    name = "static"

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None,
                 default: Optional[List[float]] = None):
        super().__init__(cache_maxsize=0)
        self.vectors = vectors or {}
        self.default = [1.0, 0.0, 0.0] if default is None else default
        self.calls: List[str] = []

    async def _embed(self, text: str) -> Optional[List[float]]:
        self.calls.append(text)
        return self.vectors.get(text, self.default)


def build_record(id: str = "mem-1", content: str = "User prefers concise answers",
                 category: str = "preference", tags: Optional[List[str]] = None,
                 timestamp: int = BASE_TS, importance: float = 0.5,
                 embedding: Optional[List[float]] = None,
                 last_accessed: Optional[int] = None) -> MemoryRecord:
    return MemoryRecord(
        id=id,
        content=content,
        category=category,
        tags=tags or [],
        timestamp=timestamp,
        importance=importance,
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
        last_accessed=timestamp if last_accessed is None else last_accessed,
    )


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def config(tmp_path) -> EngineConfig:
    return EngineConfig(
        db_path=tmp_path / "memory.db",
        wal_path=tmp_path / "memory.wal",
        embedding_provider="hash",
        hash_dimensions=64,
    )


@pytest.fixture
def engine(config):
    memory_engine = MemoryEngine(config)
    yield memory_engine
    memory_engine.close()


@pytest.fixture
def static_embeddings() -> StaticEmbeddingClient:
    return StaticEmbeddingClient()


@pytest.fixture
def store(tmp_path):
    sqlite_store = SQLiteStore(tmp_path / "store.db")
    yield sqlite_store
    sqlite_store.close()
