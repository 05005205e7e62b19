"""
Data models for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError


class MemoryCategory(str, Enum):
    """Closed set of memory categories"""
    DECISION = "decision"
    LESSON = "lesson"
    PREFERENCE = "preference"
    EPISODE = "episode"
    FACT = "fact"
    PERSON = "person"
    PROJECT = "project"

    @classmethod
    def parse(cls, value: Any) -> "MemoryCategory":
        """Parse a category coming from outside the engine (CLI, HTTP, WAL)"""
        if isinstance(value, cls):
            return value
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError("Memory category is required.", kind="missing_category")
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(f"Invalid memory category: {value}", kind="invalid_category") from None

    @classmethod
    def values(cls) -> List[str]:
        return [c.value for c in cls]

    def __str__(self) -> str:
        return self.value


def clamp_importance(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass
class MemoryInput:
    """Caller-supplied fields for a new memory"""
    content: str
    category: Any
    tags: Optional[List[str]] = None
    timestamp: Optional[int] = None
    importance: Optional[float] = None


@dataclass
class MemoryRecord:
    id: str
    content: str
    category: MemoryCategory
    tags: List[str]
    timestamp: int  # epoch ms
    importance: float
    embedding: List[float]
    last_accessed: int  # epoch ms

    def __post_init__(self):
        if not isinstance(self.category, MemoryCategory):
            self.category = MemoryCategory.parse(self.category)
        if self.tags is None:
            self.tags = []
        self.timestamp = int(self.timestamp)
        self.last_accessed = int(self.last_accessed)
        self.importance = float(self.importance)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form used by the durability log"""
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category.value,
            "tags": list(self.tags),
            "timestamp": self.timestamp,
            "importance": self.importance,
            "embedding": list(self.embedding),
            "lastAccessed": self.last_accessed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryRecord":
        """Strict inverse of ``to_dict``; raises ValueError on malformed fields"""
        tags = data.get("tags") or []
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            raise ValueError(f"tags must be a list of strings, got {tags!r}")
        importance = float(data["importance"])
        if not 0.0 <= importance <= 1.0:
            raise ValueError(f"importance must be within [0, 1], got {importance}")
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            category=data["category"],
            tags=list(tags),
            timestamp=data["timestamp"],
            importance=importance,
            embedding=[float(v) for v in data.get("embedding") or []],
            last_accessed=data.get("lastAccessed", data.get("last_accessed", data["timestamp"])),
        )

    def to_api_dict(self) -> Dict[str, Any]:
        """Convert to dict for CLI/API responses (embedding omitted)"""
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category.value,
            "tags": list(self.tags),
            "timestamp": self.timestamp,
            "created_at": _iso(self.timestamp),
            "importance": round(self.importance, 4),
            "lastAccessed": self.last_accessed,
            "last_accessed_at": _iso(self.last_accessed),
        }

    def with_changes(self, **changes) -> "MemoryRecord":
        return replace(self, **changes)


@dataclass
class ListOptions:
    category: Optional[MemoryCategory] = None
    tags: Optional[List[str]] = None
    since: Optional[int] = None
    until: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class SearchOptions:
    limit: Optional[int] = None
    category: Optional[MemoryCategory] = None
    tags: Optional[List[str]] = None
    keyword: Optional[str] = None


@dataclass
class SearchResult:
    record: MemoryRecord
    score: float

    def to_api_dict(self) -> Dict[str, Any]:
        return {"memory": self.record.to_api_dict(), "score": round(self.score, 6)}


@dataclass
class CompactionPlan:
    """One summary to add and the source records it retires"""
    summary: MemoryInput
    source_ids: List[str] = field(default_factory=list)


@dataclass
class HealthStatus:
    ok: bool
    memory_count: int
    db_path: str
    wal_path: str
    categories: Dict[str, int] = field(default_factory=dict)
    cache_hits: int = 0
    cache_misses: int = 0
    cache_size: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "memoryCount": self.memory_count,
            "dbPath": self.db_path,
            "walPath": self.wal_path,
            "categories": dict(self.categories),
            "embeddingCache": {
                "hits": self.cache_hits,
                "misses": self.cache_misses,
                "size": self.cache_size,
            },
        }


@dataclass
class SummarizeResult:
    summaries: int = 0
    deleted: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"summaries": self.summaries, "deleted": self.deleted}


@dataclass
class DecayResult:
    updated: int = 0
    pruned: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"updated": self.updated, "pruned": self.pruned}


def _iso(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()
