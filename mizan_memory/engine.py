"""
Memory engine for Mizan Memory Engine
Copyright 2025 Jurden Bruce

Orchestrates the durability log, the SQLite store, the embedding client,
decay, compaction and search. Every mutation is written to the log before
it is applied to the store; on startup the log is replayed and cleared.
"""

import logging
import time
import uuid
from typing import List, Optional

from .config import EngineConfig
from .decay import apply_decay
from .errors import EmbeddingFailedError, ValidationError
from .models import (
    DecayResult,
    HealthStatus,
    ListOptions,
    MemoryCategory,
    MemoryInput,
    MemoryRecord,
    SearchOptions,
    SearchResult,
    SummarizeResult,
    clamp_importance,
)
from .search import rank_memories
from .storage import EmbeddingClient, SQLiteStore, create_embedding_client
from .summarizer import build_summaries
from .utils import MS_PER_DAY, now_ms
from .wal import OP_ADD, OP_DELETE, WriteAheadLog

logger = logging.getLogger("mizan-memory.engine")

DEFAULT_IMPORTANCE = 0.5
GET_BOOST = 0.02
SEARCH_BOOST = 0.03


class MemoryEngine:
    def __init__(self, config: Optional[EngineConfig] = None,
                 embeddings: Optional[EmbeddingClient] = None):
        init_start = time.perf_counter()
        self.config = (config or EngineConfig()).validate()

        self.store = SQLiteStore(self.config.db_path)
        self.wal = WriteAheadLog(self.config.wal_path)
        self.embeddings = embeddings or create_embedding_client(self.config)
        self._wal_pending = 0

        self._recover_wal()
        logger.info(f"[TIMING] MemoryEngine initialized in {(time.perf_counter() - init_start)*1000:.2f}ms")

    # ===== WRITE PATH =====

    async def add_memory(self, memory_input: MemoryInput) -> MemoryRecord:
        """Validate, embed, log, then store a new memory"""
        category = self._validate_input(memory_input)

        timestamp = memory_input.timestamp if memory_input.timestamp is not None else now_ms()
        importance = (
            DEFAULT_IMPORTANCE if memory_input.importance is None
            else clamp_importance(memory_input.importance)
        )
        content = memory_input.content.strip()

        # The only suspension point; a failure here leaves log and store untouched
        embedding = await self.embeddings.embed(content)
        self._check_dimensions(embedding)

        memory = MemoryRecord(
            id=str(uuid.uuid4()),
            content=content,
            category=category,
            tags=list(memory_input.tags or []),
            timestamp=timestamp,
            importance=importance,
            embedding=embedding,
            last_accessed=timestamp,
        )

        self.wal.append_add(memory)
        self.store.add_memory(memory)
        self._maybe_flush_wal()

        logger.info(f"Stored memory {memory.id} ({category.value}, importance={importance:.2f})")
        return memory

    def delete(self, memory_id: str) -> bool:
        if not memory_id or not str(memory_id).strip():
            raise ValidationError("Memory id is required for deletion.", kind="missing_id")

        self.wal.append_delete(memory_id)
        removed = self.store.delete_memory(memory_id)
        self._maybe_flush_wal()

        if removed:
            logger.info(f"Deleted memory {memory_id}")
        return removed

    # ===== READ PATH =====

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """Hybrid search; every hit is touched and boosted as reinforcement"""
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty.", kind="empty_query")
        options = options or SearchOptions()

        memories = self.store.get_all_memories()
        if not memories:
            return []

        query_embedding = await self.embeddings.embed(query)
        results = rank_memories(memories, query_embedding, query, options)

        now = now_ms()
        boosted = []
        for result in results:
            record = self._touch(result.record, SEARCH_BOOST, now)
            boosted.append(SearchResult(record=record, score=result.score))

        logger.debug(f"Search '{query[:50]}' returned {len(boosted)} of {len(memories)} memories")
        return boosted

    def list(self, options: Optional[ListOptions] = None) -> List[MemoryRecord]:
        """Filtered listing with no side effects"""
        return self.store.list_memories(options)

    def get(self, memory_id: str) -> Optional[MemoryRecord]:
        """Fetch by id; a hit is touched and boosted"""
        memory = self.store.get_memory(memory_id)
        if memory is None:
            return None
        return self._touch(memory, GET_BOOST, now_ms())

    def _touch(self, memory: MemoryRecord, boost: float, now: int) -> MemoryRecord:
        """Refresh last access and raise importance (capped at 1.0), persist both"""
        importance = clamp_importance(memory.importance + boost)
        accessed = max(now, memory.timestamp)
        self.store.update_access(memory.id, accessed)
        self.store.update_importance(memory.id, importance)
        return memory.with_changes(importance=importance, last_accessed=accessed)

    # ===== MAINTENANCE =====

    async def summarize(self) -> SummarizeResult:
        """Compact low-importance memories once the store is large enough"""
        result = SummarizeResult()
        count = self.store.count()
        if count < self.config.summary_threshold:
            logger.info(f"Skipping summarize: {count} memories below threshold {self.config.summary_threshold}")
            return result

        plans = build_summaries(
            self.store.get_all_memories(),
            max_group_size=self.config.max_group_size,
            preserve_importance_threshold=self.config.preserve_importance_threshold,
        )

        for plan in plans:
            await self.add_memory(plan.summary)
            result.summaries += 1
            for source_id in plan.source_ids:
                if self.delete(source_id):
                    result.deleted += 1

        logger.info(f"Summarize created {result.summaries} summaries, deleted {result.deleted} memories")
        return result

    def decay(self, now: Optional[int] = None) -> DecayResult:
        """Age every memory's importance, then prune old low-value memories"""
        now = now_ms() if now is None else now
        result = DecayResult()

        for memory in self.store.get_all_memories():
            decayed = apply_decay(
                memory,
                now,
                decay_rate=self.config.decay_rate,
                minimum_importance=self.config.minimum_importance,
            )
            if decayed.importance != memory.importance:
                self.store.update_importance(memory.id, decayed.importance)
                result.updated += 1

        prune_before = now - self.config.prune_age_days * MS_PER_DAY
        result.pruned = self.store.prune_below_importance(self.config.prune_threshold, prune_before)

        logger.info(f"Decay updated {result.updated} memories, pruned {result.pruned}")
        return result

    # ===== DURABILITY =====

    def flush_wal(self):
        """Clear the log; call only once logged intents are in the store"""
        self.wal.clear()
        self._wal_pending = 0

    def _maybe_flush_wal(self):
        self._wal_pending += 1
        if self._wal_pending >= self.config.wal_flush_threshold:
            logger.debug(f"WAL flush after {self._wal_pending} writes")
            self.flush_wal()

    def _recover_wal(self):
        """Replay the log into the store; adds upsert so replay is idempotent"""
        entries = self.wal.read_all()
        if not entries:
            return

        start = time.perf_counter()
        for entry in entries:
            if entry.operation == OP_ADD:
                self.store.upsert_memory(entry.record)
            elif entry.operation == OP_DELETE:
                self.store.delete_memory(entry.memory_id)

        self.flush_wal()
        logger.info(
            f"[TIMING] Replayed {len(entries)} WAL entries in {(time.perf_counter() - start)*1000:.2f}ms"
        )

    # ===== STATUS =====

    def health(self) -> HealthStatus:
        cache = self.embeddings.embedding_cache
        return HealthStatus(
            ok=True,
            memory_count=self.store.count(),
            db_path=str(self.store.path),
            wal_path=str(self.wal.path),
            categories=self.store.category_counts(),
            cache_hits=cache.hits,
            cache_misses=cache.misses,
            cache_size=len(cache),
        )

    def close(self):
        """Close the store; the log needs no teardown"""
        logger.info("Shutting down MemoryEngine...")
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _check_dimensions(self, embedding: List[float]):
        """Every stored embedding must share the dimensionality already in the store"""
        expected = self.store.embedding_dimensions()
        if expected is not None and len(embedding) != expected:
            logger.error(f"Embedding has {len(embedding)} dimensions, store holds {expected}")
            raise EmbeddingFailedError(
                f"Embedding dimensionality {len(embedding)} does not match stored dimensionality {expected}."
            )

    @staticmethod
    def _validate_input(memory_input: MemoryInput) -> MemoryCategory:
        if not memory_input.content or not memory_input.content.strip():
            raise ValidationError("Memory content is required.", kind="empty_content")
        return MemoryCategory.parse(memory_input.category)
