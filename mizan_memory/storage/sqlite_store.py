"""
SQLite persistence store for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import DuplicateIdError, StorageError
from ..models import ListOptions, MemoryRecord

logger = logging.getLogger("mizan-memory.sqlite")

_COLUMNS = "id, content, category, tags, timestamp, importance, embedding, last_accessed"


class SQLiteStore:
    """Handles all SQLite database operations for the memories table"""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self.conn: Optional[sqlite3.Connection] = None
        self.initialize()

    @property
    def path(self) -> Path:
        return self.db_path

    def initialize(self):
        """Open the connection and create schema"""
        try:
            if str(self.db_path) != ":memory:":
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=30.0,
            )
            self.conn.row_factory = sqlite3.Row

            with self._lock:
                self.conn.execute("PRAGMA journal_mode = WAL")
                self.conn.executescript("""
                    CREATE TABLE IF NOT EXISTS memories (
                        id TEXT PRIMARY KEY,
                        content TEXT NOT NULL,
                        category TEXT NOT NULL,
                        tags TEXT NOT NULL,
                        timestamp INTEGER NOT NULL,
                        importance REAL NOT NULL,
                        embedding TEXT NOT NULL,
                        last_accessed INTEGER NOT NULL
                    );

                    CREATE INDEX IF NOT EXISTS idx_memories_category ON memories(category);
                    CREATE INDEX IF NOT EXISTS idx_memories_timestamp ON memories(timestamp);
                """)
                self.conn.commit()
            logger.info(f"SQLite initialized at {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"SQLite initialization failed: {e}")
            raise StorageError(f"SQLite initialization failed: {e}") from e

    @contextmanager
    def _write(self, operation: str):
        """Serialize a single statement and commit, rolling back on failure"""
        if not self.conn:
            raise StorageError("Database connection is closed")
        with self._lock:
            try:
                yield self.conn
                self.conn.commit()
            except sqlite3.IntegrityError as e:
                self.conn.rollback()
                if "UNIQUE" in str(e):
                    raise DuplicateIdError(f"SQLite {operation} violated a unique constraint: {e}") from e
                logger.error(f"SQLite {operation} failed: {e}")
                raise StorageError(f"SQLite {operation} failed: {e}") from e
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"SQLite {operation} failed: {e}")
                raise StorageError(f"SQLite {operation} failed: {e}") from e

    def _read(self, sql: str, params=()) -> List[sqlite3.Row]:
        if not self.conn:
            raise StorageError("Database connection is closed")
        with self._lock:
            try:
                return self.conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error(f"SQLite read failed: {e}")
                raise StorageError(f"SQLite read failed: {e}") from e

    def add_memory(self, memory: MemoryRecord):
        """Insert a new record; an existing id is never overwritten"""
        try:
            with self._write("insert") as conn:
                conn.execute(
                    f"INSERT INTO memories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    self._serialize(memory),
                )
        except DuplicateIdError as e:
            logger.error(f"Duplicate memory id {memory.id}")
            raise DuplicateIdError(f"Memory {memory.id} already exists") from e.__cause__

    def upsert_memory(self, memory: MemoryRecord):
        """Insert or replace by id (WAL replay only)"""
        with self._write("upsert") as conn:
            conn.execute(f"""
                INSERT INTO memories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    content = excluded.content,
                    category = excluded.category,
                    tags = excluded.tags,
                    timestamp = excluded.timestamp,
                    importance = excluded.importance,
                    embedding = excluded.embedding,
                    last_accessed = excluded.last_accessed
            """, self._serialize(memory))

    def get_memory(self, memory_id: str) -> Optional[MemoryRecord]:
        """Retrieve memory by ID"""
        rows = self._read("SELECT * FROM memories WHERE id = ?", (memory_id,))
        return self._row_to_memory(rows[0]) if rows else None

    def delete_memory(self, memory_id: str) -> bool:
        with self._write("delete") as conn:
            cursor = conn.execute("DELETE FROM memories WHERE id = ?", (memory_id,))
            return cursor.rowcount > 0

    def list_memories(self, options: Optional[ListOptions] = None) -> List[MemoryRecord]:
        """Filtered listing, newest first

        Category and timestamp range are pushed into SQL. Tags are stored as
        JSON, so the tag superset check runs in Python, before limit/offset
        are applied, so that ``limit`` counts matching rows.
        """
        options = options or ListOptions()
        conditions = []
        params: List[Any] = []

        if options.category:
            conditions.append("category = ?")
            params.append(str(options.category))
        if options.since is not None:
            conditions.append("timestamp >= ?")
            params.append(int(options.since))
        if options.until is not None:
            conditions.append("timestamp <= ?")
            params.append(int(options.until))

        sql = "SELECT * FROM memories"
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += " ORDER BY timestamp DESC"

        memories = [self._row_to_memory(row) for row in self._read(sql, params)]

        if options.tags:
            required = set(options.tags)
            memories = [m for m in memories if required.issubset(m.tags)]

        offset = max(0, options.offset or 0)
        if options.limit is not None:
            return memories[offset:offset + max(0, options.limit)]
        return memories[offset:]

    def get_all_memories(self) -> List[MemoryRecord]:
        """Full table scan in storage order"""
        return [self._row_to_memory(row) for row in self._read("SELECT * FROM memories")]

    def update_access(self, memory_id: str, timestamp: int):
        with self._write("update_access") as conn:
            conn.execute("UPDATE memories SET last_accessed = ? WHERE id = ?", (int(timestamp), memory_id))

    def update_importance(self, memory_id: str, importance: float):
        with self._write("update_importance") as conn:
            conn.execute("UPDATE memories SET importance = ? WHERE id = ?", (float(importance), memory_id))

    def prune_below_importance(self, threshold: float, older_than: int) -> int:
        """Delete rows that are both below threshold AND older than the cutoff"""
        with self._write("prune") as conn:
            cursor = conn.execute(
                "DELETE FROM memories WHERE importance < ? AND timestamp < ?",
                (float(threshold), int(older_than)),
            )
            pruned = cursor.rowcount
        if pruned:
            logger.info(f"Pruned {pruned} memories below importance {threshold}")
        return pruned

    def count(self) -> int:
        return self._read("SELECT COUNT(*) FROM memories")[0][0]

    def category_counts(self) -> Dict[str, int]:
        rows = self._read("SELECT category, COUNT(*) FROM memories GROUP BY category")
        return {row[0]: row[1] for row in rows}

    def embedding_dimensions(self) -> Optional[int]:
        """Length of a stored embedding, or None for an empty store"""
        rows = self._read("SELECT embedding FROM memories LIMIT 1")
        if not rows:
            return None
        return len(json.loads(rows[0]["embedding"]) if rows[0]["embedding"] else [])

    def close(self):
        if self.conn:
            with self._lock:
                self.conn.close()
                self.conn = None
            logger.info("SQLite connection closed")

    @staticmethod
    def _serialize(memory: MemoryRecord) -> tuple:
        return (
            memory.id,
            memory.content,
            memory.category.value,
            json.dumps(memory.tags),
            memory.timestamp,
            memory.importance,
            json.dumps(memory.embedding),
            memory.last_accessed,
        )

    @staticmethod
    def _row_to_memory(row: sqlite3.Row) -> MemoryRecord:
        """Convert SQLite row to MemoryRecord"""
        return MemoryRecord(
            id=row["id"],
            content=row["content"],
            category=row["category"],
            tags=json.loads(row["tags"]) if row["tags"] else [],
            timestamp=row["timestamp"],
            importance=row["importance"],
            embedding=json.loads(row["embedding"]) if row["embedding"] else [],
            last_accessed=row["last_accessed"],
        )
