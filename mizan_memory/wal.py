"""
Write-ahead (durability) log for Mizan Memory Engine
Copyright 2025 Jurden Bruce

One JSON object per line:
    {"operation": "add", "payload": {...record...}, "recordedAt": 1700000000000}
    {"operation": "delete", "payload": "<memory id>", "recordedAt": 1700000000000}
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .errors import DurabilityLogError, ValidationError
from .models import MemoryRecord
from .utils import now_ms

logger = logging.getLogger("mizan-memory.wal")

OP_ADD = "add"
OP_DELETE = "delete"


@dataclass
class WalEntry:
    operation: str
    payload: Union[MemoryRecord, str]
    recorded_at: int

    @property
    def record(self) -> Optional[MemoryRecord]:
        return self.payload if self.operation == OP_ADD else None

    @property
    def memory_id(self) -> str:
        if self.operation == OP_ADD:
            return self.payload.id
        return self.payload

    def to_line(self) -> str:
        payload = self.payload.to_dict() if self.operation == OP_ADD else self.payload
        return json.dumps(
            {"operation": self.operation, "payload": payload, "recordedAt": self.recorded_at},
            separators=(",", ":"),
        )

    @classmethod
    def from_line(cls, line: str, line_no: int) -> "WalEntry":
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise DurabilityLogError(f"Malformed WAL entry at line {line_no}: {e}") from e
        if not isinstance(data, dict):
            raise DurabilityLogError(f"Malformed WAL entry at line {line_no}: not an object")

        operation = data.get("operation")
        payload = data.get("payload")
        try:
            recorded_at = int(data.get("recordedAt", 0))
        except (TypeError, ValueError, OverflowError) as e:
            raise DurabilityLogError(f"WAL entry at line {line_no} has an invalid recordedAt: {e}") from e

        if operation == OP_ADD:
            if not isinstance(payload, dict):
                raise DurabilityLogError(f"WAL add entry at line {line_no} has no record payload")
            try:
                record = MemoryRecord.from_dict(payload)
            except (KeyError, TypeError, ValueError, OverflowError, ValidationError) as e:
                raise DurabilityLogError(f"WAL add entry at line {line_no} has an invalid record: {e}") from e
            return cls(OP_ADD, record, recorded_at)

        if operation == OP_DELETE:
            if not isinstance(payload, str) or not payload:
                raise DurabilityLogError(f"WAL delete entry at line {line_no} has no id payload")
            return cls(OP_DELETE, payload, recorded_at)

        raise DurabilityLogError(f"Unknown WAL operation at line {line_no}: {operation!r}")


class WriteAheadLog:
    """Append-only JSONL log of mutation intents, replayed on startup"""

    def __init__(self, wal_path: Path):
        self.wal_path = Path(wal_path)
        self._ensure_file()

    @property
    def path(self) -> Path:
        return self.wal_path

    def append_add(self, record: MemoryRecord):
        self._append(WalEntry(OP_ADD, record, now_ms()))

    def append_delete(self, memory_id: str):
        self._append(WalEntry(OP_DELETE, memory_id, now_ms()))

    def read_all(self) -> List[WalEntry]:
        """Read every entry in file order; a missing or empty log yields []"""
        if not self.wal_path.exists():
            return []
        try:
            content = self.wal_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read WAL {self.wal_path}: {e}")
            raise DurabilityLogError(f"Failed to read WAL {self.wal_path}: {e}") from e

        entries = []
        for line_no, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            entries.append(WalEntry.from_line(line, line_no))
        return entries

    def clear(self):
        """Truncate the log; only once every entry is reflected in the store"""
        try:
            self.wal_path.write_text("", encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to clear WAL {self.wal_path}: {e}")
            raise DurabilityLogError(f"Failed to clear WAL {self.wal_path}: {e}") from e

    def _append(self, entry: WalEntry):
        try:
            with open(self.wal_path, "a", encoding="utf-8") as f:
                f.write(entry.to_line() + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            logger.error(f"WAL append failed ({entry.operation} {entry.memory_id}): {e}")
            raise DurabilityLogError(f"WAL append failed: {e}") from e

    def _ensure_file(self):
        try:
            self.wal_path.parent.mkdir(parents=True, exist_ok=True)
            if not self.wal_path.exists():
                self.wal_path.write_text("", encoding="utf-8")
        except OSError as e:
            logger.error(f"WAL initialization failed at {self.wal_path}: {e}")
            raise DurabilityLogError(f"WAL initialization failed: {e}") from e
