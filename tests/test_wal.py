"""
Tests for the write-ahead log
Copyright 2025 Jurden Bruce
"""

import json

import pytest

from mizan_memory.errors import DurabilityLogError
from mizan_memory.wal import OP_ADD, OP_DELETE, WalEntry, WriteAheadLog


def test_creates_missing_parent_directories(tmp_path):
    wal = WriteAheadLog(tmp_path / "nested" / "dir" / "memory.wal")
    assert wal.path.exists()
    assert wal.read_all() == []


def test_missing_file_reads_empty(tmp_path):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    wal.path.unlink()
    assert wal.read_all() == []


def test_entries_are_read_in_append_order(tmp_path, make_record):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    record = make_record(id="x", tags=["ui"])
    wal.append_add(record)
    wal.append_delete("y")

    entries = wal.read_all()
    assert [e.operation for e in entries] == [OP_ADD, OP_DELETE]
    assert entries[0].record == record
    assert entries[0].memory_id == "x"
    assert entries[1].record is None
    assert entries[1].memory_id == "y"
    assert all(e.recorded_at > 0 for e in entries)


def test_clear_empties_log(tmp_path, make_record):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    wal.append_add(make_record())
    wal.clear()
    assert wal.read_all() == []
    assert wal.path.read_text() == ""


def test_line_format_uses_camel_case_fields(tmp_path, make_record):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    wal.append_add(make_record(id="x", last_accessed=1_700_000_000_500))

    line = json.loads(wal.path.read_text().splitlines()[0])
    assert line["operation"] == "add"
    assert "recordedAt" in line
    assert line["payload"]["lastAccessed"] == 1_700_000_000_500
    assert line["payload"]["category"] == "preference"


def test_blank_lines_are_skipped(tmp_path):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    wal.path.write_text('\n{"operation":"delete","payload":"a","recordedAt":1}\n\n')
    entries = wal.read_all()
    assert len(entries) == 1
    assert entries[0].memory_id == "a"


@pytest.mark.parametrize("line", [
    "not json",
    "[1, 2, 3]",
    '{"operation":"rename","payload":"a","recordedAt":1}',
    '{"operation":"delete","payload":"","recordedAt":1}',
    '{"operation":"add","payload":{"id":"a"},"recordedAt":1}',
    '{"operation":"add","payload":{"id":"a","content":"c","category":"nope",'
    '"tags":[],"timestamp":1,"importance":0.5,"embedding":[]},"recordedAt":1}',
    '{"operation":"delete","payload":"a","recordedAt":"abc"}',
    '{"operation":"delete","payload":"a","recordedAt":null}',
    '{"operation":"add","payload":{"id":"a","content":"c","category":"fact",'
    '"tags":"abc","timestamp":1,"importance":0.5,"embedding":[]},"recordedAt":1}',
    '{"operation":"add","payload":{"id":"a","content":"c","category":"fact",'
    '"tags":[],"timestamp":1,"importance":1.5,"embedding":[]},"recordedAt":1}',
])
def test_malformed_entries_raise(tmp_path, line):
    wal = WriteAheadLog(tmp_path / "memory.wal")
    wal.path.write_text(line + "\n")
    with pytest.raises(DurabilityLogError) as exc_info:
        wal.read_all()
    assert exc_info.value.kind == "durability_log_failure"


def test_entry_without_last_accessed_defaults_to_timestamp():
    line = ('{"operation":"add","payload":{"id":"a","content":"c","category":"fact",'
            '"tags":["t"],"timestamp":42,"importance":0.5,"embedding":[0.1]},"recordedAt":1}')
    entry = WalEntry.from_line(line, 1)
    assert entry.record.last_accessed == 42
    assert entry.record.tags == ["t"]
