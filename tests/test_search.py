"""
Tests for hybrid search ranking
Copyright 2025 Jurden Bruce
"""

import pytest

from mizan_memory.models import MemoryCategory, SearchOptions
from mizan_memory.search import cosine_similarity, keyword_score, rank_memories


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


def test_keyword_score_counts_content_and_tags(make_record):
    record = make_record(content="User likes dark mode", tags=["ui"])
    assert keyword_score(record, "dark mode") == 1.0
    assert keyword_score(record, "dark theme") == 0.5
    assert keyword_score(record, "UI") == 1.0
    assert keyword_score(record, "   ") == 0.0


def test_ranking_combines_semantic_and_keyword(make_record):
    close = make_record(id="close", content="unrelated words", embedding=[1.0, 0.0])
    keyword = make_record(id="keyword", content="dark mode", embedding=[0.0, 1.0])

    results = rank_memories([keyword, close], [1.0, 0.0], "dark mode")
    assert [r.record.id for r in results] == ["close", "keyword"]
    assert results[0].score == pytest.approx(0.8)
    assert results[1].score == pytest.approx(0.2)


def test_explicit_keyword_overrides_query(make_record):
    record = make_record(content="espresso machine", embedding=[0.0, 1.0])
    results = rank_memories([record], [1.0, 0.0], "coffee", SearchOptions(keyword="espresso"))
    assert results[0].score == pytest.approx(0.2)


def test_ties_keep_scan_order(make_record):
    memories = [make_record(id=f"m{i}", content="same", embedding=[1.0, 0.0]) for i in range(4)]
    results = rank_memories(memories, [1.0, 0.0], "other")
    assert [r.record.id for r in results] == ["m0", "m1", "m2", "m3"]


def test_filters_and_limit(make_record):
    memories = [
        make_record(id="f1", category="fact", tags=["a", "b"]),
        make_record(id="f2", category="fact", tags=["a"]),
        make_record(id="l1", category="lesson", tags=["a", "b"]),
    ]
    by_category = rank_memories(memories, [1.0, 0.0, 0.0], "q", SearchOptions(category=MemoryCategory.FACT))
    assert {r.record.id for r in by_category} == {"f1", "f2"}

    by_tags = rank_memories(memories, [1.0, 0.0, 0.0], "q", SearchOptions(tags=["a", "b"]))
    assert {r.record.id for r in by_tags} == {"f1", "l1"}

    assert len(rank_memories(memories, [1.0, 0.0, 0.0], "q", SearchOptions(limit=1))) == 1
    assert rank_memories(memories, [1.0, 0.0, 0.0], "q", SearchOptions(limit=0)) == []


def test_default_limit_is_ten(make_record):
    memories = [make_record(id=f"m{i}") for i in range(15)]
    assert len(rank_memories(memories, [1.0, 0.0, 0.0], "q")) == 10
