"""
Hybrid search ranking for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

from typing import Iterable, List, Optional, Sequence

import numpy as np

from .models import MemoryRecord, SearchOptions, SearchResult

SEMANTIC_WEIGHT = 0.8
KEYWORD_WEIGHT = 0.2
DEFAULT_LIMIT = 10


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched or zero-magnitude vectors"""
    if len(a) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def keyword_score(memory: MemoryRecord, keyword: str) -> float:
    """Fraction of query tokens found in content and tags"""
    tokens = keyword.lower().split()
    if not tokens:
        return 0.0
    text = f"{memory.content} {' '.join(memory.tags)}".lower()
    matches = sum(1 for token in tokens if token in text)
    return matches / len(tokens)


def filter_memories(memories: Iterable[MemoryRecord], category=None,
                    tags: Optional[List[str]] = None) -> List[MemoryRecord]:
    candidates = list(memories)
    if category:
        candidates = [m for m in candidates if m.category == category]
    if tags:
        required = set(tags)
        candidates = [m for m in candidates if required.issubset(m.tags)]
    return candidates


def rank_memories(memories: Iterable[MemoryRecord], query_embedding: Sequence[float],
                  query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
    """Score candidates by 0.8 * cosine + 0.2 * keyword overlap, best first

    ``sorted`` is stable, so records with equal scores keep scan order.
    """
    options = options or SearchOptions()
    keyword = options.keyword if options.keyword is not None else query

    scored = []
    for memory in filter_memories(memories, options.category, options.tags):
        semantic = cosine_similarity(query_embedding, memory.embedding)
        score = semantic * SEMANTIC_WEIGHT + keyword_score(memory, keyword) * KEYWORD_WEIGHT
        scored.append(SearchResult(record=memory, score=score))

    scored = sorted(scored, key=lambda r: r.score, reverse=True)
    limit = DEFAULT_LIMIT if options.limit is None else max(0, options.limit)
    return scored[:limit]
