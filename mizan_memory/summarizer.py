"""
Compaction planner for Mizan Memory Engine
Copyright 2025 Jurden Bruce

Low-importance memories of the same category are folded into one summary
record. High-importance memories (>= the preserve threshold) are never
touched, and summaries are created at exactly that threshold so they are
not re-compacted on the next pass but still decay over time.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .models import CompactionPlan, MemoryCategory, MemoryInput, MemoryRecord
from .utils import now_ms

logger = logging.getLogger("mizan-memory.summarizer")

SNIPPET_LIMIT = 140
SUMMARY_TAG = "summary"


def snippet(content: str, limit: int = SNIPPET_LIMIT) -> str:
    trimmed = content.strip()
    if len(trimmed) <= limit:
        return trimmed
    return trimmed[: limit - 3] + "..."


def summarize_text(memories: List[MemoryRecord]) -> str:
    return " ".join(snippet(m.content) for m in memories)


def _iso(epoch_ms: int) -> str:
    stamp = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def build_summaries(memories: Iterable[MemoryRecord], max_group_size: int,
                    preserve_importance_threshold: float,
                    now: Optional[int] = None) -> List[CompactionPlan]:
    """Plan one summary per category group of two or more eligible records

    Groups are sorted oldest first and capped at ``max_group_size``; the
    remainder waits for a later pass.
    """
    now = now_ms() if now is None else now
    grouped: Dict[MemoryCategory, List[MemoryRecord]] = OrderedDict()
    for memory in memories:
        if memory.importance >= preserve_importance_threshold:
            continue
        grouped.setdefault(memory.category, []).append(memory)

    plans = []
    for category, group in grouped.items():
        if len(group) < 2:
            continue
        selected = sorted(group, key=lambda m: m.timestamp)[:max_group_size]
        start = _iso(selected[0].timestamp)
        end = _iso(selected[-1].timestamp)
        content = f"Summary ({category.value}) {start} - {end}: {summarize_text(selected)}"

        plans.append(CompactionPlan(
            summary=MemoryInput(
                content=content,
                category=category,
                tags=[SUMMARY_TAG],
                timestamp=now,
                importance=preserve_importance_threshold,
            ),
            source_ids=[m.id for m in selected],
        ))
        logger.debug(f"Planned {category.value} summary over {len(selected)} of {len(group)} memories")

    return plans
