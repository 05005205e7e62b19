"""
Importance decay for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

import math

from .models import MemoryRecord
from .utils import MS_PER_DAY


def decayed_importance(importance: float, age_days: float, decay_rate: float,
                       minimum_importance: float) -> float:
    """Exponential decay with a floor; negative ages count as zero"""
    age_days = max(0.0, age_days)
    return max(minimum_importance, importance * math.exp(-decay_rate * age_days))


def apply_decay(memory: MemoryRecord, now: int, decay_rate: float,
                minimum_importance: float) -> MemoryRecord:
    """Return a copy of ``memory`` with importance aged since its last access

    Pure: the input record is not modified and nothing is persisted. Clock
    skew (``last_accessed`` in the future) is treated as zero age.
    """
    age_days = max(0, now - memory.last_accessed) / MS_PER_DAY
    importance = decayed_importance(memory.importance, age_days, decay_rate, minimum_importance)
    return memory.with_changes(importance=importance)
