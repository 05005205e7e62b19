"""
Tests for importance decay
Copyright 2025 Jurden Bruce
"""

import math

import pytest

from mizan_memory.decay import apply_decay, decayed_importance
from mizan_memory.utils import MS_PER_DAY

from conftest import BASE_TS


def test_zero_age_keeps_importance():
    assert decayed_importance(0.8, 0, decay_rate=0.05, minimum_importance=0.05) == 0.8


def test_exponential_decay_value():
    assert decayed_importance(1.0, 10, 0.05, 0.05) == pytest.approx(math.exp(-0.5))


def test_floor_is_respected():
    assert decayed_importance(0.9, 10_000, 0.05, 0.05) == 0.05


def test_decay_is_non_increasing_with_age():
    values = [decayed_importance(0.9, days, 0.05, 0.05) for days in range(0, 200, 10)]
    assert values == sorted(values, reverse=True)


def test_apply_decay_uses_last_access_and_does_not_mutate(make_record):
    record = make_record(importance=0.6, timestamp=BASE_TS - 100 * MS_PER_DAY,
                         last_accessed=BASE_TS - 2 * MS_PER_DAY)
    decayed = apply_decay(record, BASE_TS, decay_rate=0.05, minimum_importance=0.05)

    assert decayed.importance == pytest.approx(0.6 * math.exp(-0.1))
    assert record.importance == 0.6
    assert decayed.id == record.id


def test_future_last_access_counts_as_zero_age(make_record):
    record = make_record(importance=0.6, last_accessed=BASE_TS + MS_PER_DAY)
    assert apply_decay(record, BASE_TS, 0.05, 0.05).importance == 0.6
