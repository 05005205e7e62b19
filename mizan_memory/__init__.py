"""
Mizan Memory Engine - durable, semantically searchable agent memory
Copyright 2025 Jurden Bruce
"""

__version__ = "0.1.0"

from .config import EngineConfig, load_config
from .engine import MemoryEngine
from .errors import (
    ConfigurationError,
    DuplicateIdError,
    DurabilityLogError,
    EmbeddingFailedError,
    EmbeddingUnavailableError,
    MemoryEngineError,
    StorageError,
    ValidationError,
)
from .models import (
    CompactionPlan,
    HealthStatus,
    ListOptions,
    MemoryCategory,
    MemoryInput,
    MemoryRecord,
    SearchOptions,
    SearchResult,
)

__all__ = [
    'CompactionPlan',
    'ConfigurationError',
    'DuplicateIdError',
    'DurabilityLogError',
    'EmbeddingFailedError',
    'EmbeddingUnavailableError',
    'EngineConfig',
    'HealthStatus',
    'ListOptions',
    'MemoryCategory',
    'MemoryEngine',
    'MemoryEngineError',
    'MemoryInput',
    'MemoryRecord',
    'SearchOptions',
    'SearchResult',
    'StorageError',
    'ValidationError',
    'load_config',
]
