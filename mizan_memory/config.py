"""
Configuration for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

EMBEDDING_PROVIDERS = ("openai", "local", "hash")


@dataclass
class EngineConfig:
    """Explicit configuration handed to MemoryEngine at construction"""
    db_path: Path = Path("memory.db")
    wal_path: Path = Path("memory.wal")

    # Embeddings
    embedding_provider: str = "openai"
    embedding_model: str = "text-embedding-3-small"
    embedding_api_key: str = ""
    embedding_api_base: str = "https://api.openai.com/v1"
    embedding_timeout: float = 30.0
    local_model: str = "all-mpnet-base-v2"
    hash_dimensions: int = 256
    cache_maxsize: int = 1000

    # Decay and pruning
    decay_rate: float = 0.05
    minimum_importance: float = 0.05
    prune_threshold: float = 0.1
    prune_age_days: int = 365

    # Compaction
    summary_threshold: int = 200
    preserve_importance_threshold: float = 0.7
    max_group_size: int = 12

    wal_flush_threshold: int = 20
    log_level: str = "INFO"

    def __post_init__(self):
        self.db_path = Path(self.db_path)
        self.wal_path = Path(self.wal_path)

    def validate(self) -> "EngineConfig":
        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ConfigurationError(
                f"Unknown embedding provider: {self.embedding_provider} "
                f"(expected one of {', '.join(EMBEDDING_PROVIDERS)})"
            )
        if self.decay_rate < 0:
            raise ConfigurationError(f"decay_rate must be >= 0, got {self.decay_rate}")
        for name in ("minimum_importance", "prune_threshold", "preserve_importance_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.max_group_size < 2:
            raise ConfigurationError(f"max_group_size must be >= 2, got {self.max_group_size}")
        if self.wal_flush_threshold < 1:
            raise ConfigurationError(f"wal_flush_threshold must be >= 1, got {self.wal_flush_threshold}")
        if self.hash_dimensions < 1:
            raise ConfigurationError(f"hash_dimensions must be >= 1, got {self.hash_dimensions}")
        return self

    def with_overrides(self, **overrides) -> "EngineConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


def load_config(**overrides) -> EngineConfig:
    """Build an EngineConfig from environment variables

    Priority: explicit keyword overrides > environment variables > defaults.
    """
    defaults = EngineConfig()
    config = EngineConfig(
        db_path=Path(os.getenv("MEMORY_DB_PATH", str(Path.cwd() / defaults.db_path))),
        wal_path=Path(os.getenv("MEMORY_WAL_PATH", str(Path.cwd() / defaults.wal_path))),
        embedding_provider=os.getenv("MEMORY_EMBEDDING_PROVIDER", defaults.embedding_provider).strip().lower(),
        embedding_model=os.getenv("MEMORY_EMBEDDING_MODEL", defaults.embedding_model),
        embedding_api_key=os.getenv("OPENAI_API_KEY", defaults.embedding_api_key),
        embedding_api_base=os.getenv("OPENAI_API_BASE", defaults.embedding_api_base),
        local_model=os.getenv("MEMORY_LOCAL_MODEL", defaults.local_model),
        cache_maxsize=_env_int("MEMORY_CACHE_MAXSIZE", defaults.cache_maxsize),
        decay_rate=_env_float("MEMORY_DECAY_RATE", defaults.decay_rate),
        summary_threshold=_env_int("MEMORY_SUMMARY_THRESHOLD", defaults.summary_threshold),
        preserve_importance_threshold=_env_float(
            "MEMORY_PRESERVE_THRESHOLD", defaults.preserve_importance_threshold
        ),
        log_level=os.getenv("MEMORY_LOG_LEVEL", defaults.log_level),
    )
    return config.with_overrides(**overrides).validate()


def default_port() -> int:
    return _env_int("MEMORY_PORT", 3200)


def resolve_path(value: Optional[str]) -> Optional[Path]:
    return Path(value).expanduser() if value else None
