"""
Storage backends for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

from .embeddings import (
    EmbeddingClient,
    HashEmbeddingClient,
    LocalEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_client,
)
from .sqlite_store import SQLiteStore

__all__ = [
    'EmbeddingClient',
    'HashEmbeddingClient',
    'LocalEmbeddingClient',
    'OpenAIEmbeddingClient',
    'SQLiteStore',
    'create_embedding_client',
]
