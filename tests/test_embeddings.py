"""
Tests for embedding clients
Copyright 2025 Jurden Bruce
"""

import asyncio
import math

import httpx
import pytest

from mizan_memory.config import EngineConfig
from mizan_memory.errors import ConfigurationError, EmbeddingFailedError, EmbeddingUnavailableError
from mizan_memory.storage import embeddings
from mizan_memory.storage.embeddings import (
    HashEmbeddingClient,
    LocalEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_client,
)


def _client_with(handler, **kwargs) -> OpenAIEmbeddingClient:
    return OpenAIEmbeddingClient(
        api_key="sk-test",
        model="text-embedding-3-small",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_openai_without_key_is_unavailable():
    client = OpenAIEmbeddingClient(api_key="", model="text-embedding-3-small")
    assert client.is_available() is False
    with pytest.raises(EmbeddingUnavailableError) as exc_info:
        asyncio.run(client.embed("hello"))
    assert "OPENAI_API_KEY" in str(exc_info.value)


def test_openai_request_and_cache():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})

    client = _client_with(handler, api_base="https://example.test/v1/")
    assert asyncio.run(client.embed("hello")) == [0.1, 0.2, 0.3]
    assert asyncio.run(client.embed("hello")) == [0.1, 0.2, 0.3]

    assert len(requests) == 1
    assert str(requests[0].url) == "https://example.test/v1/embeddings"
    assert requests[0].headers["Authorization"] == "Bearer sk-test"


def test_openai_http_error_is_embedding_failure():
    client = _client_with(lambda request: httpx.Response(500, json={"error": "boom"}))
    with pytest.raises(EmbeddingFailedError):
        asyncio.run(client.embed("hello"))


def test_openai_empty_payload_is_embedding_failure():
    client = _client_with(lambda request: httpx.Response(200, json={"data": []}))
    with pytest.raises(EmbeddingFailedError) as exc_info:
        asyncio.run(client.embed("hello"))
    assert str(exc_info.value) == "Failed to generate embedding."


def test_hash_vectors_are_deterministic_and_normalized():
    first = HashEmbeddingClient.hash_vector("dark mode settings", 64)
    second = HashEmbeddingClient.hash_vector("dark   MODE settings", 64)
    assert first == second
    assert len(first) == 64
    assert math.sqrt(sum(v * v for v in first)) == pytest.approx(1.0)


def test_local_client_unavailable_without_library(monkeypatch):
    monkeypatch.setattr(embeddings, "SENTENCE_TRANSFORMERS_AVAILABLE", False)
    client = LocalEmbeddingClient()
    with pytest.raises(EmbeddingUnavailableError):
        asyncio.run(client.embed("hello"))


def test_factory_selects_provider(tmp_path):
    assert isinstance(create_embedding_client(EngineConfig(embedding_provider="hash")), HashEmbeddingClient)
    assert isinstance(create_embedding_client(EngineConfig(embedding_provider="openai")), OpenAIEmbeddingClient)
    assert isinstance(create_embedding_client(EngineConfig(embedding_provider="local")), LocalEmbeddingClient)
    with pytest.raises(ConfigurationError):
        create_embedding_client(EngineConfig(embedding_provider="word2vec"))
