"""
Embedding generation for Mizan Memory Engine
Copyright 2025 Jurden Bruce
"""

import asyncio
import hashlib
import importlib.util
import logging
import math
import re
import time
from typing import Any, List, Optional

import httpx

from ..cache import LRUCache
from ..config import EngineConfig
from ..errors import ConfigurationError, EmbeddingFailedError, EmbeddingUnavailableError

logger = logging.getLogger("mizan-memory.embeddings")

# Check availability without importing the heavy library
try:
    SENTENCE_TRANSFORMERS_AVAILABLE = importlib.util.find_spec("sentence_transformers") is not None
except (ImportError, ValueError):
    SENTENCE_TRANSFORMERS_AVAILABLE = False


class EmbeddingClient:
    """Base embedding capability: ``await embed(text) -> List[float]``

    Subclasses implement ``_embed``. Vectors are memoised by text hash.
    """

    name = "base"

    def __init__(self, cache_maxsize: int = 1000):
        self.embedding_cache = LRUCache(maxsize=cache_maxsize)

    def is_available(self) -> bool:
        return True

    async def embed(self, text: str) -> List[float]:
        """Generate embedding with caching"""
        text_hash = hashlib.md5(text.encode()).hexdigest()
        cached = self.embedding_cache.lookup(text_hash)
        if cached is not None:
            return cached

        if not self.is_available():
            raise EmbeddingUnavailableError(self._unavailable_reason())

        embedding = await self._embed(text)
        if not embedding:
            raise EmbeddingFailedError("Failed to generate embedding.")

        self.embedding_cache[text_hash] = embedding
        return embedding

    async def _embed(self, text: str) -> Optional[List[float]]:
        raise NotImplementedError

    def _unavailable_reason(self) -> str:
        return f"Embedding provider '{self.name}' is not available"

    async def aclose(self):
        pass


class OpenAIEmbeddingClient(EmbeddingClient):
    """Remote OpenAI-compatible /embeddings endpoint"""

    name = "openai"

    def __init__(self, api_key: str, model: str, api_base: str = "https://api.openai.com/v1",
                 timeout: float = 30.0, cache_maxsize: int = 1000,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(cache_maxsize)
        self.api_key = api_key or ""
        self.transport = transport
        self.model = model
        self.api_base = api_base.rstrip("/")
        if self.api_base.endswith("/embeddings"):
            self.api_base = self.api_base[: -len("/embeddings")]
        self.timeout = timeout

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _unavailable_reason(self) -> str:
        return "OPENAI_API_KEY is required for embeddings."

    async def _embed(self, text: str) -> Optional[List[float]]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = {"model": self.model, "input": text}

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self.transport) as client:
                response = await client.post(f"{self.api_base}/embeddings", json=payload, headers=headers)
                response.raise_for_status()
                parsed = response.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingFailedError(f"Embedding request failed: {e}") from e

        embedding = self._extract_embedding(parsed)
        logger.debug(f"[TIMING] Remote embedding in {(time.perf_counter() - start)*1000:.2f}ms")
        if embedding is None:
            logger.error("Embedding response contained no usable vector")
        return embedding

    @staticmethod
    def _extract_embedding(payload: Any) -> Optional[List[float]]:
        if not isinstance(payload, dict):
            return None
        data = payload.get("data")
        if not isinstance(data, list) or not data:
            return None
        first = data[0]
        candidate = first.get("embedding") if isinstance(first, dict) else first
        if not isinstance(candidate, list) or not candidate:
            return None
        try:
            return [float(v) for v in candidate]
        except (TypeError, ValueError):
            return None


class LocalEmbeddingClient(EmbeddingClient):
    """SentenceTransformers model loaded lazily on first use"""

    name = "local"

    def __init__(self, model_name: str = "all-mpnet-base-v2", cache_maxsize: int = 1000):
        super().__init__(cache_maxsize)
        self.model_name = model_name
        self.encoder = None

    def is_available(self) -> bool:
        return SENTENCE_TRANSFORMERS_AVAILABLE

    def _unavailable_reason(self) -> str:
        return "sentence-transformers is not installed (pip install 'mizan-memory[local]')"

    def _ensure_encoder(self):
        if self.encoder is not None:
            return
        from sentence_transformers import SentenceTransformer

        start = time.perf_counter()
        self.encoder = SentenceTransformer(self.model_name, device="cpu")
        logger.info(f"[LAZY] Encoder {self.model_name} loaded in {(time.perf_counter() - start)*1000:.2f}ms")

    def _encode(self, text: str) -> List[float]:
        self._ensure_encoder()
        return [float(v) for v in self.encoder.encode(text).tolist()]

    async def _embed(self, text: str) -> Optional[List[float]]:
        try:
            return await asyncio.to_thread(self._encode, text)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Local embedding failed: {e}")
            raise EmbeddingFailedError(f"Local embedding failed: {e}") from e


class HashEmbeddingClient(EmbeddingClient):
    """Deterministic token-hash vectors for offline use and tests

    Texts that share tokens get similar vectors, so keyword-overlapping
    queries still rank sensibly. Only used when configured explicitly.
    """

    name = "hash"

    def __init__(self, dimensions: int = 256, cache_maxsize: int = 1000):
        super().__init__(cache_maxsize)
        self.dimensions = dimensions

    async def _embed(self, text: str) -> Optional[List[float]]:
        return self.hash_vector(text, self.dimensions)

    @staticmethod
    def hash_vector(text: str, dimensions: int) -> List[float]:
        vector = [0.0] * dimensions
        normalized = re.sub(r"\s+", " ", text.strip().lower())
        tokens = re.findall(r"\w+", normalized)
        if not tokens and normalized:
            tokens = list(normalized)

        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            for i in range(0, 8, 2):
                idx = digest[i] % dimensions
                sign = -1.0 if (digest[i + 1] & 1) else 1.0
                weight = 1.0 + (digest[(i + 2) % len(digest)] / 255.0)
                vector[idx] += sign * weight

        norm = math.sqrt(sum(v * v for v in vector))
        if norm <= 0:
            return vector
        return [v / norm for v in vector]


def create_embedding_client(config: EngineConfig) -> EmbeddingClient:
    """Build the embedding client selected by ``config.embedding_provider``"""
    provider = config.embedding_provider
    if provider == "openai":
        client = OpenAIEmbeddingClient(
            api_key=config.embedding_api_key,
            model=config.embedding_model,
            api_base=config.embedding_api_base,
            timeout=config.embedding_timeout,
            cache_maxsize=config.cache_maxsize,
        )
    elif provider == "local":
        client = LocalEmbeddingClient(config.local_model, cache_maxsize=config.cache_maxsize)
    elif provider == "hash":
        client = HashEmbeddingClient(config.hash_dimensions, cache_maxsize=config.cache_maxsize)
    else:
        raise ConfigurationError(f"Unknown embedding provider: {provider}")

    if not client.is_available():
        logger.warning(f"Embedding provider '{provider}' unavailable: {client._unavailable_reason()}")
    return client
