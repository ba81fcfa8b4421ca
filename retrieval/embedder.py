"""
Embedding Service for the order support chatbot.

Generates embeddings using an OpenAI-compatible endpoint or AWS Bedrock.
"""

import asyncio
import hashlib
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EmbeddingCache:
    """
    In-memory LRU cache for embeddings.

    Key: MD5 hash of normalized query text.
    Value: embedding vector.
    """

    def __init__(self, maxsize: int = 2000):
        self.maxsize = maxsize
        self._cache: OrderedDict[str, List[float]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _make_key(self, text: str) -> str:
        normalized = text.strip().lower()
        return hashlib.md5(normalized.encode()).hexdigest()

    def get(self, text: str) -> Optional[List[float]]:
        key = self._make_key(text)
        if key in self._cache:
            self._cache.move_to_end(key)
            self.hits += 1
            return self._cache[key]
        self.misses += 1
        return None

    def put(self, text: str, embedding: List[float]) -> None:
        key = self._make_key(text)
        if key in self._cache:
            self._cache.move_to_end(key)
        else:
            if len(self._cache) >= self.maxsize:
                self._cache.popitem(last=False)
        self._cache[key] = embedding

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._cache), "hits": self.hits, "misses": self.misses}


class EmbeddingProvider(Enum):
    """Supported embedding providers."""
    BEDROCK_TITAN = "bedrock_titan"
    OPENAI = "openai"


@runtime_checkable
class Embedder(Protocol):
    """Anything that turns text into a fixed-dimension vector."""

    async def embed_text(self, text: str) -> List[float]:
        ...


@dataclass
class EmbeddingConfig:
    """Configuration for embedding service."""
    provider: EmbeddingProvider = EmbeddingProvider.OPENAI
    model_id: str = "text-embedding-3-small"
    aws_region: str = "us-east-1"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    timeout: float = 8.0


class EmbeddingService:
    """
    Service for generating text embeddings.

    Supports:
    - OpenAI-compatible embeddings
    - AWS Bedrock Titan embeddings
    - Caching (optional)
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None, cache_size: int = 0):
        """
        Initialize the embedding service.

        Args:
            config: Embedding configuration
            cache_size: If > 0, enable LRU embedding cache
        """
        self.config = config or EmbeddingConfig()
        self._client = None
        self._openai_client = None
        self._cache: Optional[EmbeddingCache] = EmbeddingCache(cache_size) if cache_size > 0 else None

        self._initialize_client()

    def _initialize_client(self):
        """Initialize the appropriate client based on provider."""
        if self.config.provider == EmbeddingProvider.BEDROCK_TITAN:
            self._initialize_bedrock()
        elif self.config.provider == EmbeddingProvider.OPENAI:
            self._initialize_openai()

    def _initialize_bedrock(self):
        """Initialize AWS Bedrock client."""
        import boto3
        from botocore.config import Config

        self._client = boto3.client(
            "bedrock-runtime",
            region_name=self.config.aws_region,
            config=Config(read_timeout=self.config.timeout, retries={"max_attempts": 1}),
        )
        logger.info(f"Bedrock embedding client initialized in {self.config.aws_region}")

    def _initialize_openai(self):
        """Initialize OpenAI client."""
        from openai import AsyncOpenAI

        self._openai_client = AsyncOpenAI(
            api_key=self.config.openai_api_key,
            base_url=self.config.openai_base_url,
            timeout=self.config.timeout,
            max_retries=0,
        )
        logger.info("OpenAI embedding client initialized")

    async def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text (with optional cache).

        Args:
            text: Input text

        Returns:
            Embedding vector
        """
        if self._cache is not None:
            cached = self._cache.get(text)
            if cached is not None:
                return cached

        if self.config.provider == EmbeddingProvider.BEDROCK_TITAN:
            result = await self._embed_bedrock(text)
        elif self.config.provider == EmbeddingProvider.OPENAI:
            result = await self._embed_openai(text)
        else:
            raise ValueError(f"Unsupported provider: {self.config.provider}")

        if self._cache is not None:
            self._cache.put(text, result)

        return result

    async def _embed_bedrock(self, text: str) -> List[float]:
        """Generate embedding using Bedrock Titan."""
        # Titan has an 8K token limit
        if len(text) > 25000:
            text = text[:25000]

        def _invoke() -> List[float]:
            response = self._client.invoke_model(
                modelId=self.config.model_id,
                body=json.dumps({"inputText": text}),
                contentType="application/json",
                accept="application/json",
            )
            return json.loads(response["body"].read())["embedding"]

        embedding = await asyncio.to_thread(_invoke)
        logger.debug(f"Generated Bedrock embedding, dim={len(embedding)}")
        return embedding

    async def _embed_openai(self, text: str) -> List[float]:
        """Generate embedding using OpenAI."""
        response = await self._openai_client.embeddings.create(
            model=self.config.model_id,
            input=text
        )
        embedding = response.data[0].embedding

        logger.debug(f"Generated OpenAI embedding, dim={len(embedding)}")
        return embedding
