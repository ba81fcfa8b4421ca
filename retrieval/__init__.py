"""
Retrieval Module for the order support chatbot.

This module provides FAQ retrieval capabilities:
- Embedding generation (OpenAI-compatible/Bedrock)
- Nearest-neighbour FAQ matching (datastore or Pinecone)
"""

from .embedder import EmbeddingService, EmbeddingConfig, EmbeddingProvider, Embedder
from .pinecone_client import PineconeClient, PineconeConfig, SearchResult
from .knowledge import KnowledgeRetriever, FaqMatch

__all__ = [
    "EmbeddingService",
    "EmbeddingConfig",
    "EmbeddingProvider",
    "Embedder",
    "PineconeClient",
    "PineconeConfig",
    "SearchResult",
    "KnowledgeRetriever",
    "FaqMatch",
]
