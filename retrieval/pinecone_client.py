"""
Pinecone Client for the order support chatbot.

Optional vector index for FAQ lookups when the knowledge base is hosted
in Pinecone instead of the relational datastore.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pinecone import Pinecone

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    """Result from a vector search."""
    id: str
    score: float
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None


@dataclass
class PineconeConfig:
    """Configuration for Pinecone client."""
    api_key: str
    index_name: str = "support-faqs"
    namespace: str = "faq"


class PineconeClient:
    """
    Read-only client over an existing Pinecone index.

    FAQ vectors carry `question` and `answer` in their metadata.
    """

    def __init__(self, config: PineconeConfig, index: Optional[Any] = None):
        """
        Initialize the Pinecone client.

        Args:
            config: Pinecone configuration
            index: Pre-built index handle (skips client construction)
        """
        self.config = config
        self._index = index

        if self._index is None:
            self._client = Pinecone(api_key=self.config.api_key)
            self._index = self._client.Index(self.config.index_name)
            logger.info(f"Using Pinecone index: {self.config.index_name}")

    def query(
        self,
        embedding: List[float],
        top_k: int = 1,
        namespace: Optional[str] = None,
        min_score: float = 0.0
    ) -> List[SearchResult]:
        """
        Query for similar vectors.

        Args:
            embedding: Query embedding
            top_k: Number of results to return
            namespace: Namespace to search (defaults to the configured one)
            min_score: Minimum similarity score

        Returns:
            List of SearchResult objects
        """
        response = self._index.query(
            vector=embedding,
            top_k=top_k,
            namespace=self.config.namespace if namespace is None else namespace,
            include_metadata=True,
        )

        results = []
        for match in response.matches:
            if match.score < min_score:
                continue

            metadata = match.metadata or {}
            results.append(SearchResult(
                id=match.id,
                score=match.score,
                text=metadata.get("answer", ""),
                metadata=metadata,
                source=metadata.get("source"),
            ))

        logger.debug(f"Query returned {len(results)} results")
        return results
