"""
FAQ retrieval: embed the message, return the single closest entry.

Best-effort only. Provider failures, timeouts and index errors all mean
"no match" and never fail the chat turn.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.repositories import KnowledgeRepository
from database.session import session_scope
from .embedder import Embedder
from .pinecone_client import PineconeClient

logger = logging.getLogger(__name__)


@dataclass
class FaqMatch:
    question: str
    answer: str
    score: float

    def as_context(self) -> str:
        return f"Relevant FAQ:\nQ: {self.question}\nA: {self.answer}"


class KnowledgeRetriever:
    """
    Nearest-neighbour FAQ lookup over the datastore or a Pinecone index.

    The embedding call runs with no session open; the datastore match opens
    its own short session afterwards.
    """

    def __init__(
        self,
        embedder: Optional[Embedder],
        timeout: float = 8.0,
        pinecone_client: Optional[PineconeClient] = None,
        min_similarity: float = 0.0,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.embedder = embedder
        self.timeout = timeout
        self.pinecone_client = pinecone_client
        self.min_similarity = min_similarity
        self._session_factory = session_factory

    async def find_best_match(self, message: str) -> Optional[FaqMatch]:
        if self.embedder is None:
            return None

        try:
            embedding = await asyncio.wait_for(self.embedder.embed_text(message), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Embedding timed out after {self.timeout}s, skipping FAQ lookup")
            return None
        except Exception as e:
            logger.warning(f"Embedding failed, skipping FAQ lookup: {e}")
            return None

        if not embedding:
            return None

        try:
            if self.pinecone_client is not None:
                return await self._match_pinecone(embedding)
            return await self._match_datastore(embedding)
        except Exception as e:
            logger.error(f"FAQ search failed: {e}")
            return None

    async def _match_datastore(self, embedding) -> Optional[FaqMatch]:
        async with session_scope(self._session_factory) as session:
            matches = await KnowledgeRepository(session).match(embedding, match_count=1)
        if not matches:
            return None
        entry, score = matches[0]
        if score < self.min_similarity:
            return None
        return FaqMatch(question=entry.question, answer=entry.answer, score=score)

    async def _match_pinecone(self, embedding) -> Optional[FaqMatch]:
        results = await asyncio.to_thread(
            self.pinecone_client.query,
            embedding=embedding,
            top_k=1,
            min_score=self.min_similarity,
        )
        if not results:
            return None
        top = results[0]
        return FaqMatch(
            question=top.metadata.get("question", ""),
            answer=top.metadata.get("answer", top.text),
            score=top.score,
        )
