"""Tests for FAQ retrieval."""

import asyncio
from types import SimpleNamespace

import pytest

from database.models import KnowledgeEntry
from database.repositories import cosine_similarity
from database.session import close_db, init_db, session_scope
from retrieval import KnowledgeRetriever, PineconeClient, PineconeConfig
from retrieval.embedder import EmbeddingCache
from tests.conftest import FakeEmbedder


FAQS = [
    KnowledgeEntry(question="How long is shipping?", answer="3-5 business days.", embedding=[1.0, 0.0, 0.0]),
    KnowledgeEntry(question="Can I return items?", answer="Within 30 days.", embedding=[0.0, 1.0, 0.0]),
]


def _find(retriever, message="when will it arrive", rows=FAQS):
    async def _go():
        await init_db("sqlite+aiosqlite:///:memory:")
        try:
            async with session_scope() as session:
                session.add_all([
                    KnowledgeEntry(question=r.question, answer=r.answer, embedding=r.embedding) for r in rows
                ])
            return await retriever.find_best_match(message)
        finally:
            await close_db()
    return asyncio.run(_go())


class FakeIndex:
    def __init__(self, matches):
        self.matches = matches
        self.queries = []

    def query(self, **kwargs):
        self.queries.append(kwargs)
        return SimpleNamespace(matches=self.matches)


class TestKnowledgeRetriever:
    def test_best_datastore_match(self):
        match = _find(KnowledgeRetriever(FakeEmbedder([0.9, 0.1, 0.0])))
        assert match.question == "How long is shipping?"
        assert match.score > 0.9
        assert match.as_context() == "Relevant FAQ:\nQ: How long is shipping?\nA: 3-5 business days."

    def test_min_similarity(self):
        retriever = KnowledgeRetriever(FakeEmbedder([0.0, 0.0, 1.0]), min_similarity=0.5)
        assert _find(retriever) is None

    def test_no_embedder_means_no_match(self):
        assert _find(KnowledgeRetriever(None)) is None

    def test_embedding_failure_means_no_match(self):
        assert _find(KnowledgeRetriever(FakeEmbedder(error=RuntimeError("401 bad key")))) is None

    def test_embedding_timeout_means_no_match(self):
        retriever = KnowledgeRetriever(FakeEmbedder(delay=0.5), timeout=0.05)
        assert _find(retriever) is None

    def test_empty_store(self):
        assert _find(KnowledgeRetriever(FakeEmbedder()), rows=[]) is None

    def test_pinecone_index(self):
        index = FakeIndex([SimpleNamespace(
            id="faq-1", score=0.88, metadata={"question": "Do you ship abroad?", "answer": "Yes, to 40 countries."},
        )])
        client = PineconeClient(PineconeConfig(api_key="test"), index=index)
        match = _find(KnowledgeRetriever(FakeEmbedder(), pinecone_client=client))

        assert match.answer == "Yes, to 40 countries."
        assert index.queries[0]["namespace"] == "faq"
        assert index.queries[0]["top_k"] == 1


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_mismatched_or_zero(self):
        assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0


class TestEmbeddingCache:
    def test_lru_eviction(self):
        cache = EmbeddingCache(maxsize=2)
        cache.put("a", [1.0])
        cache.put("b", [2.0])
        cache.get("a")
        cache.put("c", [3.0])
        assert cache.get("b") is None
        assert cache.get(" A ") == [1.0]
        assert cache.stats()["size"] == 2
