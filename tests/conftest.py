"""Shared fixtures."""

import math

import pytest

from history_alchemy.models import Signal
from history_alchemy.store import SignalStore
from history_alchemy.vectorstore.base import BaseVectorStore, SearchResult


@pytest.fixture
def store(tmp_path):
    return SignalStore(tmp_path / "store" / "alchemy.db")


@pytest.fixture
def make_signal():
    def build(**overrides):
        fields = {
            "owner_id": "owner-1",
            "url": "https://example.com/articles/some-long-article-slug",
            "title": "Some Article",
            "score": 60,
            "summary": "An article.",
            "category": "Technology",
            "entities": ["Python"],
            "tags": ["programming"],
        }
        fields.update(overrides)
        return Signal(**fields)
    return build


class InMemoryVectorStore(BaseVectorStore):
    """Cosine-similarity vector store kept in a dict."""

    def __init__(self):
        self.vectors = {}

    def upsert(self, doc_id, vector, metadata):
        self.vectors[doc_id] = (list(vector), dict(metadata))

    def query(self, vector, top_k=5, filters=None):
        results = []
        for doc_id, (stored, metadata) in self.vectors.items():
            if filters and any(metadata.get(k) != v for k, v in filters.items()):
                continue
            results.append(SearchResult(doc_id=doc_id, score=_cosine(vector, stored), metadata=metadata))
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    def delete(self, doc_id):
        self.vectors.pop(doc_id, None)

    def count(self):
        return len(self.vectors)


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()
