"""Abstract base class for vector similarity backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class SearchResult:
    """A single nearest-neighbour match."""

    doc_id: str
    score: float
    metadata: dict


class BaseVectorStore(ABC):
    """Nearest-neighbour lookup over signal embeddings.

    Scores are similarities in ``[0, 1]``, higher is closer.
    """

    @abstractmethod
    def upsert(self, doc_id: str, vector: list[float], metadata: dict) -> None:
        """Insert or replace a single vector."""
        ...

    @abstractmethod
    def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict | None = None,
    ) -> list[SearchResult]:
        """Return up to ``top_k`` matches ordered by descending score."""
        ...

    @abstractmethod
    def delete(self, doc_id: str) -> None:
        ...

    @abstractmethod
    def count(self) -> int:
        ...
