"""Abstract base class for embedding backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


def signal_text(title: str, summary: str, tags: list[str] | None = None) -> str:
    """Text embedded for a signal: title, summary and topic tags."""
    parts = [title.strip(), summary.strip()]
    if tags:
        parts.append(", ".join(tags))
    return "\n".join(p for p in parts if p)


class BaseEmbedder(ABC):
    """Abstract interface for text embedding."""

    model: str

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Embed a single document text."""
        ...

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts, preserving order."""
        ...

    def embed_signal(self, title: str, summary: str, tags: list[str] | None = None) -> list[float]:
        return self.embed(signal_text(title, summary, tags))
