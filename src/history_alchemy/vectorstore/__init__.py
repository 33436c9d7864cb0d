"""Vector similarity backends."""

from history_alchemy.vectorstore.base import BaseVectorStore, SearchResult
from history_alchemy.vectorstore.chroma import ChromaVectorStore

__all__ = ["BaseVectorStore", "SearchResult", "ChromaVectorStore"]
