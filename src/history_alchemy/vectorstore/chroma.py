"""ChromaDB vector store backend."""

from __future__ import annotations

import logging
from pathlib import Path

from history_alchemy.exceptions import VectorStoreError
from history_alchemy.vectorstore.base import BaseVectorStore, SearchResult

logger = logging.getLogger(__name__)

COLLECTION_NAME = "alchemy_signals"

_SCALAR_TYPES = (str, int, float, bool)


def _flatten_metadata(metadata: dict) -> dict:
    """Chroma only stores scalar metadata values; join lists, drop the rest."""
    flat = {}
    for key, value in metadata.items():
        if isinstance(value, _SCALAR_TYPES):
            flat[key] = value
        elif isinstance(value, (list, tuple)):
            flat[key] = ", ".join(str(v) for v in value)
    return flat


def _where(filters: dict | None) -> dict | None:
    if not filters:
        return None
    if len(filters) == 1:
        return dict(filters)
    return {"$and": [{k: v} for k, v in filters.items()]}


class ChromaVectorStore(BaseVectorStore):
    """Persistent ChromaDB collection in cosine space."""

    def __init__(
        self,
        persist_dir: Path | str,
        collection_name: str = COLLECTION_NAME,
        client=None,
    ):
        """``client`` is an already-built chromadb client; a persistent one is
        opened under ``persist_dir`` when omitted."""
        self.persist_dir = Path(persist_dir)
        if client is None:
            self.persist_dir.mkdir(parents=True, exist_ok=True)
            try:
                import chromadb
            except ImportError:
                raise ImportError(
                    "chromadb is required for ChromaVectorStore. "
                    "Install with: pip install history-alchemy[vectorstore]"
                )
        try:
            if client is None:
                client = chromadb.PersistentClient(path=str(self.persist_dir))
            self.client = client
            self.collection = self.client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to initialize ChromaDB: {e}") from e

    def upsert(self, doc_id: str, vector: list[float], metadata: dict) -> None:
        try:
            self.collection.upsert(
                ids=[doc_id],
                embeddings=[vector],
                metadatas=[_flatten_metadata(metadata)],
            )
        except Exception as e:
            raise VectorStoreError(f"ChromaDB upsert failed: {e}") from e

    def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict | None = None,
    ) -> list[SearchResult]:
        kwargs: dict = {
            "query_embeddings": [vector],
            "n_results": top_k,
            "include": ["metadatas", "distances"],
        }
        where = _where(filters)
        if where:
            kwargs["where"] = where

        try:
            raw = self.collection.query(**kwargs)
        except Exception as e:
            raise VectorStoreError(f"ChromaDB query failed: {e}") from e

        results: list[SearchResult] = []
        if raw["ids"] and raw["ids"][0]:
            ids = raw["ids"][0]
            distances = raw["distances"][0] if raw.get("distances") else [0.0] * len(ids)
            metadatas = raw["metadatas"][0] if raw.get("metadatas") else [{}] * len(ids)
            for doc_id, dist, meta in zip(ids, distances, metadatas):
                # Cosine distance -> similarity
                results.append(SearchResult(doc_id=doc_id, score=1.0 - dist, metadata=meta or {}))

        results.sort(key=lambda r: r.score, reverse=True)
        return results

    def delete(self, doc_id: str) -> None:
        try:
            self.collection.delete(ids=[doc_id])
        except Exception as e:
            raise VectorStoreError(f"ChromaDB delete failed: {e}") from e

    def count(self) -> int:
        return self.collection.count()
