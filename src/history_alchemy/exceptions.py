"""Unified exception hierarchy for history-alchemy."""


class HistoryAlchemyError(Exception):
    """Base exception for all history-alchemy errors."""


# Browser history
class BrowserError(HistoryAlchemyError):
    """Base exception for browser history operations."""


class SourceUnavailableError(BrowserError):
    """History file is missing, unreadable, or could not be copied."""


class SchemaMismatchError(BrowserError):
    """History database does not have the expected table layout."""


class CheckpointError(BrowserError):
    """Checkpoint could not be read or persisted."""


# Web
class ExtractionError(HistoryAlchemyError):
    """Both extraction tiers failed for a URL."""


class WebFetchError(ExtractionError):
    """Tier 1 HTTP fetch failed."""


class RenderError(ExtractionError):
    """Tier 2 headless rendering failed."""


# LLM
class LLMError(HistoryAlchemyError):
    """Base exception for LLM client operations."""


# Embeddings
class EmbeddingError(HistoryAlchemyError):
    """Base exception for embedding operations."""


# VectorStore
class VectorStoreError(HistoryAlchemyError):
    """Base exception for vector store operations."""


# Store
class StoreError(HistoryAlchemyError):
    """Base exception for relational store operations."""


class MergeConflictError(StoreError):
    """Optimistic merge lost the race against a concurrent writer."""
