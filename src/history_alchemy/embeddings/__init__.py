"""Embedding backends used for semantic duplicate detection."""

from history_alchemy.embeddings.base import BaseEmbedder, signal_text
from history_alchemy.embeddings.ollama import OllamaEmbedder
from history_alchemy.embeddings.openai import OpenAIEmbedder

__all__ = ["BaseEmbedder", "OpenAIEmbedder", "OllamaEmbedder", "signal_text"]
