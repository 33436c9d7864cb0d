"""LLM-backed relevance classifier and summary merger (Anthropic Claude)."""

from history_alchemy.llm.classifier import AnalysisVerdict, SignalClassifier, parse_robust_json
from history_alchemy.llm.client import DEFAULT_MODEL, LLMClient

__all__ = [
    "DEFAULT_MODEL",
    "LLMClient",
    "AnalysisVerdict",
    "SignalClassifier",
    "parse_robust_json",
]
