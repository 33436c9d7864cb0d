"""Process-level configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".history-alchemy"
DEFAULT_LLM_MODEL = "claude-haiku-4-5-20251001"


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Runtime knobs. Per-owner settings (blacklist, sync mode) live in the store."""

    db_path: Path = DEFAULT_DATA_DIR / "alchemy.db"
    chroma_dir: Path = DEFAULT_DATA_DIR / "chroma"
    max_history_items: int = 500
    # Allowed clock skew before a stored checkpoint is considered corrupt.
    checkpoint_skew_ms: int = 24 * 60 * 60 * 1000
    fetch_timeout: float = 5.0
    render_timeout: float = 30.0
    min_content_length: int = 500
    max_content_chars: int = 8000
    extraction_concurrency: int = 4
    similarity_threshold: float = 0.85
    lookup_timeout: float = 10.0
    llm_timeout: float = 60.0
    llm_model: str = DEFAULT_LLM_MODEL
    anthropic_api_key: str | None = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = Path(os.environ.get("HISTORY_ALCHEMY_DATA_DIR", str(DEFAULT_DATA_DIR)))
        return cls(
            db_path=Path(os.environ.get("HISTORY_ALCHEMY_DB_PATH", str(data_dir / "alchemy.db"))),
            chroma_dir=Path(os.environ.get("HISTORY_ALCHEMY_CHROMA_DIR", str(data_dir / "chroma"))),
            max_history_items=_env_int("HISTORY_ALCHEMY_MAX_HISTORY_ITEMS", 500),
            fetch_timeout=_env_float("HISTORY_ALCHEMY_FETCH_TIMEOUT", 5.0),
            render_timeout=_env_float("HISTORY_ALCHEMY_RENDER_TIMEOUT", 30.0),
            extraction_concurrency=_env_int("HISTORY_ALCHEMY_EXTRACTION_CONCURRENCY", 4),
            lookup_timeout=_env_float("HISTORY_ALCHEMY_LOOKUP_TIMEOUT", 10.0),
            llm_timeout=_env_float("HISTORY_ALCHEMY_LLM_TIMEOUT", 60.0),
            llm_model=os.environ.get("DEFAULT_LLM_MODEL", DEFAULT_LLM_MODEL),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY") or None,
        )
