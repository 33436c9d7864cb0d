"""Persisted records shared by the pipeline, the store and the deduplicator."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

SYNC_INCREMENTAL = "incremental"
SYNC_FULL = "full"

UNTITLED = "Untitled"
# Titles that say nothing about the page; never used as duplicate evidence.
PLACEHOLDER_TITLES = frozenset({"", "untitled", "untitled document", "new tab", "loading..."})


def normalize_title(title: str) -> str:
    """Whitespace-collapsed, case-folded title used for exact title matching."""
    return " ".join((title or "").split()).casefold()


def is_placeholder_title(title: str) -> bool:
    return normalize_title(title) in PLACEHOLDER_TITLES


@dataclass
class Signal:
    """An analyzed page that passed the relevance bar."""

    owner_id: str
    url: str
    title: str
    score: float = 0.0
    summary: str = ""
    category: str = "Other"
    entities: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    content: str = ""
    mention_count: int = 1
    metadata: dict = field(default_factory=dict)
    has_embedding: bool = False
    embedding_model: str = ""
    revision: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = ""
    updated_at: str = ""

    @property
    def source_urls(self) -> list[str]:
        return list(self.metadata.get("source_urls") or [self.url])


@dataclass
class AlchemySettings:
    """Per-owner mining settings."""

    owner_id: str
    blacklist_domains: list[str] = field(default_factory=list)
    sync_mode: str = SYNC_INCREMENTAL
    sync_start_date: str | None = None
    last_sync_checkpoint: str | None = None
    max_urls_per_sync: int = 50
    custom_browser_paths: list[dict] = field(default_factory=list)
