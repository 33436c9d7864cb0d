"""Data models for the browser history module."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class HistoryEntry:
    """A normalized, deduplicated history row ready for analysis."""

    id: str
    url: str
    title: str
    visit_count: int
    last_visit_time: int  # unix ms
    browser: str
    source: str


@dataclass
class BrowserSource:
    """A configured history database."""

    path: str
    browser: str
    label: str = ""
    enabled: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.enabled, str):
            self.enabled = self.enabled.strip().lower() == "true"
        self.browser = (self.browser or "custom").strip().lower()
        if not self.label:
            self.label = self.browser

    @property
    def key(self) -> str:
        """Checkpoint key: the file path, falling back to the browser name."""
        return self.path or self.browser

    @classmethod
    def from_dict(cls, raw: dict) -> "BrowserSource":
        return cls(
            path=str(raw.get("path") or ""),
            browser=str(raw.get("browser") or "custom"),
            label=str(raw.get("label") or raw.get("name") or ""),
            enabled=raw.get("enabled", True),
        )


@dataclass(frozen=True)
class HistoryRow:
    """One schema-normalized row read from a history database."""

    url: str
    title: str
    visit_count: int
    last_visit_time: int  # unix ms


@dataclass
class ExtractionStats:
    """Per-source counters, one per filtering step."""

    rows: int = 0
    blacklisted: int = 0
    non_content: int = 0
    duplicates: int = 0
    kept: int = 0


@dataclass
class SourceResult:
    """What one extractor run produced for one source."""

    source: BrowserSource
    entries: list[HistoryEntry] = field(default_factory=list)
    stats: ExtractionStats = field(default_factory=ExtractionStats)
    checkpoint: int | None = None
    error: str | None = None


@dataclass
class MiningResult:
    """Aggregate result of a mining run across all sources."""

    entries: list[HistoryEntry] = field(default_factory=list)
    sources: list[SourceResult] = field(default_factory=list)
    cross_source_duplicates: int = 0
    stopped: bool = False

    @property
    def errors(self) -> dict[str, str]:
        return {r.source.label: r.error for r in self.sources if r.error}
