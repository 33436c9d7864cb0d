"""Incremental, lock-safe extraction from browser history databases."""

from __future__ import annotations

import logging
import shutil
import sqlite3
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Iterator, Sequence
from urllib.parse import urlsplit

from history_alchemy.browser.models import (
    BrowserSource,
    ExtractionStats,
    HistoryEntry,
    HistoryRow,
    SourceResult,
)
from history_alchemy.exceptions import (
    CheckpointError,
    SchemaMismatchError,
    SourceUnavailableError,
    StoreError,
)
from history_alchemy.models import UNTITLED
from history_alchemy.store import SignalStore
from history_alchemy.timestamps import (
    CHROMIUM,
    FIREFOX,
    SAFARI,
    browser_family,
    native_after,
    now_ms,
    to_unix_ms,
)
from history_alchemy.urls import DEFAULT_RULES, UrlRules, is_likely_non_content, normalize

logger = logging.getLogger(__name__)

DEFAULT_BLACKLIST = (
    "google.com/search",
    "localhost:",
    "127.0.0.1",
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "linkedin.com/feed",
)

_QUERIES = {
    CHROMIUM: """
        SELECT url, title, visit_count, last_visit_time
        FROM urls
        WHERE last_visit_time > ?
        ORDER BY last_visit_time ASC
        LIMIT ?
    """,
    FIREFOX: """
        SELECT url, title, visit_count, last_visit_date AS last_visit_time
        FROM moz_places
        WHERE last_visit_date > ?
        ORDER BY last_visit_date ASC
        LIMIT ?
    """,
    # SQLite fills bare columns from the row holding MAX(), so the title
    # comes from the most recent visit.
    SAFARI: """
        SELECT
            hi.url AS url,
            hv.title AS title,
            hi.visit_count AS visit_count,
            MAX(hv.visit_time) AS last_visit_time
        FROM history_items hi
        JOIN history_visits hv ON hv.history_item = hi.id
        WHERE hv.visit_time > ?
        GROUP BY hi.id
        ORDER BY last_visit_time ASC
        LIMIT ?
    """,
}


class ExtractorState(str, Enum):
    IDLE = "idle"
    COPYING = "copying"
    QUERYING = "querying"
    FILTERING = "filtering"
    CHECKPOINTING = "checkpointing"
    DONE = "done"
    FAILED = "failed"


@contextmanager
def snapshot(path: Path) -> Iterator[Path]:
    """Copy a (possibly locked) history DB into a private temp dir.

    The temp dir and everything in it is removed when the block exits,
    whatever happens inside it.
    """
    if not path.is_file():
        raise SourceUnavailableError(f"History database not found at {path}")

    with tempfile.TemporaryDirectory(prefix="history-alchemy-") as tmp:
        target = Path(tmp) / path.name
        try:
            shutil.copy2(path, target)
            # Recent visits of a running browser may still sit in the WAL.
            wal = path.with_name(path.name + "-wal")
            if wal.is_file():
                shutil.copy2(wal, target.with_name(target.name + "-wal"))
        except OSError as e:
            raise SourceUnavailableError(f"Cannot copy history database {path}: {e}") from e
        yield target


def query_rows(db_path: Path, browser: str, since_native: int | float, limit: int) -> list[HistoryRow]:
    """Run the schema-specific query and normalize rows to unix-ms HistoryRows."""
    family = browser_family(browser)
    try:
        conn = sqlite3.connect(str(db_path))
    except sqlite3.Error as e:
        raise SourceUnavailableError(f"Cannot open history database copy: {e}") from e

    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA query_only = ON")
        raw = conn.execute(_QUERIES[family], (since_native, limit)).fetchall()
    except sqlite3.DatabaseError as e:
        raise SchemaMismatchError(f"Unexpected {family} history schema: {e}") from e
    finally:
        conn.close()

    return [
        HistoryRow(
            url=(row["url"] or "").strip(),
            title=(row["title"] or "").strip(),
            visit_count=max(1, int(row["visit_count"] or 1)),
            last_visit_time=to_unix_ms(row["last_visit_time"], browser),
        )
        for row in raw
    ]


def _is_blacklisted(url: str, blacklist: Sequence[str]) -> bool:
    lower = url.lower()
    return any(b and b in lower for b in blacklist)


def _is_non_content(url: str, rules: UrlRules) -> bool:
    if not url:
        return True
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return True
    if scheme not in {"http", "https"}:
        return True
    return is_likely_non_content(url, rules)


def filter_rows(
    rows: Sequence[HistoryRow],
    blacklist: Sequence[str] = (),
    rules: UrlRules = DEFAULT_RULES,
) -> tuple[list[HistoryRow], ExtractionStats]:
    """Blacklist, then non-content, then normalize + in-batch dedup.

    The input is left untouched; each step is counted separately.
    """
    patterns = tuple(b.strip().lower() for b in blacklist if b and b.strip())

    allowed = [r for r in rows if not _is_blacklisted(r.url, patterns)]
    content = [r for r in allowed if not _is_non_content(r.url, rules)]
    normalized = [replace(r, url=normalize(r.url, rules)) for r in content]

    unique: dict[str, HistoryRow] = {}
    for row in normalized:
        unique.setdefault(row.url, row)

    stats = ExtractionStats(
        rows=len(rows),
        blacklisted=len(rows) - len(allowed),
        non_content=len(allowed) - len(content),
        duplicates=len(normalized) - len(unique),
        kept=len(unique),
    )
    return list(unique.values()), stats


class HistoryExtractor:
    """Reads one browser source per call, newer than its checkpoint."""

    def __init__(
        self,
        store: SignalStore,
        owner_id: str,
        max_items: int = 500,
        checkpoint_skew_ms: int = 24 * 60 * 60 * 1000,
        rules: UrlRules = DEFAULT_RULES,
    ):
        self.store = store
        self.owner_id = owner_id
        self.max_items = max_items
        self.checkpoint_skew_ms = checkpoint_skew_ms
        self.rules = rules
        self.state = ExtractorState.IDLE

    def _checkpoint_ceiling(self) -> int:
        return now_ms() + self.checkpoint_skew_ms

    def get_checkpoint(self, source: BrowserSource) -> int:
        """Stored checkpoint in unix ms; 0 if missing or implausibly large."""
        try:
            value = self.store.get_checkpoint(self.owner_id, source.key)
        except StoreError as e:
            raise CheckpointError(f"Cannot read checkpoint for {source.key}: {e}") from e
        if value is None:
            return 0
        if value < 0 or value > self._checkpoint_ceiling():
            # Un-converted native timestamp; trusting it would stop mining for good.
            logger.info("Resetting corrupt checkpoint %s for %s", value, source.key)
            self.store.save_checkpoint(self.owner_id, source.key, 0)
            return 0
        return value

    def extract(
        self,
        source: BrowserSource,
        since_ms: int | None = None,
        blacklist: Sequence[str] = DEFAULT_BLACKLIST,
        max_items: int | None = None,
    ) -> SourceResult:
        """Copy, query, filter and checkpoint one source.

        Raises SourceUnavailableError if the file can't be read; a schema
        mismatch is logged and reported as an empty result.
        """
        result = SourceResult(source=source)
        stored = self.get_checkpoint(source)
        since = stored if since_ms is None else since_ms
        limit = max_items or self.max_items

        self.state = ExtractorState.COPYING
        try:
            with snapshot(Path(source.path).expanduser()) as db_copy:
                self.state = ExtractorState.QUERYING
                native = native_after(since, source.browser)
                rows = query_rows(db_copy, source.browser, native, limit)
        except SchemaMismatchError as e:
            self.state = ExtractorState.FAILED
            logger.warning("Schema mismatch for %s: %s", source.label, e)
            result.error = str(e)
            return result
        except SourceUnavailableError:
            self.state = ExtractorState.FAILED
            raise

        self.state = ExtractorState.FILTERING
        kept, result.stats = filter_rows(rows, blacklist, self.rules)
        result.entries = [
            HistoryEntry(
                id=str(uuid.uuid4()),
                url=row.url,
                title=row.title or UNTITLED,
                visit_count=row.visit_count,
                last_visit_time=row.last_visit_time,
                browser=source.browser,
                source=source.label,
            )
            for row in kept
        ]

        self.state = ExtractorState.CHECKPOINTING
        if rows:
            result.checkpoint = self._advance_checkpoint(source, stored, rows[-1].last_visit_time)

        self.state = ExtractorState.DONE
        logger.info(
            "%s: %d rows, %d kept (%d blacklisted, %d non-content, %d duplicates)",
            source.label,
            result.stats.rows,
            result.stats.kept,
            result.stats.blacklisted,
            result.stats.non_content,
            result.stats.duplicates,
        )
        return result

    def _advance_checkpoint(self, source: BrowserSource, stored: int, newest: int) -> int:
        if newest > self._checkpoint_ceiling():
            logger.warning(
                "Refusing checkpoint %s for %s: beyond sanity ceiling", newest, source.key
            )
            return stored
        value = max(stored, newest)
        if value != stored:
            try:
                self.store.save_checkpoint(self.owner_id, source.key, value)
            except StoreError as e:
                self.state = ExtractorState.FAILED
                raise CheckpointError(f"Cannot save checkpoint for {source.key}: {e}") from e
        return value
