"""SQLite-backed store for settings, history checkpoints and signals.

Schema
------
alchemy_settings      one row per owner
history_checkpoints   (owner_id, browser) -> last_visit_time (unix ms)
signals               analyzed pages; ``revision`` guards concurrent merges
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from history_alchemy.exceptions import StoreError
from history_alchemy.models import AlchemySettings, Signal, normalize_title
from history_alchemy.urls import normalize

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS alchemy_settings (
    owner_id             TEXT PRIMARY KEY,
    blacklist_domains    TEXT NOT NULL DEFAULT '[]',
    sync_mode            TEXT NOT NULL DEFAULT 'incremental',
    sync_start_date      TEXT,
    last_sync_checkpoint TEXT,
    max_urls_per_sync    INTEGER NOT NULL DEFAULT 50,
    custom_browser_paths TEXT NOT NULL DEFAULT '[]'
);

CREATE TABLE IF NOT EXISTS history_checkpoints (
    owner_id        TEXT NOT NULL,
    browser         TEXT NOT NULL,
    last_visit_time INTEGER NOT NULL,
    updated_at      TEXT NOT NULL,
    PRIMARY KEY (owner_id, browser)
);

CREATE TABLE IF NOT EXISTS signals (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    url             TEXT NOT NULL,
    url_key         TEXT NOT NULL,
    title           TEXT NOT NULL,
    title_key       TEXT NOT NULL,
    score           REAL NOT NULL DEFAULT 0,
    summary         TEXT NOT NULL DEFAULT '',
    category        TEXT NOT NULL DEFAULT 'Other',
    entities        TEXT NOT NULL DEFAULT '[]',
    tags            TEXT NOT NULL DEFAULT '[]',
    content         TEXT NOT NULL DEFAULT '',
    mention_count   INTEGER NOT NULL DEFAULT 1,
    metadata        TEXT NOT NULL DEFAULT '{}',
    has_embedding   INTEGER NOT NULL DEFAULT 0,
    embedding_model TEXT NOT NULL DEFAULT '',
    revision        INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_signals_owner_title ON signals (owner_id, title_key);
CREATE INDEX IF NOT EXISTS idx_signals_owner_url ON signals (owner_id, url_key);
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SignalStore:
    """Point reads/writes and upserts keyed on natural composite keys."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.info("Signal store initialised at %s", self.db_path)

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open store at {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Store operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self, owner_id: str) -> AlchemySettings:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM alchemy_settings WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        if row is None:
            return AlchemySettings(owner_id=owner_id)
        return AlchemySettings(
            owner_id=owner_id,
            blacklist_domains=json.loads(row["blacklist_domains"] or "[]"),
            sync_mode=row["sync_mode"],
            sync_start_date=row["sync_start_date"],
            last_sync_checkpoint=row["last_sync_checkpoint"],
            max_urls_per_sync=int(row["max_urls_per_sync"]),
            custom_browser_paths=json.loads(row["custom_browser_paths"] or "[]"),
        )

    def save_settings(self, settings: AlchemySettings) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO alchemy_settings (
                    owner_id, blacklist_domains, sync_mode, sync_start_date,
                    last_sync_checkpoint, max_urls_per_sync, custom_browser_paths
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(owner_id) DO UPDATE SET
                    blacklist_domains = excluded.blacklist_domains,
                    sync_mode = excluded.sync_mode,
                    sync_start_date = excluded.sync_start_date,
                    last_sync_checkpoint = excluded.last_sync_checkpoint,
                    max_urls_per_sync = excluded.max_urls_per_sync,
                    custom_browser_paths = excluded.custom_browser_paths
                """,
                (
                    settings.owner_id,
                    json.dumps(settings.blacklist_domains),
                    settings.sync_mode,
                    settings.sync_start_date,
                    settings.last_sync_checkpoint,
                    settings.max_urls_per_sync,
                    json.dumps(settings.custom_browser_paths),
                ),
            )

    def finish_sync(self, owner_id: str, checkpoint_iso: str | None) -> None:
        """Clear the one-shot sync start date and record when the run finished."""
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO alchemy_settings (owner_id) VALUES (?)", (owner_id,)
            )
            conn.execute(
                """
                UPDATE alchemy_settings
                SET sync_start_date = NULL,
                    last_sync_checkpoint = COALESCE(?, last_sync_checkpoint)
                WHERE owner_id = ?
                """,
                (checkpoint_iso, owner_id),
            )

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def get_checkpoint(self, owner_id: str, source_key: str) -> int | None:
        """Raw stored value; validation against the sanity ceiling is the caller's job."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT last_visit_time FROM history_checkpoints WHERE owner_id = ? AND browser = ?",
                (owner_id, source_key),
            ).fetchone()
        return int(row["last_visit_time"]) if row else None

    def save_checkpoint(self, owner_id: str, source_key: str, last_visit_time: int) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO history_checkpoints (owner_id, browser, last_visit_time, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(owner_id, browser) DO UPDATE SET
                    last_visit_time = excluded.last_visit_time,
                    updated_at = excluded.updated_at
                """,
                (owner_id, source_key, int(last_visit_time), _now_iso()),
            )

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_signal(row: sqlite3.Row) -> Signal:
        return Signal(
            id=row["id"],
            owner_id=row["owner_id"],
            url=row["url"],
            title=row["title"],
            score=float(row["score"]),
            summary=row["summary"],
            category=row["category"],
            entities=json.loads(row["entities"]),
            tags=json.loads(row["tags"]),
            content=row["content"],
            mention_count=int(row["mention_count"]),
            metadata=json.loads(row["metadata"]),
            has_embedding=bool(row["has_embedding"]),
            embedding_model=row["embedding_model"],
            revision=int(row["revision"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def insert_signal(self, signal: Signal) -> str:
        now = _now_iso()
        signal.created_at = signal.created_at or now
        signal.updated_at = now
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO signals (
                    id, owner_id, url, url_key, title, title_key, score, summary,
                    category, entities, tags, content, mention_count, metadata,
                    has_embedding, embedding_model, revision, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    signal.id,
                    signal.owner_id,
                    signal.url,
                    normalize(signal.url),
                    signal.title,
                    normalize_title(signal.title),
                    signal.score,
                    signal.summary,
                    signal.category,
                    json.dumps(signal.entities),
                    json.dumps(signal.tags),
                    signal.content,
                    signal.mention_count,
                    json.dumps(signal.metadata),
                    int(signal.has_embedding),
                    signal.embedding_model,
                    signal.revision,
                    signal.created_at,
                    signal.updated_at,
                ),
            )
        return signal.id

    def get_signal(self, owner_id: str, signal_id: str) -> Signal | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM signals WHERE id = ? AND owner_id = ?", (signal_id, owner_id)
            ).fetchone()
        return self._row_to_signal(row) if row else None

    def find_by_title(self, owner_id: str, title: str, exclude_id: str | None = None) -> list[Signal]:
        """Exact case-insensitive title matches, most recent first."""
        key = normalize_title(title)
        if not key:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM signals
                WHERE owner_id = ? AND title_key = ? AND id != ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (owner_id, key, exclude_id or ""),
            ).fetchall()
        return [self._row_to_signal(r) for r in rows]

    def find_by_url(self, owner_id: str, url: str, exclude_id: str | None = None) -> list[Signal]:
        """Matches on the normalized URL, most recent first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM signals
                WHERE owner_id = ? AND url_key = ? AND id != ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (owner_id, normalize(url), exclude_id or ""),
            ).fetchall()
        return [self._row_to_signal(r) for r in rows]

    def update_signal(self, signal: Signal, expected_revision: int) -> bool:
        """Compare-and-swap update; False if another writer got there first."""
        signal.updated_at = _now_iso()
        with self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE signals SET
                    url = ?, url_key = ?, score = ?, summary = ?, entities = ?,
                    tags = ?, mention_count = ?, metadata = ?, updated_at = ?,
                    revision = revision + 1
                WHERE id = ? AND owner_id = ? AND revision = ?
                """,
                (
                    signal.url,
                    normalize(signal.url),
                    signal.score,
                    signal.summary,
                    json.dumps(signal.entities),
                    json.dumps(signal.tags),
                    signal.mention_count,
                    json.dumps(signal.metadata),
                    signal.updated_at,
                    signal.id,
                    signal.owner_id,
                    expected_revision,
                ),
            )
            updated = cur.rowcount == 1
        if updated:
            signal.revision = expected_revision + 1
        return updated

    def mark_embedded(self, signal_id: str, model: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE signals SET has_embedding = 1, embedding_model = ? WHERE id = ?",
                (model, signal_id),
            )

    def delete_signal(self, owner_id: str, signal_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM signals WHERE id = ? AND owner_id = ?", (signal_id, owner_id)
            )

    def count_signals(self, owner_id: str, merged_only: bool = False) -> int:
        query = "SELECT COUNT(*) FROM signals WHERE owner_id = ?"
        if merged_only:
            query += " AND mention_count > 1"
        with self._connect() as conn:
            return int(conn.execute(query, (owner_id,)).fetchone()[0])
