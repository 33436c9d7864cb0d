"""Mine all configured browser sources for one owner."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Sequence

from history_alchemy.browser.models import BrowserSource, HistoryEntry, MiningResult, SourceResult
from history_alchemy.browser.reader import DEFAULT_BLACKLIST, HistoryExtractor
from history_alchemy.config import Settings
from history_alchemy.exceptions import HistoryAlchemyError
from history_alchemy.models import SYNC_FULL
from history_alchemy.store import SignalStore

logger = logging.getLogger(__name__)


def _iso_to_ms(value: str | None) -> int | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable sync start date %r", value)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _ms_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()


def dedupe_entries(entries: Sequence[HistoryEntry]) -> tuple[list[HistoryEntry], int]:
    """Keep the first entry per normalized URL; return (kept, dropped_count)."""
    unique: dict[str, HistoryEntry] = {}
    for entry in entries:
        unique.setdefault(entry.url, entry)
    return list(unique.values()), len(entries) - len(unique)


class HistoryMiner:
    """Runs the extractor over each enabled source, sequentially."""

    def __init__(self, store: SignalStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or Settings()

    def _extractor(self, owner_id: str, max_items: int) -> HistoryExtractor:
        return HistoryExtractor(
            self.store,
            owner_id,
            max_items=max_items,
            checkpoint_skew_ms=self.settings.checkpoint_skew_ms,
        )

    def mine(
        self,
        owner_id: str,
        sources: Sequence[BrowserSource] | None = None,
        stop_event: threading.Event | None = None,
    ) -> MiningResult:
        """Extract new history from every enabled source.

        A failing source is logged and recorded in the result; the others
        still run. ``stop_event`` is checked before each source.
        """
        alchemy = self.store.get_settings(owner_id)
        if sources is None:
            sources = [BrowserSource.from_dict(raw) for raw in alchemy.custom_browser_paths]

        override_ms = _iso_to_ms(alchemy.sync_start_date)
        blacklist = [*DEFAULT_BLACKLIST, *alchemy.blacklist_domains]
        max_items = alchemy.max_urls_per_sync or self.settings.max_history_items
        extractor = self._extractor(owner_id, max_items)

        result = MiningResult()
        collected: list[HistoryEntry] = []

        for source in sources:
            if not source.enabled:
                continue
            if stop_event is not None and stop_event.is_set():
                logger.info("Mining stopped before %s", source.label)
                result.stopped = True
                break

            if override_ms is not None:
                since = override_ms
            elif alchemy.sync_mode == SYNC_FULL:
                since = 0
            else:
                since = None

            try:
                source_result = extractor.extract(source, since_ms=since, blacklist=blacklist)
            except HistoryAlchemyError as e:
                logger.warning("Error mining %s (%s): %s", source.label, source.path, e)
                source_result = SourceResult(source=source, error=str(e))
            except Exception as e:
                logger.exception("Unexpected error mining %s (%s)", source.label, source.path)
                source_result = SourceResult(source=source, error=f"{type(e).__name__}: {e}")

            result.sources.append(source_result)
            collected.extend(source_result.entries)

        result.entries, result.cross_source_duplicates = dedupe_entries(collected)

        succeeded = any(r.error is None for r in result.sources)
        if succeeded and not result.stopped:
            newest = max((e.last_visit_time for e in result.entries), default=None)
            self.store.finish_sync(owner_id, _ms_to_iso(newest) if newest else None)

        logger.info(
            "Mined %d entries from %d sources (%d cross-source duplicates, %d errors)",
            len(result.entries),
            len(result.sources),
            result.cross_source_duplicates,
            len(result.errors),
        )
        return result
