"""Duplicate detection and merge for analyzed signals.

Three strategies run in order and stop at the first match:

1. semantic   nearest neighbour above the similarity threshold
2. title      exact title after whitespace/case normalization (0.95)
3. url        exact normalized URL (1.0)

A lookup that fails or times out counts as "no match" for its strategy.
On a match the candidate is folded into the older record and the
candidate's own row is deleted.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from datetime import datetime, timezone

from history_alchemy.exceptions import HistoryAlchemyError, MergeConflictError, StoreError
from history_alchemy.models import Signal, is_placeholder_title
from history_alchemy.result import Err, ErrorKind, Ok, Result
from history_alchemy.urls import looks_like_redirect

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.85
TITLE_MATCH_SIMILARITY = 0.95
URL_MATCH_SIMILARITY = 1.0
SEMANTIC_TOP_K = 5
MAX_MERGE_ATTEMPTS = 3
MAX_MENTION_BOOST = 20

STRATEGY_SEMANTIC = "semantic"
STRATEGY_TITLE = "title"
STRATEGY_URL = "url"


@dataclass
class DedupResult:
    is_duplicate: bool
    merged_id: str | None = None
    similarity_score: float | None = None
    strategy: str | None = None


def union(*groups: list[str]) -> list[str]:
    """Order-preserving set union."""
    seen: dict[str, None] = {}
    for group in groups:
        for item in group or []:
            if item not in seen:
                seen[item] = None
    return list(seen)


def merged_score(existing: float, candidate: float, mention_count: int) -> float:
    """Higher of the two scores plus a capped boost for repeat mentions."""
    boost = min(mention_count * 2, MAX_MENTION_BOOST)
    return min(max(existing, candidate) + boost, 100)


def longer_summary(a: str, b: str) -> str:
    return a if len(a or "") >= len(b or "") else b


class DeduplicationEngine:
    """Finds an existing record for a candidate signal and merges into it.

    Args:
        store: A :class:`~history_alchemy.store.SignalStore`.
        vector_store: Optional :class:`~history_alchemy.vectorstore.BaseVectorStore`;
            without it the semantic strategy is skipped.
        summarizer: Optional object with ``merge_summaries(a, b) -> Result[str]``;
            without it the longer summary wins.
        threshold: Minimum similarity for a semantic match.
        lookup_timeout: Seconds allowed for each lookup.
    """

    def __init__(
        self,
        store,
        vector_store=None,
        summarizer=None,
        threshold: float = SIMILARITY_THRESHOLD,
        lookup_timeout: float = 10.0,
    ):
        self.store = store
        self.vector_store = vector_store
        self.summarizer = summarizer
        self.threshold = threshold
        self.lookup_timeout = lookup_timeout
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="dedup-lookup")
        self._owner_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def _owner_lock(self, owner_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._owner_locks.setdefault(owner_id, threading.Lock())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _bounded(self, strategy: str, fn, *args) -> Result:
        future = self._executor.submit(fn, *args)
        try:
            return Ok(future.result(timeout=self.lookup_timeout))
        except FutureTimeout:
            future.cancel()
            return Err(ErrorKind.TIMEOUT, f"{strategy} lookup timed out")
        except HistoryAlchemyError as e:
            return Err(ErrorKind.LOOKUP_FAILURE, str(e))

    def _semantic_match(self, candidate: Signal, embedding: list[float]) -> tuple[Signal, float] | None:
        results = self.vector_store.query(
            embedding, top_k=SEMANTIC_TOP_K, filters={"owner_id": candidate.owner_id}
        )
        for hit in sorted(results, key=lambda r: r.score, reverse=True):
            if hit.doc_id == candidate.id or hit.score < self.threshold:
                continue
            target = self.store.get_signal(candidate.owner_id, hit.doc_id)
            if target is not None:
                return target, hit.score
        return None

    def _title_match(self, candidate: Signal) -> tuple[Signal, float] | None:
        if is_placeholder_title(candidate.title):
            return None
        matches = self.store.find_by_title(candidate.owner_id, candidate.title, candidate.id)
        return (matches[0], TITLE_MATCH_SIMILARITY) if matches else None

    def _url_match(self, candidate: Signal) -> tuple[Signal, float] | None:
        matches = self.store.find_by_url(candidate.owner_id, candidate.url, candidate.id)
        return (matches[0], URL_MATCH_SIMILARITY) if matches else None

    def find_duplicate(
        self, candidate: Signal, embedding: list[float] | None = None
    ) -> tuple[Signal, float, str] | None:
        """Return ``(target, similarity, strategy)`` for the first strategy that matches."""
        strategies = []
        if embedding is not None and self.vector_store is not None:
            strategies.append((STRATEGY_SEMANTIC, self._semantic_match, (candidate, embedding)))
        strategies.append((STRATEGY_TITLE, self._title_match, (candidate,)))
        strategies.append((STRATEGY_URL, self._url_match, (candidate,)))

        for name, fn, args in strategies:
            result = self._bounded(name, fn, *args)
            if not result.ok:
                logger.warning(
                    "Duplicate lookup '%s' failed for %s (%s): %s",
                    name, candidate.id, result.kind.value, result.message,
                )
                continue
            if result.value is not None:
                target, similarity = result.value
                return target, similarity, name
        return None

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def _summary_for(self, existing: Signal, candidate: Signal) -> str:
        if self.summarizer is None or not existing.summary or not candidate.summary:
            return longer_summary(existing.summary, candidate.summary)
        if existing.summary == candidate.summary:
            return existing.summary
        result = self.summarizer.merge_summaries(existing.summary, candidate.summary)
        if not result.ok:
            logger.info("Summary merge unavailable (%s), keeping longer summary", result.kind.value)
        return result.unwrap_or(longer_summary(existing.summary, candidate.summary))

    def _apply(self, existing: Signal, candidate: Signal, summary: str) -> Signal:
        mention_count = existing.mention_count + 1
        metadata = dict(existing.metadata)
        metadata["source_urls"] = union(existing.source_urls, candidate.source_urls)
        metadata["duplicate_count"] = mention_count - 1
        metadata["last_seen"] = datetime.now(timezone.utc).isoformat()
        metadata["merged_ids"] = union(existing.metadata.get("merged_ids", []), [candidate.id])

        url = existing.url
        if looks_like_redirect(existing.url) and not looks_like_redirect(candidate.url):
            url = candidate.url

        existing.url = url
        existing.mention_count = mention_count
        existing.score = merged_score(existing.score, candidate.score, mention_count)
        existing.summary = summary
        existing.entities = union(existing.entities, candidate.entities)
        existing.tags = union(existing.tags, candidate.tags)
        existing.metadata = metadata
        return existing

    def merge_signals(self, target_id: str, candidate: Signal) -> Signal:
        """Fold ``candidate`` into the stored record ``target_id``.

        Serialized per owner and written with a revision check, retried on
        conflict. A candidate already merged into the target is not counted
        twice.

        Raises:
            StoreError: the target does not exist or the write failed.
            MergeConflictError: the revision kept moving under us.
        """
        with self._owner_lock(candidate.owner_id):
            for attempt in range(MAX_MERGE_ATTEMPTS):
                existing = self.store.get_signal(candidate.owner_id, target_id)
                if existing is None:
                    raise StoreError(f"Merge target {target_id} not found")
                if candidate.id in existing.metadata.get("merged_ids", []):
                    logger.info("Signal %s already merged into %s", candidate.id, target_id)
                    return existing

                revision = existing.revision
                summary = self._summary_for(existing, candidate)
                merged = self._apply(existing, candidate, summary)
                if self.store.update_signal(merged, expected_revision=revision):
                    logger.info(
                        "Merged %s into %s (mentions=%d, score=%s)",
                        candidate.id, target_id, merged.mention_count, merged.score,
                    )
                    return merged
                logger.warning(
                    "Revision conflict merging into %s (attempt %d)", target_id, attempt + 1
                )

        raise MergeConflictError(
            f"Could not merge {candidate.id} into {target_id} after {MAX_MERGE_ATTEMPTS} attempts"
        )

    def _discard(self, candidate: Signal) -> None:
        try:
            self.store.delete_signal(candidate.owner_id, candidate.id)
            if candidate.has_embedding and self.vector_store is not None:
                self.vector_store.delete(candidate.id)
        except HistoryAlchemyError as e:
            logger.error("Failed to discard duplicate %s: %s", candidate.id, e)

    def check_and_merge_duplicate(
        self, candidate: Signal, embedding: list[float] | None = None
    ) -> DedupResult:
        """Merge ``candidate`` into an existing record if one matches.

        The candidate is discarded on a match even when the merge write
        fails, so a duplicate never stays visible.
        """
        match = self.find_duplicate(candidate, embedding)
        if match is None:
            return DedupResult(is_duplicate=False)

        target, similarity, strategy = match
        logger.info(
            "Duplicate of %s found via %s (similarity=%.2f)", target.id, strategy, similarity
        )
        try:
            self.merge_signals(target.id, candidate)
        except (StoreError, MergeConflictError) as e:
            logger.error("Merge into %s failed: %s", target.id, e)
        self._discard(candidate)

        return DedupResult(
            is_duplicate=True,
            merged_id=target.id,
            similarity_score=similarity,
            strategy=strategy,
        )

    def get_stats(self, owner_id: str) -> dict:
        try:
            total = self.store.count_signals(owner_id)
            merged = self.store.count_signals(owner_id, merged_only=True)
        except StoreError as e:
            logger.error("Failed to get dedup stats for %s: %s", owner_id, e)
            return {"total_signals": 0, "merged_signals": 0, "deduplication_rate": 0.0}
        return {
            "total_signals": total,
            "merged_signals": merged,
            "deduplication_rate": merged / total if total else 0.0,
        }
