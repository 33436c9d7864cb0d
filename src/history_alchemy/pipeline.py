"""Analysis batch: extract, classify, store and deduplicate mined entries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Sequence

from history_alchemy.browser.models import HistoryEntry
from history_alchemy.config import Settings
from history_alchemy.dedup import DeduplicationEngine
from history_alchemy.exceptions import EmbeddingError, HistoryAlchemyError
from history_alchemy.llm.classifier import AnalysisVerdict, SignalClassifier
from history_alchemy.llm.client import LLMClient
from history_alchemy.models import Signal
from history_alchemy.result import ErrorKind
from history_alchemy.store import SignalStore
from history_alchemy.urls import normalize
from history_alchemy.vectorstore.chroma import ChromaVectorStore
from history_alchemy.web.cleaner import is_gated_content, sanitize_llm_tokens
from history_alchemy.web.router import ContentRouter

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 8000
MIN_USABLE_CHARS = 100
GATED_SCORE_CAP = 10
GATED_SUMMARY = "Content is behind a login or subscription wall."


@dataclass
class BatchStats:
    total: int = 0
    signals: int = 0
    merged: int = 0
    skipped: int = 0
    errors: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class PreparedEntry:
    """An entry with the text that will be sent to the classifier."""

    entry: HistoryEntry
    prompt_text: str
    final_url: str
    extracted: bool = False
    gated: bool = False


def build_prompt_text(title: str, url: str, content: str | None, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """Classifier input; falls back to a title-only placeholder."""
    if content is None:
        return f"Page Title: {title}. URL: {url} (Extraction failed)"
    if len(content) <= MIN_USABLE_CHARS:
        return f"Page Title: {title} (Content unavailable or too short)"
    if len(content) > max_chars:
        content = content[:max_chars] + "..."
    return f"Page Title: {title}\nContent: {content}"


class AlchemistPipeline:
    """Turns mined history entries into stored, deduplicated signals.

    Extraction runs concurrently (bounded by ``concurrency``); classification
    and merging run one entry at a time. A failure in one entry is counted
    and never aborts the batch.
    """

    def __init__(
        self,
        router,
        classifier,
        store,
        deduplicator,
        embedder=None,
        vector_store=None,
        concurrency: int = 4,
        max_content_chars: int = MAX_CONTENT_CHARS,
    ):
        self.router = router
        self.classifier = classifier
        self.store = store
        self.deduplicator = deduplicator
        self.embedder = embedder
        self.vector_store = vector_store
        self.concurrency = max(1, concurrency)
        self.max_content_chars = max_content_chars

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        store: SignalStore | None = None,
        embedder=None,
        vector_store=None,
    ) -> AlchemistPipeline:
        """Wire the default collaborators from :class:`Settings`.

        The semantic strategy is enabled only when an ``embedder`` is given;
        the Chroma store under ``settings.chroma_dir`` is used unless another
        ``vector_store`` is passed.
        """
        settings = settings or Settings.from_env()
        store = store or SignalStore(settings.db_path)
        router = ContentRouter(
            min_length=settings.min_content_length,
            fetch_timeout=settings.fetch_timeout,
            render_timeout=settings.render_timeout,
        )
        classifier = SignalClassifier(
            LLMClient(
                api_key=settings.anthropic_api_key,
                model=settings.llm_model,
                timeout=settings.llm_timeout,
            )
        )
        if embedder is not None and vector_store is None:
            vector_store = ChromaVectorStore(settings.chroma_dir)
        deduplicator = DeduplicationEngine(
            store,
            vector_store=vector_store,
            summarizer=classifier,
            threshold=settings.similarity_threshold,
            lookup_timeout=settings.lookup_timeout,
        )
        return cls(
            router=router,
            classifier=classifier,
            store=store,
            deduplicator=deduplicator,
            embedder=embedder,
            vector_store=vector_store,
            concurrency=settings.extraction_concurrency,
            max_content_chars=settings.max_content_chars,
        )

    @staticmethod
    def _placeholder(entry: HistoryEntry) -> PreparedEntry:
        text = build_prompt_text(entry.title, entry.url, None)
        return PreparedEntry(entry=entry, prompt_text=text, final_url=entry.url)

    async def _prepare(self, entry: HistoryEntry, semaphore: asyncio.Semaphore) -> PreparedEntry:
        async with semaphore:
            try:
                result = await self.router.extract(entry.url)
            except HistoryAlchemyError as e:
                logger.warning("Extraction failed for %s: %s", entry.url, e)
                return self._placeholder(entry)
            except Exception:
                logger.exception("Unexpected extraction error for %s", entry.url)
                return self._placeholder(entry)

        if is_gated_content(result.content):
            logger.info("Gated content at %s", result.final_url)
            text = build_prompt_text(entry.title, result.final_url, "")
            return PreparedEntry(
                entry=entry, prompt_text=text, final_url=result.final_url,
                extracted=True, gated=True,
            )

        text = build_prompt_text(entry.title, result.final_url, result.content, self.max_content_chars)
        return PreparedEntry(
            entry=entry, prompt_text=text,
            final_url=result.final_url, extracted=True,
        )

    def _classify(self, item: PreparedEntry) -> AnalysisVerdict | None:
        result = self.classifier.analyze(sanitize_llm_tokens(item.prompt_text), item.final_url)
        if not result.ok:
            if result.kind == ErrorKind.CLASSIFIER_UNAVAILABLE:
                return None
            verdict = AnalysisVerdict.default()
        else:
            verdict = result.value

        if item.gated:
            verdict.score = min(verdict.score, GATED_SCORE_CAP)
            verdict.summary = GATED_SUMMARY
            verdict.relevant = False
        return verdict

    def _embed(self, signal: Signal) -> list[float] | None:
        if self.embedder is None:
            return None
        try:
            return self.embedder.embed_signal(signal.title, signal.summary, signal.tags)
        except EmbeddingError as e:
            logger.warning("Embedding failed for %s: %s", signal.url, e)
            return None

    def _store_vector(self, signal: Signal, vector: list[float]) -> None:
        if self.vector_store is None:
            return
        try:
            self.vector_store.upsert(
                signal.id,
                vector,
                {
                    "owner_id": signal.owner_id,
                    "title": signal.title,
                    "url": signal.url,
                    "category": signal.category,
                },
            )
            self.store.mark_embedded(signal.id, self.embedder.model)
        except HistoryAlchemyError as e:
            logger.warning("Could not store embedding for %s: %s", signal.id, e)

    def analyze_entry(self, owner_id: str, item: PreparedEntry, stats: BatchStats) -> Signal | None:
        """Classify one prepared entry and persist it if relevant."""
        entry = item.entry
        verdict = self._classify(item)
        if verdict is None:
            stats.errors += 1
            return None
        if not verdict.relevant:
            logger.debug("Skipped (%s): %s", verdict.score, entry.title)
            stats.skipped += 1
            return None

        source_urls = [entry.url]
        if normalize(item.final_url) != entry.url:
            source_urls.append(item.final_url)
        signal = Signal(
            owner_id=owner_id,
            url=item.final_url,
            title=entry.title,
            score=verdict.score,
            summary=verdict.summary,
            category=verdict.category,
            entities=list(verdict.entities),
            tags=list(verdict.tags),
            content=item.prompt_text,
            metadata={"source_urls": source_urls, "browser": entry.browser},
        )
        self.store.insert_signal(signal)

        vector = self._embed(signal)
        dedup = self.deduplicator.check_and_merge_duplicate(signal, vector)
        if dedup.is_duplicate:
            stats.merged += 1
            return None

        if vector is not None:
            self._store_vector(signal, vector)
        logger.info("Signal found: %s (%s)", signal.title, signal.score)
        stats.signals += 1
        return signal

    async def process(self, owner_id: str, entries: Sequence[HistoryEntry]) -> BatchStats:
        """Run a batch. Always returns aggregate counts."""
        stats = BatchStats(total=len(entries))
        if not entries:
            return stats

        semaphore = asyncio.Semaphore(self.concurrency)
        prepared = await asyncio.gather(*(self._prepare(e, semaphore) for e in entries))

        for item in prepared:
            try:
                await asyncio.to_thread(self.analyze_entry, owner_id, item, stats)
            except HistoryAlchemyError as e:
                logger.error("Analysis failed for %s: %s", item.entry.url, e)
                stats.errors += 1
            except Exception:
                logger.exception("Unexpected analysis error for %s", item.entry.url)
                stats.errors += 1

        logger.info(
            "Batch completed: %d signals, %d merged, %d skipped, %d errors",
            stats.signals, stats.merged, stats.skipped, stats.errors,
        )
        return stats

    def process_sync(self, owner_id: str, entries: Sequence[HistoryEntry]) -> BatchStats:
        return asyncio.run(self.process(owner_id, entries))
