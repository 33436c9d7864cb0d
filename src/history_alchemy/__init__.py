"""history-alchemy: mine browser history into deduplicated, scored signals."""

from history_alchemy.browser import BrowserSource, HistoryEntry, HistoryExtractor, HistoryMiner, MiningResult
from history_alchemy.config import Settings
from history_alchemy.dedup import DeduplicationEngine, DedupResult
from history_alchemy.exceptions import HistoryAlchemyError
from history_alchemy.models import AlchemySettings, Signal
from history_alchemy.pipeline import AlchemistPipeline, BatchStats
from history_alchemy.result import Err, ErrorKind, Ok
from history_alchemy.store import SignalStore

__version__ = "0.1.0"

__all__ = [
    "AlchemistPipeline",
    "AlchemySettings",
    "BatchStats",
    "BrowserSource",
    "DedupResult",
    "DeduplicationEngine",
    "Err",
    "ErrorKind",
    "HistoryAlchemyError",
    "HistoryEntry",
    "HistoryExtractor",
    "HistoryMiner",
    "MiningResult",
    "Ok",
    "Settings",
    "Signal",
    "SignalStore",
]
