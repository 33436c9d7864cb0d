"""Browser history mining (Chromium family, Firefox, Safari)."""

from history_alchemy.browser.miner import HistoryMiner
from history_alchemy.browser.models import BrowserSource, HistoryEntry, MiningResult
from history_alchemy.browser.paths import detect_all, detect_sources
from history_alchemy.browser.reader import HistoryExtractor, filter_rows

__all__ = [
    "HistoryMiner",
    "HistoryExtractor",
    "filter_rows",
    "BrowserSource",
    "HistoryEntry",
    "MiningResult",
    "detect_all",
    "detect_sources",
]
