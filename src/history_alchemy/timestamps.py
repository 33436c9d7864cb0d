"""Conversions between browser-native visit times and unix milliseconds.

Chromium and Firefox timestamps are integer microseconds and are converted
with integer arithmetic only; going through float would lose precision at
the magnitudes involved and corrupt checkpoint comparisons. Safari stores
float seconds natively, so float math is fine there.
"""

from __future__ import annotations

import time

# Microseconds from 1601-01-01 to 1970-01-01 (Chromium/WebKit epoch).
CHROMIUM_EPOCH_OFFSET_US = 11_644_473_600_000_000
# Seconds from 1970-01-01 to 2001-01-01 (Core Foundation epoch).
SAFARI_EPOCH_OFFSET_S = 978_307_200

CHROMIUM = "chromium"
FIREFOX = "firefox"
SAFARI = "safari"

def browser_family(browser: str) -> str:
    """Map a browser name to the time base / schema family it uses."""
    name = (browser or "").strip().lower()
    if name == FIREFOX:
        return FIREFOX
    if name == SAFARI:
        return SAFARI
    return CHROMIUM


def now_ms() -> int:
    return time.time_ns() // 1_000_000


def to_unix_ms(raw: int | float | None, browser: str) -> int:
    """Decode a browser-native timestamp. Missing or zero values map to now."""
    if not raw:
        return now_ms()

    family = browser_family(browser)
    if family == SAFARI:
        return int(round((float(raw) + SAFARI_EPOCH_OFFSET_S) * 1000))
    if family == FIREFOX:
        return int(raw) // 1000
    return (int(raw) - CHROMIUM_EPOCH_OFFSET_US) // 1000


def from_unix_ms(unix_ms: int | None, browser: str) -> int | float:
    """Encode unix milliseconds as a browser-native timestamp. Zero stays zero."""
    if not unix_ms:
        return 0

    family = browser_family(browser)
    if family == SAFARI:
        return int(unix_ms) / 1000 - SAFARI_EPOCH_OFFSET_S
    if family == FIREFOX:
        return int(unix_ms) * 1000
    return int(unix_ms) * 1000 + CHROMIUM_EPOCH_OFFSET_US


def native_after(unix_ms: int | None, browser: str) -> int | float:
    """Native threshold T such that ``raw > T`` selects rows decoding to more than ``unix_ms``.

    Decoding truncates (or, for Safari, rounds) sub-millisecond precision, so
    the plain encoding of a checkpoint would re-select rows from the same
    millisecond on every run.
    """
    if not unix_ms:
        return 0

    family = browser_family(browser)
    if family == SAFARI:
        return (int(unix_ms) + 0.5) / 1000 - SAFARI_EPOCH_OFFSET_S
    return from_unix_ms(int(unix_ms) + 1, browser) - 1
