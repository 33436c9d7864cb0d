"""Discover default history database locations per platform."""

from __future__ import annotations

import logging
import os
import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path

from history_alchemy.browser.models import BrowserSource
from history_alchemy.browser.reader import snapshot
from history_alchemy.exceptions import SourceUnavailableError

logger = logging.getLogger(__name__)

_HISTORY_TABLES = {"urls", "moz_places", "history_items"}


@dataclass
class DetectedPath:
    browser: str
    path: str
    found: bool
    valid: bool = False
    error: str | None = None


def default_paths(platform: str | None = None, home: Path | None = None) -> dict[str, list[Path]]:
    """Candidate history files (or Firefox profile roots) for each browser."""
    platform = platform or sys.platform
    home = home or Path.home()

    if platform == "darwin":
        support = home / "Library" / "Application Support"
        return {
            "chrome": [
                support / "Google" / "Chrome" / "Default" / "History",
                support / "Google" / "Chrome" / "Profile 1" / "History",
            ],
            "firefox": [support / "Firefox" / "Profiles"],
            "safari": [home / "Library" / "Safari" / "History.db"],
            "edge": [support / "Microsoft Edge" / "Default" / "History"],
            "brave": [support / "BraveSoftware" / "Brave-Browser" / "Default" / "History"],
            "arc": [support / "Arc" / "User Data" / "Default" / "History"],
        }
    if platform.startswith("win"):
        app_data = Path(os.environ.get("APPDATA", ""))
        local = Path(os.environ.get("LOCALAPPDATA", ""))
        return {
            "chrome": [local / "Google" / "Chrome" / "User Data" / "Default" / "History"],
            "firefox": [app_data / "Mozilla" / "Firefox" / "Profiles"],
            "safari": [],
            "edge": [local / "Microsoft" / "Edge" / "User Data" / "Default" / "History"],
            "brave": [local / "BraveSoftware" / "Brave-Browser" / "User Data" / "Default" / "History"],
            "arc": [],
        }
    return {
        "chrome": [home / ".config" / "google-chrome" / "Default" / "History"],
        "firefox": [home / ".mozilla" / "firefox"],
        "safari": [],
        "edge": [home / ".config" / "microsoft-edge" / "Default" / "History"],
        "brave": [home / ".config" / "BraveSoftware" / "Brave-Browser" / "Default" / "History"],
        "arc": [],
    }


def find_firefox_history(profiles_dir: Path) -> Path | None:
    """Firefox profiles have random names; pick the default one with a places.sqlite."""
    if not profiles_dir.is_dir():
        return None
    for profile in sorted(profiles_dir.iterdir()):
        if not profile.is_dir():
            continue
        if profile.name.endswith(".default") or "default-release" in profile.name:
            places = profile / "places.sqlite"
            if places.is_file():
                return places
    return None


def validate_history_db(path: Path) -> tuple[bool, str | None]:
    """Check that a file is a SQLite DB with a known history table, via a temp copy."""
    try:
        with snapshot(path) as db_copy:
            conn = sqlite3.connect(str(db_copy))
            try:
                tables = {
                    row[0]
                    for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
                }
            finally:
                conn.close()
    except SourceUnavailableError as e:
        return False, str(e)
    except sqlite3.DatabaseError as e:
        return False, f"Invalid SQLite database: {e}"

    if not tables & _HISTORY_TABLES:
        return False, "Not a browser history database"
    return True, None


def detect_all(platform: str | None = None, home: Path | None = None) -> dict[str, DetectedPath]:
    results: dict[str, DetectedPath] = {}
    for browser, candidates in default_paths(platform, home).items():
        found: Path | None = None
        if browser == "firefox":
            found = find_firefox_history(candidates[0]) if candidates else None
        else:
            found = next((p for p in candidates if p.is_file()), None)

        if found is None:
            results[browser] = DetectedPath(browser=browser, path="", found=False)
            continue

        valid, error = validate_history_db(found)
        if not valid:
            logger.info("Ignoring %s history at %s: %s", browser, found, error)
        results[browser] = DetectedPath(
            browser=browser, path=str(found), found=True, valid=valid, error=error
        )
    return results


def detect_sources(platform: str | None = None, home: Path | None = None) -> list[BrowserSource]:
    """Valid detected databases as enabled BrowserSources."""
    return [
        BrowserSource(path=d.path, browser=d.browser, label=d.browser.title(), enabled=True)
        for d in detect_all(platform, home).values()
        if d.found and d.valid
    ]
