"""Fixtures that build real history databases for each browser schema."""

import sqlite3
from pathlib import Path

import pytest

from history_alchemy.timestamps import from_unix_ms

# 2024-01-01T00:00:00Z
BASE_MS = 1_704_067_200_000


def make_chromium_db(path: Path, rows: list[tuple[str, str, int, int]]) -> Path:
    """rows: (url, title, visit_count, unix_ms)"""
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE urls (
            id INTEGER PRIMARY KEY,
            url TEXT,
            title TEXT,
            visit_count INTEGER,
            last_visit_time INTEGER
        )
    """)
    conn.executemany(
        "INSERT INTO urls (url, title, visit_count, last_visit_time) VALUES (?, ?, ?, ?)",
        [(u, t, c, from_unix_ms(ms, "chrome")) for u, t, c, ms in rows],
    )
    conn.commit()
    conn.close()
    return path


def make_firefox_db(path: Path, rows: list[tuple[str, str, int, int]]) -> Path:
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE moz_places (
            id INTEGER PRIMARY KEY,
            url TEXT,
            title TEXT,
            visit_count INTEGER,
            last_visit_date INTEGER
        )
    """)
    conn.executemany(
        "INSERT INTO moz_places (url, title, visit_count, last_visit_date) VALUES (?, ?, ?, ?)",
        [(u, t, c, from_unix_ms(ms, "firefox")) for u, t, c, ms in rows],
    )
    conn.commit()
    conn.close()
    return path


def make_safari_db(path: Path, rows: list[tuple[str, str, int, int]]) -> Path:
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE history_items (
            id INTEGER PRIMARY KEY,
            url TEXT,
            visit_count INTEGER
        )
    """)
    conn.execute("""
        CREATE TABLE history_visits (
            id INTEGER PRIMARY KEY,
            history_item INTEGER,
            visit_time REAL,
            title TEXT
        )
    """)
    for i, (url, title, count, ms) in enumerate(rows, start=1):
        conn.execute("INSERT INTO history_items VALUES (?, ?, ?)", (i, url, count))
        conn.execute(
            "INSERT INTO history_visits (history_item, visit_time, title) VALUES (?, ?, ?)",
            (i, from_unix_ms(ms, "safari"), title),
        )
    conn.commit()
    conn.close()
    return path


_FACTORIES = {
    "chrome": make_chromium_db,
    "firefox": make_firefox_db,
    "safari": make_safari_db,
}


@pytest.fixture
def make_history_db(tmp_path):
    """Build a history DB for a browser: make_history_db(browser, rows, name)."""
    def build(browser, rows, name="History"):
        return _FACTORIES[browser](tmp_path / name, rows)
    return build


@pytest.fixture
def sample_rows():
    return [
        ("https://example.com/articles/one?utm_source=feed", "One", 3, BASE_MS + 1_000),
        ("https://example.com/articles/two", "Two", 1, BASE_MS + 2_000),
        ("https://example.com/login", "Login", 5, BASE_MS + 3_000),
        ("https://www.facebook.com/some/page", "FB", 2, BASE_MS + 4_000),
        ("https://example.com/articles/one/", "One again", 1, BASE_MS + 5_000),
        ("chrome://settings", "Settings", 1, BASE_MS + 6_000),
    ]
