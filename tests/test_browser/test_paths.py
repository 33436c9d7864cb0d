"""Tests for default history path detection."""

from history_alchemy.browser.models import BrowserSource
from history_alchemy.browser.paths import (
    default_paths,
    detect_all,
    detect_sources,
    find_firefox_history,
    validate_history_db,
)


def test_default_paths_darwin(tmp_path):
    paths = default_paths("darwin", tmp_path)
    assert paths["safari"] == [tmp_path / "Library" / "Safari" / "History.db"]
    assert paths["chrome"][0].name == "History"


def test_default_paths_linux_has_no_safari(tmp_path):
    assert default_paths("linux", tmp_path)["safari"] == []


def test_find_firefox_history(tmp_path):
    profiles = tmp_path / "Profiles"
    (profiles / "abc123.other").mkdir(parents=True)
    default = profiles / "xyz789.default-release"
    default.mkdir()
    (default / "places.sqlite").write_bytes(b"")

    assert find_firefox_history(profiles) == default / "places.sqlite"
    assert find_firefox_history(tmp_path / "nope") is None


def test_validate_history_db(make_history_db, tmp_path):
    good = make_history_db("safari", [], name="History.db")
    assert validate_history_db(good) == (True, None)

    junk = tmp_path / "junk.db"
    junk.write_text("definitely not sqlite " * 100)
    valid, error = validate_history_db(junk)
    assert valid is False
    assert error

    valid, error = validate_history_db(tmp_path / "missing.db")
    assert valid is False


def test_detect_sources_linux(make_history_db, tmp_path):
    home = tmp_path / "home"
    chrome_dir = home / ".config" / "google-chrome" / "Default"
    chrome_dir.mkdir(parents=True)
    db = make_history_db("chrome", [])
    db.rename(chrome_dir / "History")

    detected = detect_all("linux", home)
    assert detected["chrome"].found is True
    assert detected["chrome"].valid is True
    assert detected["edge"].found is False

    sources = detect_sources("linux", home)
    assert sources == [
        BrowserSource(path=str(chrome_dir / "History"), browser="chrome", label="Chrome"),
    ]
