"""Tests for the SQLite signal store."""

import pytest

from history_alchemy.exceptions import StoreError
from history_alchemy.models import AlchemySettings, SYNC_FULL
from history_alchemy.store import SignalStore


def test_settings_default_when_missing(store):
    settings = store.get_settings("nobody")
    assert settings.owner_id == "nobody"
    assert settings.sync_mode == "incremental"
    assert settings.max_urls_per_sync == 50


def test_settings_round_trip_and_upsert(store):
    store.save_settings(AlchemySettings(
        owner_id="o", blacklist_domains=["a.com"], sync_mode=SYNC_FULL,
        custom_browser_paths=[{"path": "/tmp/History", "browser": "chrome"}],
    ))
    store.save_settings(AlchemySettings(owner_id="o", blacklist_domains=["b.com"]))

    settings = store.get_settings("o")
    assert settings.blacklist_domains == ["b.com"]
    assert settings.sync_mode == "incremental"
    assert settings.custom_browser_paths == []


def test_finish_sync_clears_start_date(store):
    store.save_settings(AlchemySettings(owner_id="o", sync_start_date="2024-01-01T00:00:00Z"))
    store.finish_sync("o", "2024-02-01T00:00:00+00:00")
    settings = store.get_settings("o")
    assert settings.sync_start_date is None
    assert settings.last_sync_checkpoint == "2024-02-01T00:00:00+00:00"

    store.finish_sync("o", None)
    assert store.get_settings("o").last_sync_checkpoint == "2024-02-01T00:00:00+00:00"


def test_finish_sync_creates_settings_row(store):
    store.finish_sync("new-owner", "2024-02-01T00:00:00+00:00")
    assert store.get_settings("new-owner").last_sync_checkpoint == "2024-02-01T00:00:00+00:00"


def test_checkpoint_upsert_per_owner_and_source(store):
    assert store.get_checkpoint("o", "/a") is None
    store.save_checkpoint("o", "/a", 100)
    store.save_checkpoint("o", "/a", 200)
    store.save_checkpoint("other", "/a", 5)
    assert store.get_checkpoint("o", "/a") == 200
    assert store.get_checkpoint("other", "/a") == 5


def test_insert_and_get_signal(store, make_signal):
    signal = make_signal(metadata={"source_urls": ["https://example.com/x"]})
    store.insert_signal(signal)

    loaded = store.get_signal("owner-1", signal.id)
    assert loaded.title == "Some Article"
    assert loaded.entities == ["Python"]
    assert loaded.source_urls == ["https://example.com/x"]
    assert loaded.revision == 0
    assert store.get_signal("someone-else", signal.id) is None


def test_find_by_title_normalizes_and_excludes_self(store, make_signal):
    older = make_signal(title="Rust  in   Production")
    newer = make_signal(title="rust in production")
    store.insert_signal(older)
    store.insert_signal(newer)

    matches = store.find_by_title("owner-1", "RUST IN PRODUCTION", exclude_id=newer.id)
    assert [m.id for m in matches] == [older.id]

    both = store.find_by_title("owner-1", "Rust in production")
    assert [m.id for m in both] == [newer.id, older.id]
    assert store.find_by_title("owner-2", "Rust in production") == []


def test_find_by_url_uses_normalized_key(store, make_signal):
    signal = make_signal(url="https://example.com/story?utm_source=x")
    store.insert_signal(signal)
    assert [s.id for s in store.find_by_url("owner-1", "https://EXAMPLE.com/story/#c")] == [signal.id]
    assert store.find_by_url("owner-1", "https://example.com/story", exclude_id=signal.id) == []


def test_update_signal_compare_and_swap(store, make_signal):
    signal = make_signal()
    store.insert_signal(signal)

    first = store.get_signal("owner-1", signal.id)
    second = store.get_signal("owner-1", signal.id)

    first.mention_count = 2
    assert store.update_signal(first, expected_revision=0) is True
    assert first.revision == 1

    second.mention_count = 5
    assert store.update_signal(second, expected_revision=0) is False
    assert store.get_signal("owner-1", signal.id).mention_count == 2


def test_mark_embedded_delete_and_counts(store, make_signal):
    a, b = make_signal(), make_signal(mention_count=3)
    store.insert_signal(a)
    store.insert_signal(b)

    store.mark_embedded(a.id, "nomic-embed-text")
    loaded = store.get_signal("owner-1", a.id)
    assert loaded.has_embedding is True
    assert loaded.embedding_model == "nomic-embed-text"

    assert store.count_signals("owner-1") == 2
    assert store.count_signals("owner-1", merged_only=True) == 1
    store.delete_signal("owner-1", a.id)
    assert store.count_signals("owner-1") == 1


def test_duplicate_id_raises_store_error(store, make_signal):
    signal = make_signal()
    store.insert_signal(signal)
    with pytest.raises(StoreError):
        store.insert_signal(signal)


def test_store_creates_parent_directory(tmp_path):
    SignalStore(tmp_path / "deep" / "nested" / "alchemy.db")
    assert (tmp_path / "deep" / "nested" / "alchemy.db").exists()
