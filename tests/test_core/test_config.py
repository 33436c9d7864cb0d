"""Tests for environment-driven settings."""

from pathlib import Path

from history_alchemy.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.max_history_items == 500
    assert settings.fetch_timeout == 5.0
    assert settings.similarity_threshold == 0.85


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("HISTORY_ALCHEMY_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HISTORY_ALCHEMY_MAX_HISTORY_ITEMS", "42")
    monkeypatch.setenv("HISTORY_ALCHEMY_RENDER_TIMEOUT", "12.5")
    monkeypatch.delenv("HISTORY_ALCHEMY_DB_PATH", raising=False)

    settings = Settings.from_env()
    assert settings.db_path == Path(tmp_path) / "alchemy.db"
    assert settings.max_history_items == 42
    assert settings.render_timeout == 12.5


def test_from_env_ignores_bad_numbers(monkeypatch):
    monkeypatch.setenv("HISTORY_ALCHEMY_MAX_HISTORY_ITEMS", "lots")
    monkeypatch.setenv("HISTORY_ALCHEMY_FETCH_TIMEOUT", "")
    settings = Settings.from_env()
    assert settings.max_history_items == 500
    assert settings.fetch_timeout == 5.0


def test_llm_settings_from_env(monkeypatch):
    monkeypatch.setenv("DEFAULT_LLM_MODEL", "claude-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-secret")
    settings = Settings.from_env()
    assert settings.llm_model == "claude-test"
    assert settings.anthropic_api_key == "sk-secret"
    assert "sk-secret" not in repr(settings)
