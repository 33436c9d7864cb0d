"""Tests for exception hierarchy and result values."""

import pytest

from history_alchemy.exceptions import (
    HistoryAlchemyError,
    BrowserError,
    SourceUnavailableError,
    SchemaMismatchError,
    CheckpointError,
    ExtractionError,
    WebFetchError,
    RenderError,
    LLMError,
    EmbeddingError,
    VectorStoreError,
    StoreError,
    MergeConflictError,
)
from history_alchemy.result import Err, ErrorKind, Ok


def test_all_inherit_from_base():
    for exc_class in [
        BrowserError, SourceUnavailableError, SchemaMismatchError, CheckpointError,
        ExtractionError, WebFetchError, RenderError,
        LLMError,
        EmbeddingError,
        VectorStoreError,
        StoreError, MergeConflictError,
    ]:
        assert issubclass(exc_class, HistoryAlchemyError)


def test_browser_hierarchy():
    assert issubclass(SourceUnavailableError, BrowserError)
    assert issubclass(SchemaMismatchError, BrowserError)
    assert not issubclass(SourceUnavailableError, SchemaMismatchError)


def test_extraction_hierarchy():
    assert issubclass(WebFetchError, ExtractionError)
    assert issubclass(RenderError, ExtractionError)


def test_merge_conflict_is_store_error():
    assert issubclass(MergeConflictError, StoreError)


def test_catch_base():
    with pytest.raises(HistoryAlchemyError):
        raise RenderError("browser crashed")


def test_ok_value():
    result = Ok(42)
    assert result.ok is True
    assert result.value == 42
    assert result.unwrap_or(0) == 42


def test_err_default():
    result = Err(ErrorKind.TIMEOUT, "slow")
    assert result.ok is False
    assert result.kind is ErrorKind.TIMEOUT
    assert result.unwrap_or("fallback") == "fallback"
