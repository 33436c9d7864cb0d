"""Tests for the relevance classifier and summary merger."""

from unittest.mock import MagicMock

from history_alchemy.exceptions import LLMError
from history_alchemy.llm.classifier import AnalysisVerdict, SignalClassifier, parse_robust_json
from history_alchemy.result import ErrorKind


def _client(text=None, error=None):
    client = MagicMock()
    if error is not None:
        client.generate.side_effect = error
    else:
        client.generate.return_value = {"text": text}
    return client


def test_parse_plain_json():
    assert parse_robust_json('{"score": 90, "relevant": true}') == {"score": 90, "relevant": True}


def test_parse_code_fence_and_chatter():
    raw = 'Sure! Here you go:\n```json\n{"score": 72, "tags": ["ai"]}\n```\nAnything else?'
    assert parse_robust_json(raw) == {"score": 72, "tags": ["ai"]}


def test_parse_strips_chat_tokens():
    raw = '<|channel|>final<|message|>{"score": 10}<|end|>'
    assert parse_robust_json(raw) == {"score": 10}


def test_parse_takes_first_object():
    assert parse_robust_json('{"a": 1} and later {"b": 2}') == {"a": 1}


def test_parse_failure_returns_none():
    assert parse_robust_json("no json at all") is None
    assert parse_robust_json("{broken: json") is None
    assert parse_robust_json("") is None
    assert parse_robust_json("[1, 2, 3]") is None


def test_verdict_from_dict_defaults_tags_to_entities():
    verdict = AnalysisVerdict.from_dict({
        "score": "77.6", "summary": "S", "category": "Science",
        "entities": ["NASA", None, ""], "relevant": True,
    })
    assert verdict.score == 78
    assert verdict.entities == ["NASA"]
    assert verdict.tags == ["NASA"]
    assert verdict.relevant is True


def test_verdict_score_clamped_and_relevance_inferred():
    verdict = AnalysisVerdict.from_dict({"score": 250})
    assert verdict.score == 100
    assert verdict.relevant is True
    assert AnalysisVerdict.from_dict({"score": "n/a"}).score == 0


def test_default_verdict():
    verdict = AnalysisVerdict.default()
    assert verdict.score == 0
    assert verdict.category == "Error"
    assert verdict.summary == "Failed to parse"
    assert verdict.entities == []
    assert verdict.relevant is False


def test_analyze_ok():
    classifier = SignalClassifier(_client('```json\n{"score": 85, "summary": "Deep dive", '
                                          '"category": "Technology", "entities": ["Rust"], '
                                          '"tags": ["systems"], "relevant": true}\n```'))
    result = classifier.analyze("content", "https://example.com/a")
    assert result.ok
    assert result.value.score == 85
    assert result.value.tags == ["systems"]


def test_analyze_parse_failure_is_err():
    result = SignalClassifier(_client("I cannot help with that.")).analyze("c", "u")
    assert not result.ok
    assert result.kind is ErrorKind.CLASSIFIER_PARSE_FAILURE
    assert result.unwrap_or(AnalysisVerdict.default()).category == "Error"


def test_analyze_provider_failure_is_err():
    result = SignalClassifier(_client(error=LLMError("down"))).analyze("c", "u")
    assert result.kind is ErrorKind.CLASSIFIER_UNAVAILABLE


def test_merge_summaries():
    client = _client("A combined summary.")
    result = SignalClassifier(client).merge_summaries("first", "second")
    assert result.value == "A combined summary."
    prompt = client.generate.call_args.args[1]
    assert "first" in prompt and "second" in prompt


def test_merge_summaries_missing_side_skips_call():
    client = _client("unused")
    assert SignalClassifier(client).merge_summaries("", "only").value == "only"
    client.generate.assert_not_called()


def test_merge_summaries_failure_is_err():
    result = SignalClassifier(_client(error=LLMError("down"))).merge_summaries("a", "b")
    assert not result.ok
    assert result.unwrap_or("fallback") == "fallback"
