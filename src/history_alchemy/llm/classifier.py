"""Relevance classifier and merge summarizer built on an LLM client."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field

from history_alchemy.exceptions import LLMError
from history_alchemy.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

_CHAT_TOKEN = re.compile(r"<\|[\s\S]*?\|>")
_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

SYSTEM_PROMPT = "You are a precise analyzer. Return ONLY valid JSON, no other text."

ANALYSIS_PROMPT = """Analyze the value of the following page.

URL: {url}
Content: {content}

Return STRICT JSON:
{{
    "score": number (0-100),
    "category": string (one of: AI & ML, Business, Politics, Technology, Finance, Crypto, Science, Other),
    "summary": string (1-sentence concise gist),
    "entities": string[],
    "tags": string[] (3-5 relevant topic tags),
    "relevant": boolean (true if score > 50)
}}"""

MERGE_PROMPT = """Two summaries describe the same page or story.
Combine them into a single concise summary (at most two sentences).
Return only the summary text.

Summary A: {a}
Summary B: {b}"""


@dataclass
class AnalysisVerdict:
    score: int = 0
    summary: str = "Failed to parse"
    category: str = "Error"
    entities: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    relevant: bool = False

    @classmethod
    def default(cls) -> AnalysisVerdict:
        """Zero-score verdict used when a response cannot be interpreted."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> AnalysisVerdict:
        try:
            score = int(round(float(data.get("score", 0))))
        except (TypeError, ValueError):
            score = 0
        entities = _string_list(data.get("entities"))
        tags = _string_list(data.get("tags")) or list(entities)
        return cls(
            score=max(0, min(score, 100)),
            summary=str(data.get("summary") or ""),
            category=str(data.get("category") or "Other"),
            entities=entities,
            tags=tags,
            relevant=bool(data.get("relevant", score > 50)),
        )


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v not in (None, "")]


def parse_robust_json(raw: str) -> dict | None:
    """Best-effort extraction of the first JSON object in an LLM response.

    Chat-template tokens and markdown code fences are stripped first.
    Returns None when no object can be decoded.
    """
    if not raw:
        return None
    text = _CODE_FENCE.sub("", _CHAT_TOKEN.sub("", raw)).strip()
    start = text.find("{")
    if start == -1:
        return None

    try:
        obj, _ = json.JSONDecoder().raw_decode(text[start:])
    except json.JSONDecodeError:
        end = text.rfind("}")
        if end <= start:
            return None
        try:
            obj = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            return None
    return obj if isinstance(obj, dict) else None


class SignalClassifier:
    """Scores page content and merges summaries through an LLM client.

    ``client`` is anything exposing ``generate(system_prompt, user_content,
    ...) -> {"text": ...}``, normally :class:`~history_alchemy.llm.client.LLMClient`.
    """

    def __init__(self, client, max_tokens: int = 1024):
        self.client = client
        self.max_tokens = max_tokens

    def analyze(self, content: str, url: str) -> Result[AnalysisVerdict]:
        """Classify one page. Never raises for provider or parse failures."""
        prompt = ANALYSIS_PROMPT.format(url=url, content=content)
        try:
            response = self.client.generate(SYSTEM_PROMPT, prompt, max_tokens=self.max_tokens)
        except LLMError as e:
            logger.warning("Classifier unavailable for %s: %s", url, e)
            return Err(ErrorKind.CLASSIFIER_UNAVAILABLE, str(e))

        data = parse_robust_json(response.get("text", ""))
        if data is None:
            logger.warning("Could not parse classifier response for %s", url)
            return Err(ErrorKind.CLASSIFIER_PARSE_FAILURE, "no JSON object in response")
        return Ok(AnalysisVerdict.from_dict(data))

    def merge_summaries(self, a: str, b: str) -> Result[str]:
        """Synthesize one summary from two. Callers fall back on Err."""
        if not a or not b:
            return Ok(a or b)
        try:
            response = self.client.generate(
                SYSTEM_PROMPT.replace("valid JSON", "the summary"),
                MERGE_PROMPT.format(a=a, b=b),
                max_tokens=256,
            )
        except LLMError as e:
            logger.warning("Summary merge unavailable: %s", e)
            return Err(ErrorKind.CLASSIFIER_UNAVAILABLE, str(e))

        text = _CHAT_TOKEN.sub("", response.get("text", "")).strip()
        if not text:
            return Err(ErrorKind.CLASSIFIER_PARSE_FAILURE, "empty summary")
        return Ok(text)
