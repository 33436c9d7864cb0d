"""Explicit success/failure values passed between pipeline stages.

Stages that absorb failures locally (classifier calls, duplicate lookups)
return ``Ok`` or ``Err`` instead of raising, so the caller decides whether
an error is fatal for the item or just means "try the next strategy".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    SCHEMA_MISMATCH = "schema_mismatch"
    EXTRACTION_FAILURE = "extraction_failure"
    CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
    CLASSIFIER_PARSE_FAILURE = "classifier_parse_failure"
    LOOKUP_FAILURE = "lookup_failure"
    MERGE_WRITE_FAILURE = "merge_write_failure"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err]
