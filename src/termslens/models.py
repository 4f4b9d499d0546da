"""Request-scoped values produced and consumed by the analysis pipelines."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from termslens.chunker import Chunk


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _IMPORTANCE_RANK[self]


_IMPORTANCE_RANK = {Importance.HIGH: 0, Importance.MEDIUM: 1, Importance.LOW: 2}


class Category(str, Enum):
    PRIVACY = "privacy"
    DATA = "data"
    RIGHTS = "rights"
    LEGAL = "legal"
    FINANCIAL = "financial"
    OTHER = "other"


class SummaryType(str, Enum):
    KEY_POINTS = "key-points"
    TLDR = "tldr"
    TEASER = "teaser"
    HEADLINE = "headline"


class SummaryFormat(str, Enum):
    MARKDOWN = "markdown"
    PLAIN_TEXT = "plain-text"


class SummaryLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


@dataclass(frozen=True, slots=True)
class KeyPoint:
    """One important clause found in a document.

    ``chunk_index`` is ``None`` for points synthesised by the model-assisted
    merge, which cannot be traced back to a single chunk.
    """

    point: str
    importance: Importance
    category: Category
    chunk_index: Optional[int] = None

    def as_dict(self) -> dict[str, object]:
        return {
            "point": self.point,
            "importance": self.importance.value,
            "category": self.category.value,
            "chunkIndex": self.chunk_index,
        }


@dataclass(frozen=True, slots=True)
class RelevanceScore:
    chunk: Chunk
    score: int
    reasoning: str


@dataclass(frozen=True, slots=True)
class SummaryOptions:
    type: SummaryType = SummaryType.KEY_POINTS
    format: SummaryFormat = SummaryFormat.MARKDOWN
    length: SummaryLength = SummaryLength.SHORT


@dataclass(slots=True)
class TranslationResult:
    """Outcome of a translation run.

    ``note`` is only set when no translation was needed and
    ``chunks_processed`` only when the document went through the chunker.
    """

    translated_text: str
    source_language: str
    target_language: str
    note: Optional[str] = None
    chunks_processed: Optional[int] = None

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "translatedText": self.translated_text,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
        }
        if self.note is not None:
            payload["note"] = self.note
        if self.chunks_processed is not None:
            payload["chunksProcessed"] = self.chunks_processed
        return payload


@dataclass(frozen=True, slots=True)
class Language:
    code: str
    name: str


@dataclass(slots=True)
class MergeOutcome:
    """Tagged result of a merge: the value plus the strategy that produced it."""

    value: object
    strategy: str
    errors: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)


__all__ = [
    "Category",
    "Importance",
    "KeyPoint",
    "Language",
    "MergeOutcome",
    "RelevanceScore",
    "SummaryFormat",
    "SummaryLength",
    "SummaryOptions",
    "SummaryType",
    "TranslationResult",
]
