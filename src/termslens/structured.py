"""Decode untrusted model output into validated, typed values.

Model responses are free text that is *supposed* to contain JSON. Everything
here treats them as untrusted: markdown fences are stripped, the first
well-formed literal of the requested kind is located, and the parsed value is
validated before anything downstream sees it. :class:`ParseError` means no JSON
literal could be found; :class:`ShapeError` means JSON was found but does not
match the expected schema.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from termslens.errors import ParseError, ShapeError
from termslens.models import Category, Importance, KeyPoint

LOGGER = logging.getLogger(__name__)

JsonKind = Literal["array", "object"]

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_DECODER = json.JSONDecoder()
_OPENERS = {"array": ("[", list), "object": ("{", dict)}


class KeyPointPayload(BaseModel):
    point: str
    importance: Importance
    category: Category = Category.OTHER

    @field_validator("point")
    @classmethod
    def _point_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("point must not be empty")
        return value

    @field_validator("importance", mode="before")
    @classmethod
    def _normalise_importance(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value in Category._value2member_map_:
                return value
        return Category.OTHER


class RelevancePayload(BaseModel):
    score: float = Field(0, allow_inf_nan=False)
    reasoning: str = ""


def decode_json(text: Optional[str], expect: JsonKind = "array") -> Any:
    """Return the first JSON array/object literal found in *text*."""

    if text is None or not text.strip():
        raise ParseError("Model returned an empty response")

    opener, expected_type = _OPENERS[expect]
    cleaned = _FENCE_RE.sub("", text).strip()

    position = cleaned.find(opener)
    while position != -1:
        try:
            value, _ = _DECODER.raw_decode(cleaned, position)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, expected_type):
            return value
        position = cleaned.find(opener, position + 1)

    raise ParseError(f"No JSON {expect} found in model response: {cleaned[:80]!r}")


def decode_key_points(text: Optional[str], chunk_index: Optional[int] = None) -> List[KeyPoint]:
    """Decode a key-point array; malformed items are dropped.

    Raises :class:`ShapeError` when the array is non-empty but none of its
    items describe a valid key point.
    """

    items = decode_json(text, "array")
    points: List[KeyPoint] = []
    rejected = 0
    for item in items:
        try:
            payload = KeyPointPayload.model_validate(item)
        except ValidationError as error:
            rejected += 1
            LOGGER.debug("Dropping malformed key point %r: %s", item, error)
            continue
        points.append(
            KeyPoint(
                point=payload.point,
                importance=payload.importance,
                category=payload.category,
                chunk_index=chunk_index,
            )
        )

    if items and not points:
        raise ShapeError(f"None of the {len(items)} key points matched the expected shape")
    if rejected:
        LOGGER.info("Dropped %s malformed key points out of %s", rejected, len(items))
    return points


def decode_relevance(text: Optional[str]) -> Tuple[int, str]:
    """Decode ``{"score": n, "reasoning": "..."}`` with the score clamped to 0-10."""

    value = decode_json(text, "object")
    try:
        payload = RelevancePayload.model_validate(value)
    except ValidationError as error:
        raise ShapeError(f"Relevance response has an invalid shape: {error}") from error
    score = int(round(payload.score))
    return max(0, min(10, score)), payload.reasoning


def decode_string_list(text: Optional[str]) -> List[str]:
    items = decode_json(text, "array")
    if not items:
        raise ShapeError("Expected a non-empty array of strings")
    if not all(isinstance(item, str) and item.strip() for item in items):
        raise ShapeError("Expected every array item to be a non-empty string")
    return [item.strip() for item in items]


__all__ = [
    "JsonKind",
    "KeyPointPayload",
    "RelevancePayload",
    "decode_json",
    "decode_key_points",
    "decode_relevance",
    "decode_string_list",
]
