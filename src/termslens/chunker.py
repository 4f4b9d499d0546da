"""Split long legal documents into overlapping, paragraph-aligned chunks."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from termslens.config import ChunkingLimits
from termslens.errors import ContentTooLarge, InvalidInput
from termslens.telemetry import emit_chunking_event

LOGGER = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
_PARAGRAPH_BREAK_RE = re.compile(r"\n\n+|\r\n\r\n+")
_DEFAULT_LIMITS = ChunkingLimits()


@dataclass(frozen=True, slots=True)
class Chunk:
    """A bounded window of a document tagged with its position and offsets."""

    text: str
    index: int
    total: int
    start: int
    end: int


def _split_paragraphs(text: str) -> List[str]:
    return [part.strip() for part in _PARAGRAPH_BREAK_RE.split(text) if part.strip()]


def validate_content_length(content: Optional[str], limits: Optional[ChunkingLimits] = None) -> int:
    """Check *content* against the document ceiling and return its trimmed length.

    Raises :class:`InvalidInput` for empty content and :class:`ContentTooLarge`
    when the trimmed text is longer than ``limits.max_document_chars``.
    """

    limits = limits or _DEFAULT_LIMITS
    if content is None or not content.strip():
        raise InvalidInput("No content to process")

    length = len(content.strip())
    if length > limits.max_document_chars:
        raise ContentTooLarge(length, limits.max_document_chars)
    return length


def chunk_content(content: Optional[str], limits: Optional[ChunkingLimits] = None) -> List[Chunk]:
    """Split *content* into chunks no larger than ``limits.max_chunk_chars``.

    Paragraphs are accumulated greedily. When the next paragraph would overflow
    the running chunk, the chunk is closed and the next one is seeded with the
    trailing ``limits.overlap_chars`` characters of the closed chunk. A single
    paragraph longer than the maximum is kept whole.
    """

    limits = limits or _DEFAULT_LIMITS
    if content is None or not content.strip():
        return []

    trimmed = content.strip()
    if len(trimmed) > limits.max_document_chars:
        raise ContentTooLarge(len(trimmed), limits.max_document_chars)

    if len(trimmed) <= limits.max_chunk_chars:
        emit_chunking_event(length=len(trimmed), chunks=1, limits=limits)
        return [Chunk(text=trimmed, index=0, total=1, start=0, end=len(trimmed))]

    pieces: List[Tuple[str, int]] = []
    current = ""
    chunk_start = 0

    for paragraph in _split_paragraphs(trimmed):
        candidate = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph
        if len(candidate) > limits.max_chunk_chars and current:
            pieces.append((current, chunk_start))

            overlap = min(limits.overlap_chars, len(current))
            overlap_text = current[len(current) - overlap :]
            if overlap_text:
                chunk_start += len(current) - overlap
                current = f"{overlap_text}{PARAGRAPH_SEPARATOR}{paragraph}"
            else:
                chunk_start += len(current) + len(PARAGRAPH_SEPARATOR)
                current = paragraph
        else:
            current = candidate

    if current:
        pieces.append((current, chunk_start))

    total = len(pieces)
    chunks = [
        Chunk(text=text, index=index, total=total, start=start, end=start + len(text))
        for index, (text, start) in enumerate(pieces)
    ]
    for chunk in chunks:
        LOGGER.debug(
            "Chunk %s/%s offsets %s-%s (%s chars)",
            chunk.index + 1,
            chunk.total,
            chunk.start,
            chunk.end,
            len(chunk.text),
        )
    emit_chunking_event(length=len(trimmed), chunks=total, limits=limits)
    return chunks


def get_chunk_context(chunk: Chunk) -> str:
    """Return the positional annotation prefixed to a chunk before prompting."""

    if chunk.total == 1:
        return ""
    return f"This is part {chunk.index + 1} of {chunk.total} of the document."


def with_chunk_context(chunk: Chunk) -> str:
    context = get_chunk_context(chunk)
    return f"{context}\n\n{chunk.text}" if context else chunk.text


__all__ = [
    "Chunk",
    "PARAGRAPH_SEPARATOR",
    "chunk_content",
    "get_chunk_context",
    "validate_content_length",
    "with_chunk_context",
]
