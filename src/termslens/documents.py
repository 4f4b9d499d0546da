"""Turn uploaded TXT/PDF/DOCX bytes into plain document text."""
from __future__ import annotations

import io
import logging
import mimetypes
import re
import unicodedata
from enum import Enum
from pathlib import Path
from typing import Optional

try:  # pragma: no cover - optional dependency during tests
    from pdfminer.high_level import extract_text as pdf_extract_text  # type: ignore
except Exception:  # pragma: no cover - reported when a PDF is uploaded
    pdf_extract_text = None  # type: ignore

try:  # pragma: no cover - optional dependency during tests
    from docx import Document as DocxDocument  # type: ignore
except Exception:  # pragma: no cover - reported when a DOCX is uploaded
    DocxDocument = None  # type: ignore

from termslens.errors import InvalidInput

LOGGER = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"[ \t]+")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")


class DocumentFormat(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


_MIME_MAP = {
    "application/pdf": DocumentFormat.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
    "text/plain": DocumentFormat.TXT,
}


class UnsupportedDocument(InvalidInput):
    """Raised when an upload is not a readable TXT, PDF or DOCX file."""


def detect_format(file_name: str, mime_type: Optional[str] = None) -> DocumentFormat:
    """Resolve the upload format from the MIME type, then the file name."""

    if mime_type and mime_type in _MIME_MAP:
        return _MIME_MAP[mime_type]

    guessed_type, _ = mimetypes.guess_type(file_name)
    if guessed_type and guessed_type in _MIME_MAP:
        return _MIME_MAP[guessed_type]

    suffix = Path(file_name).suffix.lower().lstrip(".")
    try:
        return DocumentFormat(suffix)
    except ValueError as exc:
        raise UnsupportedDocument(f"Unsupported file format: {file_name}") from exc


def normalize_text(text: str) -> str:
    """NFC-normalise, unify line endings and collapse blank-line runs.

    Paragraph breaks survive as a single blank line so the chunker still sees
    them.
    """

    normalized = unicodedata.normalize("NFC", text)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def _read_text(data: bytes) -> str:
    for encoding in ("utf-8", "utf-16"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def _read_pdf(data: bytes, file_name: str) -> str:
    if pdf_extract_text is None:
        raise UnsupportedDocument("PDF support requires pdfminer.six")
    try:
        return pdf_extract_text(io.BytesIO(data)) or ""
    except Exception as error:
        LOGGER.warning("pdfminer failed to extract text from %s: %s", file_name, error)
        raise UnsupportedDocument(f"Could not read PDF file {file_name}") from error


def _read_docx(data: bytes, file_name: str) -> str:
    if DocxDocument is None:
        raise UnsupportedDocument("DOCX support requires python-docx")
    try:
        document = DocxDocument(io.BytesIO(data))
    except Exception as error:
        LOGGER.warning("python-docx failed to parse %s: %s", file_name, error)
        raise UnsupportedDocument(f"Could not read DOCX file {file_name}") from error
    return "\n\n".join(paragraph.text for paragraph in document.paragraphs if paragraph.text)


def extract_document_text(data: bytes, file_name: str, mime_type: Optional[str] = None) -> str:
    """Return the normalised text of an uploaded document.

    Raises :class:`UnsupportedDocument` for unknown formats and unreadable
    files; an upload with no text yields ``""`` and is left for the pipelines
    to reject.
    """

    document_format = detect_format(file_name, mime_type)
    if document_format is DocumentFormat.PDF:
        raw = _read_pdf(data, file_name)
    elif document_format is DocumentFormat.DOCX:
        raw = _read_docx(data, file_name)
    else:
        raw = _read_text(data)

    text = normalize_text(raw)
    LOGGER.info(
        "Extracted %s chars from %s (%s)", len(text), file_name, document_format.value
    )
    return text


__all__ = [
    "DocumentFormat",
    "UnsupportedDocument",
    "detect_format",
    "extract_document_text",
    "normalize_text",
]
