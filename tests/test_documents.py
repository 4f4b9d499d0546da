import io

import pytest

from termslens.documents import (
    DocumentFormat,
    UnsupportedDocument,
    detect_format,
    extract_document_text,
    normalize_text,
)
from termslens.errors import InvalidInput


def test_detect_format_prefers_mime_type():
    assert detect_format("upload.bin", "application/pdf") is DocumentFormat.PDF
    assert detect_format("terms.DOCX") is DocumentFormat.DOCX
    assert detect_format("terms.txt", "application/octet-stream") is DocumentFormat.TXT


def test_detect_format_rejects_unknown_files():
    with pytest.raises(UnsupportedDocument):
        detect_format("slides.pptx")
    assert issubclass(UnsupportedDocument, InvalidInput)


def test_normalize_text_keeps_paragraph_breaks():
    raw = "Terms\t of   use  \r\n\r\n\r\n\r\nSection 2 \n"

    assert normalize_text(raw) == "Terms of use\n\nSection 2"


def test_extract_plain_text_upload():
    data = "Privacy  Policy\n\n\n\nWe collect cookies.".encode("utf-8")

    assert extract_document_text(data, "policy.txt", "text/plain") == "Privacy Policy\n\nWe collect cookies."


def test_extract_docx_upload():
    docx = pytest.importorskip("docx")
    document = docx.Document()
    document.add_paragraph("Terms of Service")
    document.add_paragraph("")
    document.add_paragraph("You may cancel at any time.")
    buffer = io.BytesIO()
    document.save(buffer)

    text = extract_document_text(buffer.getvalue(), "terms.docx")

    assert text == "Terms of Service\n\nYou may cancel at any time."


def test_corrupt_docx_is_rejected():
    pytest.importorskip("docx")

    with pytest.raises(UnsupportedDocument):
        extract_document_text(b"not a zip archive", "terms.docx")
