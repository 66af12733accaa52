from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class ExtractionError(RuntimeError):
    """Raised when an uploaded document cannot be turned into text."""


def _extract_pdf_text(data: bytes) -> str:
    """Extract text page by page, skipping pages with no readable text."""
    try:
        reader = PdfReader(io.BytesIO(data))
    except PdfReadError as exc:
        raise ExtractionError(f"Unreadable PDF: {exc}") from exc

    pages: List[str] = []
    for index, page in enumerate(reader.pages, start=1):
        try:
            text = page.extract_text() or ""
        except Exception as exc:  # pragma: no cover
            raise ExtractionError(f"Failed to extract text from page {index}: {exc}") from exc
        normalized = "\n".join(line.strip() for line in text.splitlines()).strip()
        if normalized:
            pages.append(normalized)
    return "\n\n".join(pages)


def _extract_docx_text(data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError) as exc:
        raise ExtractionError(f"Unreadable Word document: {exc}") from exc
    paragraphs = [paragraph.text.strip() for paragraph in doc.paragraphs]
    return "\n".join(text for text in paragraphs if text)


def _looks_binary(data: bytes) -> bool:
    # NUL bytes never appear in text; ZIP containers start with "PK"
    return b"\x00" in data[:8192] or data.startswith(b"PK\x03\x04")


def extract_text(data: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> str:
    """Decode an uploaded source document into plain text.

    PDFs go through pypdf and Word documents through python-docx; anything
    else must be text and is decoded as UTF-8. Other binary formats raise
    ExtractionError. An empty upload yields an empty string.
    """
    if not data:
        return ""

    suffix = Path(filename or "").suffix.lower()
    if suffix == ".pdf" or content_type == "application/pdf" or data.startswith(b"%PDF"):
        text = _extract_pdf_text(data)
        logger.info("Extracted %d characters from PDF %s", len(text), filename or "<upload>")
        return text

    if suffix == ".docx" or content_type == DOCX_CONTENT_TYPE:
        text = _extract_docx_text(data)
        logger.info("Extracted %d characters from Word document %s", len(text), filename or "<upload>")
        return text

    if _looks_binary(data):
        raise ExtractionError(f"Unsupported file type: {filename or content_type or 'unknown'}")
    return data.decode("utf-8", errors="ignore").strip()
