import asyncio
import logging
import re
from io import BytesIO
from pathlib import PurePath
from typing import Iterable, Union

import pdfplumber
from docx import Document

from core.errors import UnsupportedFileError


logger = logging.getLogger(__name__)

Stream = Union[BytesIO, bytes, bytearray, memoryview]

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".docx", ".txt", ".md"})


async def extract_text(data: Stream, filename: str) -> str:
    """
    Extract normalized text from an uploaded file, dispatching on its extension.

    Args:
        data: Raw file content
        filename: Original file name, used only for its extension

    Returns:
        Extracted text, possibly empty when the file holds no text layer

    Raises:
        UnsupportedFileError: unknown extension or undecodable content
    """
    extension = PurePath(filename).suffix.lower()
    if extension == ".pdf":
        return await extract_text_from_pdf_stream(data)
    if extension == ".docx":
        return await extract_text_from_docx_stream(data)
    if extension in (".txt", ".md"):
        return _extract_plain_text(data, filename)
    raise UnsupportedFileError(
        f"Unsupported file type '{extension or filename}'",
        details={"supported": sorted(SUPPORTED_EXTENSIONS)},
    )


async def extract_text_from_pdf_stream(file_stream: Stream) -> str:
    """Return normalized text from a PDF stream without blocking the event loop."""
    stream = _prepare_stream(file_stream)
    return await asyncio.to_thread(_extract_pdf_text_sync, stream)


async def extract_text_from_docx_stream(file_stream: Stream) -> str:
    """Return normalized text from a DOCX stream, table cells included."""
    stream = _prepare_stream(file_stream)
    return await asyncio.to_thread(_extract_docx_text_sync, stream)


def _extract_plain_text(file_stream: Stream, filename: str) -> str:
    raw = _prepare_stream(file_stream).read()
    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UnsupportedFileError(f"{filename} is not valid UTF-8 text") from exc
    return _normalize_text(decoded.splitlines())


def _extract_pdf_text_sync(file_stream: BytesIO) -> str:
    pages: list[str] = []

    try:
        pdf = pdfplumber.open(file_stream)
        page_list = pdf.pages
    except Exception as exc:
        raise UnsupportedFileError(f"Unreadable PDF: {exc}") from exc

    with pdf:
        for idx, page in enumerate(page_list, start=1):
            try:
                page_text = page.extract_text() or ""
            except Exception as exc:  # pragma: no cover - pdfplumber internals
                logger.warning("Skipping unreadable PDF page %s: %s", idx, exc)
                continue
            if page_text:
                pages.append(page_text)

    text = _normalize_text(pages)
    if not text:
        logger.info("PDF contained no extractable text")
    return text


def _extract_docx_text_sync(file_stream: BytesIO) -> str:
    try:
        doc = Document(file_stream)
    except Exception as exc:
        raise UnsupportedFileError(f"Unreadable DOCX: {exc}") from exc
    text = _normalize_text(_iter_docx_text(doc))
    if not text:
        logger.info("DOCX contained no extractable text")
    return text


def _iter_docx_text(doc) -> Iterable[str]:
    for para in doc.paragraphs:
        if para.text:
            yield para.text

    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text:
                    yield cell.text


def _normalize_text(parts: Iterable[str]) -> str:
    """Trim each part, drop empties, and join with stable line breaks."""
    cleaned = [p.strip() for p in parts if p and p.strip()]
    if not cleaned:
        return ""

    text = "\n".join(cleaned)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _prepare_stream(file_stream: Stream) -> BytesIO:
    if isinstance(file_stream, (bytes, bytearray, memoryview)):
        stream = BytesIO(file_stream)
    else:
        stream = file_stream

    if stream.closed:
        raise ValueError("file_stream is closed")

    stream.seek(0)
    return stream
