"""Split knowledge-base documents into overlapping, addressable chunks."""

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from core.config import settings
from core.errors import NothingToIndexError
from lib.document_parser import Stream, extract_text

logger = logging.getLogger(__name__)

# Rough heuristic used for both window sizing and the token estimate.
CHARS_PER_TOKEN = 4

_WHITESPACE = re.compile(r"\s+")


@dataclass
class Chunk:
    id: str
    source_id: str
    position: int
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def token_estimate(self) -> int:
        return -(-len(self.content) // CHARS_PER_TOKEN)


def chunk_id(source_id: str, position: int) -> str:
    """Deterministic chunk id, so re-ingesting a document overwrites its chunks."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{source_id}#{position}"))


def split_text(text: str, max_chars: int, overlap_chars: int) -> list[str]:
    """
    Split text into windows of at most ``max_chars`` characters.

    Windows break on the last space inside the window when there is one and
    the next window starts ``overlap_chars`` before the previous end.
    """
    if overlap_chars >= max_chars:
        raise ValueError("overlap must be smaller than the chunk size")

    pieces: list[str] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(start + max_chars, length)
        if end < length:
            last_space = text.rfind(" ", start, end)
            if last_space > start:
                end = last_space

        piece = text[start:end].strip()
        if piece:
            pieces.append(piece)

        if end >= length:
            break
        # Always move forward, even when the overlap would swallow the window.
        start = max(end - overlap_chars, start + 1)
    return pieces


def chunk_text(
    text: str,
    source_id: str,
    document_name: str,
    *,
    chunk_size_tokens: Optional[int] = None,
    overlap_tokens: Optional[int] = None,
    extra_metadata: Optional[dict[str, Any]] = None,
) -> list[Chunk]:
    """
    Chunk already extracted text.

    Args:
        text: Document text
        source_id: Id of the owning knowledge document
        document_name: Human readable document name kept in chunk metadata
        chunk_size_tokens: Window size in tokens (defaults to settings)
        overlap_tokens: Overlap between windows in tokens (defaults to settings)
        extra_metadata: Merged into every chunk's metadata (filename, tags...)

    Returns:
        Chunks in document order

    Raises:
        NothingToIndexError: the text is empty after whitespace normalization
    """
    size = chunk_size_tokens or settings.chunk_size_tokens
    overlap = settings.chunk_overlap_tokens if overlap_tokens is None else overlap_tokens

    normalized = _WHITESPACE.sub(" ", text or "").strip()
    if not normalized:
        raise NothingToIndexError(f"{document_name} contains no extractable text")

    pieces = split_text(normalized, size * CHARS_PER_TOKEN, overlap * CHARS_PER_TOKEN)
    chunks = []
    for position, content in enumerate(pieces):
        chunk = Chunk(
            id=chunk_id(source_id, position),
            source_id=source_id,
            position=position,
            content=content,
        )
        chunk.metadata = {
            **(extra_metadata or {}),
            "document_name": document_name,
            "position": position,
            "token_estimate": chunk.token_estimate,
        }
        chunks.append(chunk)

    logger.info("Split %s into %d chunks", document_name, len(chunks))
    return chunks


async def chunk_document(
    data: Stream,
    filename: str,
    source_id: str,
    *,
    document_name: Optional[str] = None,
    organization_id: Optional[str] = None,
    tags: Optional[dict[str, Any]] = None,
) -> list[Chunk]:
    """Parse an uploaded file and chunk its text."""
    text = await extract_text(data, filename)
    metadata: dict[str, Any] = {"filename": filename, **(tags or {})}
    if organization_id:
        metadata["organization_id"] = organization_id
    return chunk_text(
        text,
        source_id,
        document_name or filename,
        extra_metadata=metadata,
    )
