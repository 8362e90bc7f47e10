"""Embed chunks and upsert them into a vector store, batch by batch."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from core.config import settings
from core.errors import ScreeningError
from lib.chunking import Chunk
from lib.vector_store import VectorRecord, VectorStore

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


@dataclass
class IndexingReport:
    indexed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "indexed_count": len(self.indexed),
            "failed_count": len(self.failed),
            "failed": dict(self.failed),
        }


class EmbeddingIndexer:
    """
    Index chunks in sequential batches.

    Inside a batch every chunk is embedded concurrently; chunks whose embedding
    fails are reported and the rest of the batch is still upserted. A failed
    upsert fails only its own batch, earlier batches stay committed.
    """

    def __init__(
        self,
        embedder: Embedder,
        store: VectorStore,
        batch_size: Optional[int] = None,
    ):
        self.embedder = embedder
        self.store = store
        self.batch_size = batch_size or settings.embedding_batch_size

    async def index(self, chunks: Sequence[Chunk]) -> IndexingReport:
        report = IndexingReport()
        total = len(chunks)
        logger.info("Indexing %d chunks in batches of %d", total, self.batch_size)

        for start in range(0, total, self.batch_size):
            batch = list(chunks[start:start + self.batch_size])
            embeddings = await asyncio.gather(
                *(self.embedder.embed(chunk.content) for chunk in batch),
                return_exceptions=True,
            )

            records = []
            for chunk, embedding in zip(batch, embeddings):
                if isinstance(embedding, BaseException):
                    if not isinstance(embedding, Exception):
                        raise embedding
                    report.failed[chunk.id] = _describe(embedding)
                    logger.warning("Embedding failed for chunk %s: %s", chunk.id, embedding)
                    continue
                records.append(
                    VectorRecord(
                        id=chunk.id,
                        source_id=chunk.source_id,
                        position=chunk.position,
                        content=chunk.content,
                        embedding=embedding,
                        metadata=chunk.metadata,
                        organization_id=chunk.metadata.get("organization_id"),
                    )
                )

            if not records:
                continue
            try:
                await self.store.upsert(records)
            except ScreeningError as exc:
                logger.error(
                    "Upsert failed for chunks %d-%d: %s", start + 1, start + len(batch), exc
                )
                for record in records:
                    report.failed[record.id] = _describe(exc)
                continue

            report.indexed.extend(record.id for record in records)
            logger.info("Indexed chunks %d to %d", start + 1, start + len(batch))

        if report.failed:
            logger.warning(
                "Indexing finished with %d of %d chunks failed", len(report.failed), total
            )
        return report

    async def delete_source(self, source_id: str) -> int:
        deleted = await self.store.delete_source(source_id)
        logger.info("Deleted %d chunks for source %s", deleted, source_id)
        return deleted


def _describe(exc: Exception) -> str:
    if isinstance(exc, ScreeningError):
        return f"{exc.code}: {exc.message}"
    return f"{type(exc).__name__}: {exc}"
