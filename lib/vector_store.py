"""Chunk vector stores: pgvector for production, in-memory for development and tests."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import VectorStoreError
from core.utils.timeouts import with_timeout
from database.models.knowledge_base import KnowledgeChunk

logger = logging.getLogger(__name__)


@dataclass
class VectorRecord:
    id: str
    source_id: str
    position: int
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)
    organization_id: Optional[str] = None


@dataclass
class ScoredChunk:
    id: str
    source_id: str
    content: str
    similarity: float
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorStore(Protocol):
    async def upsert(self, records: Sequence[VectorRecord]) -> None: ...

    async def search(
        self,
        vector: Sequence[float],
        top_k: int,
        min_similarity: float,
        source_ids: Optional[Sequence[str]] = None,
        organization_id: Optional[str] = None,
    ) -> list[ScoredChunk]: ...

    async def delete_source(self, source_id: str) -> int: ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise VectorStoreError(
            f"Vector dimension mismatch: {len(a)} != {len(b)}"
        )
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


class InMemoryVectorStore:
    """Brute-force cosine search over a dict keyed by chunk id."""

    def __init__(self):
        self.records: dict[str, VectorRecord] = {}

    async def upsert(self, records: Sequence[VectorRecord]) -> None:
        for record in records:
            self.records[record.id] = record

    async def search(
        self,
        vector: Sequence[float],
        top_k: int,
        min_similarity: float,
        source_ids: Optional[Sequence[str]] = None,
        organization_id: Optional[str] = None,
    ) -> list[ScoredChunk]:
        wanted = set(source_ids) if source_ids else None
        scored = []
        for record in self.records.values():
            if wanted is not None and record.source_id not in wanted:
                continue
            if organization_id and record.organization_id != organization_id:
                continue
            similarity = cosine_similarity(vector, record.embedding)
            if similarity >= min_similarity:
                scored.append(
                    ScoredChunk(
                        id=record.id,
                        source_id=record.source_id,
                        content=record.content,
                        similarity=similarity,
                        metadata=dict(record.metadata),
                    )
                )
        scored.sort(key=lambda c: c.similarity, reverse=True)
        return scored[:top_k]

    async def delete_source(self, source_id: str) -> int:
        doomed = [cid for cid, r in self.records.items() if r.source_id == source_id]
        for cid in doomed:
            del self.records[cid]
        return len(doomed)


class PgVectorStore:
    """Chunk store backed by the ``knowledge_chunks`` table and pgvector."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def upsert(self, records: Sequence[VectorRecord]) -> None:
        if not records:
            return
        rows = [
            {
                "id": r.id,
                "source_id": r.source_id,
                "organization_id": r.organization_id,
                "position": r.position,
                "content": r.content,
                "embedding": r.embedding,
                "metadata": r.metadata,
            }
            for r in records
        ]
        stmt = insert(KnowledgeChunk).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[KnowledgeChunk.id],
            set_={
                "content": stmt.excluded.content,
                "embedding": stmt.excluded.embedding,
                "metadata": stmt.excluded.metadata,
                "position": stmt.excluded.position,
                "organization_id": stmt.excluded.organization_id,
            },
        )
        await with_timeout(self._execute(stmt), "vector upsert")

    async def search(
        self,
        vector: Sequence[float],
        top_k: int,
        min_similarity: float,
        source_ids: Optional[Sequence[str]] = None,
        organization_id: Optional[str] = None,
    ) -> list[ScoredChunk]:
        distance = KnowledgeChunk.embedding.cosine_distance(list(vector))
        query = (
            select(KnowledgeChunk, distance.label("distance"))
            .where(distance <= 1 - min_similarity)
            .order_by(distance)
            .limit(top_k)
        )
        if source_ids:
            query = query.where(KnowledgeChunk.source_id.in_(list(source_ids)))
        if organization_id:
            query = query.where(KnowledgeChunk.organization_id == organization_id)

        rows = await with_timeout(self._fetch(query), "vector search")
        return [
            ScoredChunk(
                id=chunk.id,
                source_id=chunk.source_id,
                content=chunk.content,
                similarity=1 - float(dist),
                metadata=dict(chunk.chunk_metadata or {}),
            )
            for chunk, dist in rows
        ]

    async def delete_source(self, source_id: str) -> int:
        stmt = delete(KnowledgeChunk).where(KnowledgeChunk.source_id == source_id)
        result = await with_timeout(self._execute(stmt), "vector delete")
        return result.rowcount or 0

    async def _execute(self, stmt):
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
                return result
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"Vector store write failed: {exc}") from exc

    async def _fetch(self, query):
        try:
            async with self.session_factory() as session:
                result = await session.execute(query)
                return result.all()
        except SQLAlchemyError as exc:
            raise VectorStoreError(f"Vector store query failed: {exc}") from exc
