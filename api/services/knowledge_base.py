"""
Knowledge-base service functions for API endpoints.

Uploading a document stores the file, chunks it and indexes the chunks.
Deleting one always removes its chunks first, then the file, then the row.
"""

import logging
import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.services.bulk import BulkItemResult, run_sequentially
from core.errors import DocumentNotFoundError, ScreeningError, VectorStoreError
from core.storage.local import LocalStorage
from database.engine import AsyncSessionLocal
from database.models.knowledge_base import KnowledgeDocument
from lib.chunking import chunk_document
from lib.indexing import EmbeddingIndexer, IndexingReport

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_FOLDER = "knowledge_base"


class KnowledgeBaseService:
    def __init__(
        self,
        indexer: EmbeddingIndexer,
        storage: LocalStorage,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
    ):
        self.indexer = indexer
        self.storage = storage
        self.session_factory = session_factory

    async def upload_document(
        self,
        data: bytes,
        filename: str,
        display_name: Optional[str] = None,
        organization_id: Optional[str] = None,
        tags: Optional[dict[str, Any]] = None,
    ) -> tuple[KnowledgeDocument, IndexingReport]:
        """
        Store, chunk and index one knowledge-base document.

        Chunks that fail to embed are reported but do not fail the upload;
        an upload where no chunk at all could be indexed is rolled back.

        Args:
            data: Raw file bytes
            filename: Original filename, selects the parser
            display_name: Name shown to users and quoted in chunk metadata
            organization_id: Owner; retrieval can be scoped to it
            tags: Optional filter tags merged into chunk metadata

        Returns:
            The stored document and the indexing report

        Raises:
            UnsupportedFileError: unknown or unreadable file type
            NothingToIndexError: the file has no text
            VectorStoreError: not a single chunk could be indexed
        """
        source_id = str(uuid.uuid4())
        display_name = display_name or filename
        file_path = self.storage.save(data, filename, subfolder=KNOWLEDGE_BASE_FOLDER)

        try:
            chunks = await chunk_document(
                data,
                filename,
                source_id,
                document_name=display_name,
                organization_id=organization_id,
                tags=tags,
            )
            report = await self.indexer.index(chunks)
            if not report.indexed:
                raise VectorStoreError(
                    f"None of the {len(chunks)} chunks of {filename} could be indexed",
                    details=report.to_dict(),
                )
        except ScreeningError:
            self.storage.delete(file_path)
            raise

        document = KnowledgeDocument(
            id=source_id,
            organization_id=organization_id,
            display_name=display_name,
            filename=filename,
            file_path=file_path,
            size_bytes=len(data),
            chunk_count=len(report.indexed),
            failed_chunk_count=len(report.failed),
        )
        try:
            async with self.session_factory() as session:
                session.add(document)
                await session.commit()
                await session.refresh(document)
        except Exception:
            # Without the row nothing could ever find these chunks again.
            logger.error("Storing document %s failed; removing its chunks", source_id)
            await self.indexer.delete_source(source_id)
            self.storage.delete(file_path)
            raise

        logger.info(
            "Indexed %s as %s: %d chunks, %d failed",
            filename, source_id, len(report.indexed), len(report.failed),
        )
        return document, report

    async def upload_documents_bulk(
        self,
        files: Sequence[tuple[str, bytes]],
        organization_id: Optional[str] = None,
    ) -> list[BulkItemResult]:
        async def handle(item: tuple[str, bytes]) -> BulkItemResult:
            filename, data = item
            document, report = await self.upload_document(
                data, filename, organization_id=organization_id
            )
            return BulkItemResult(
                filename=filename,
                success=True,
                id=document.id,
                data={"file_path": document.file_path, **report.to_dict()},
            )

        return await run_sequentially(files, handle, name_of=lambda item: item[0])

    async def list_documents(
        self, organization_id: Optional[str] = None
    ) -> list[KnowledgeDocument]:
        query = select(KnowledgeDocument).order_by(KnowledgeDocument.created_at.desc())
        if organization_id:
            query = query.where(KnowledgeDocument.organization_id == organization_id)
        async with self.session_factory() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def delete_document(
        self, file_path: str, organization_id: Optional[str] = None
    ) -> int:
        """
        Delete a document by its stored file path.

        Args:
            file_path: Storage key returned at upload
            organization_id: When given, only that organization's document matches

        Returns:
            Number of chunks removed from the vector store

        Raises:
            DocumentNotFoundError: nothing matched (missing, or owned by someone else)
        """
        query = select(KnowledgeDocument).where(KnowledgeDocument.file_path == file_path)
        if organization_id:
            query = query.where(KnowledgeDocument.organization_id == organization_id)
        async with self.session_factory() as session:
            document = (await session.execute(query)).scalar_one_or_none()
        if document is None:
            raise DocumentNotFoundError(
                "Document not found or not permitted", details={"file_path": file_path}
            )

        deleted_chunks = await self.indexer.delete_source(document.id)
        self.storage.delete(file_path)

        async with self.session_factory() as session:
            result = await session.execute(
                delete(KnowledgeDocument).where(KnowledgeDocument.id == document.id)
            )
            await session.commit()
        if result.rowcount == 0:
            raise DocumentNotFoundError(
                "Document not found or not permitted", details={"file_path": file_path}
            )

        logger.info("Deleted document %s (%d chunks)", document.id, deleted_chunks)
        return deleted_chunks
