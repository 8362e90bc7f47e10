"""Tests for knowledge-base uploads and deletion."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from api.services.knowledge_base import KNOWLEDGE_BASE_FOLDER, KnowledgeBaseService
from core.errors import (
    DocumentNotFoundError,
    NothingToIndexError,
    UnsupportedFileError,
    VectorStoreError,
)
from database.models.knowledge_base import KnowledgeDocument
from lib.indexing import EmbeddingIndexer
from lib.vector_store import InMemoryVectorStore
from tests.conftest import FakeEmbedder

GUIDE = b"Python interview guide. Generators, decorators and context managers."


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def service_for(session_factory, storage, store):
    def _build(fail_on=None):
        indexer = EmbeddingIndexer(FakeEmbedder(fail_on=fail_on), store)
        return KnowledgeBaseService(indexer, storage, session_factory)
    return _build


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_indexes_chunks(self, service_for, storage, store):
        document, report = await service_for().upload_document(
            GUIDE, "guide.txt", display_name="Python Guide", organization_id="org-1",
            tags={"team": "platform"},
        )

        assert document.chunk_count == 1
        assert document.failed_chunk_count == 0
        assert document.display_name == "Python Guide"
        assert document.size_bytes == len(GUIDE)
        assert storage.read(document.file_path) == GUIDE
        assert document.file_path.startswith(f"{KNOWLEDGE_BASE_FOLDER}/")

        (record,) = store.records.values()
        assert record.source_id == document.id
        assert record.organization_id == "org-1"
        assert record.metadata["document_name"] == "Python Guide"
        assert record.metadata["team"] == "platform"
        assert report.indexed == [record.id]

    @pytest.mark.asyncio
    async def test_partial_failure_is_recorded(self, service_for, store):
        text = ("python " * 300 + "BROKEN " * 300).encode()

        document, report = await service_for(fail_on={"BROKEN"}).upload_document(text, "mixed.txt")

        assert document.chunk_count == 1
        assert document.failed_chunk_count == len(report.failed) > 0
        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_total_failure_rolls_back(self, service_for, storage, session_factory):
        with pytest.raises(VectorStoreError):
            await service_for(fail_on={"Python"}).upload_document(GUIDE, "guide.txt")

        assert storage.list_files(KNOWLEDGE_BASE_FOLDER) == []
        async with session_factory() as session:
            assert (await session.execute(select(KnowledgeDocument))).first() is None

    @pytest.mark.asyncio
    async def test_failed_row_insert_removes_chunks_and_file(
        self, session_factory, storage, store
    ):
        def broken_factory():
            session = session_factory()

            async def commit():
                raise OperationalError("INSERT INTO knowledge_documents", {}, Exception("disk I/O error"))

            session.commit = commit
            return session

        indexer = EmbeddingIndexer(FakeEmbedder(), store)
        service = KnowledgeBaseService(indexer, storage, broken_factory)

        with pytest.raises(OperationalError):
            await service.upload_document(GUIDE, "guide.txt")

        assert store.records == {}
        assert storage.list_files(KNOWLEDGE_BASE_FOLDER) == []
        async with session_factory() as session:
            assert (await session.execute(select(KnowledgeDocument))).first() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data,filename,error", [
        (b"  ", "empty.txt", NothingToIndexError),
        (b"data", "sheet.xlsx", UnsupportedFileError),
    ])
    async def test_unusable_files_leave_nothing_behind(
        self, service_for, storage, store, data, filename, error
    ):
        with pytest.raises(error):
            await service_for().upload_document(data, filename)

        assert storage.list_files(KNOWLEDGE_BASE_FOLDER) == []
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_bulk_upload(self, service_for):
        results = await service_for().upload_documents_bulk(
            [("a.txt", GUIDE), ("b.txt", b""), ("c.md", b"# Cooking notes")],
            organization_id="org-1",
        )

        assert [r.success for r in results] == [True, False, True]
        assert results[0].data["indexed_count"] == 1
        assert results[1].error_code == "NOTHING_TO_INDEX"


class TestListAndDelete:
    @pytest.mark.asyncio
    async def test_list_by_organization(self, service_for):
        service = service_for()
        mine, _ = await service.upload_document(GUIDE, "a.txt", organization_id="org-1")
        await service.upload_document(GUIDE, "b.txt", organization_id="org-2")

        assert [d.id for d in await service.list_documents("org-1")] == [mine.id]
        assert len(await service.list_documents()) == 2

    @pytest.mark.asyncio
    async def test_delete_removes_chunks_file_and_row(self, service_for, storage, store):
        service = service_for()
        document, _ = await service.upload_document(GUIDE, "a.txt", organization_id="org-1")

        deleted = await service.delete_document(document.file_path, organization_id="org-1")

        assert deleted == 1
        assert store.records == {}
        assert not storage.exists(document.file_path)
        assert await service.list_documents() == []

        with pytest.raises(DocumentNotFoundError):
            await service.delete_document(document.file_path)

    @pytest.mark.asyncio
    async def test_delete_other_organizations_document(self, service_for, storage, store):
        service = service_for()
        document, _ = await service.upload_document(GUIDE, "a.txt", organization_id="org-1")

        with pytest.raises(DocumentNotFoundError):
            await service.delete_document(document.file_path, organization_id="org-2")

        assert len(store.records) == 1
        assert storage.exists(document.file_path)
