"""Tests for document chunking."""

import pytest

from core.errors import NothingToIndexError, UnsupportedFileError
from lib.chunking import CHARS_PER_TOKEN, chunk_document, chunk_id, chunk_text, split_text


class TestSplitText:
    def test_short_text_is_one_window(self):
        assert split_text("hello world", 100, 10) == ["hello world"]

    def test_windows_respect_max_and_overlap(self):
        text = " ".join(f"word{i:03d}" for i in range(200))
        pieces = split_text(text, 100, 20)

        assert len(pieces) > 1
        assert all(len(p) <= 100 for p in pieces)
        # consecutive windows share text
        for previous, current in zip(pieces, pieces[1:]):
            assert current.split()[0] in previous

    def test_breaks_on_spaces(self):
        text = " ".join(["abcdefghi"] * 30)
        for piece in split_text(text, 50, 5):
            assert all(word == "abcdefghi" or "abcdefghi".endswith(word) for word in piece.split())

    def test_text_without_spaces_still_advances(self):
        pieces = split_text("x" * 250, 100, 10)
        assert len(pieces) == 3
        assert all(len(p) <= 100 for p in pieces)

    def test_overlap_must_be_smaller_than_window(self):
        with pytest.raises(ValueError):
            split_text("text", 10, 10)


class TestChunkText:
    def test_chunks_are_ordered_and_addressable(self):
        text = "Python " * 1000
        chunks = chunk_text(text, "src-1", "Guide", chunk_size_tokens=50, overlap_tokens=5)

        assert [c.position for c in chunks] == list(range(len(chunks)))
        assert all(c.source_id == "src-1" for c in chunks)
        assert all(len(c.content) <= 50 * CHARS_PER_TOKEN for c in chunks)
        assert chunks[0].metadata["document_name"] == "Guide"
        assert chunks[0].metadata["position"] == 0
        assert chunks[0].metadata["token_estimate"] == chunks[0].token_estimate

    def test_chunk_ids_are_deterministic(self):
        first = chunk_text("some text", "src-1", "Doc")
        again = chunk_text("some text", "src-1", "Doc")

        assert first[0].id == again[0].id == chunk_id("src-1", 0)
        assert chunk_id("src-1", 0) != chunk_id("src-2", 0)
        assert chunk_id("src-1", 0) != chunk_id("src-1", 1)

    def test_whitespace_is_normalized(self):
        chunks = chunk_text("  a\n\n b \t c  ", "src", "Doc")
        assert chunks[0].content == "a b c"

    def test_token_estimate_rounds_up(self):
        assert chunk_text("abcde", "src", "Doc")[0].token_estimate == 2

    def test_extra_metadata_is_merged(self):
        chunks = chunk_text("text", "src", "Doc", extra_metadata={"team": "platform"})
        assert chunks[0].metadata["team"] == "platform"

    @pytest.mark.parametrize("text", ["", "   \n\t ", None])
    def test_empty_text_raises(self, text):
        with pytest.raises(NothingToIndexError):
            chunk_text(text, "src", "Empty")


class TestChunkDocument:
    @pytest.mark.asyncio
    async def test_text_file(self):
        chunks = await chunk_document(
            b"Python knowledge for interviews.",
            "notes.txt",
            "src-1",
            organization_id="org-1",
            tags={"topic": "python"},
        )

        assert len(chunks) == 1
        assert chunks[0].metadata["filename"] == "notes.txt"
        assert chunks[0].metadata["document_name"] == "notes.txt"
        assert chunks[0].metadata["organization_id"] == "org-1"
        assert chunks[0].metadata["topic"] == "python"

    @pytest.mark.asyncio
    async def test_display_name_used_as_document_name(self, simple_docx):
        chunks = await chunk_document(
            simple_docx.getvalue(), "guide.docx", "src-1", document_name="Style Guide"
        )
        assert chunks[0].metadata["document_name"] == "Style Guide"
        assert "Test paragraph" in chunks[0].content

    @pytest.mark.asyncio
    async def test_empty_document_raises(self):
        with pytest.raises(NothingToIndexError):
            await chunk_document(b"   ", "blank.txt", "src-1")

    @pytest.mark.asyncio
    async def test_unsupported_type_raises(self):
        with pytest.raises(UnsupportedFileError):
            await chunk_document(b"binary", "image.png", "src-1")
