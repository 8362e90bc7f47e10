"""Tests for resume and knowledge-document text extraction."""

from io import BytesIO

import pytest
from docx import Document

from core.errors import UnsupportedFileError
from lib import document_parser as parser
from tests.conftest import _create_minimal_pdf, _create_test_docx


class TestExtractText:
    @pytest.mark.asyncio
    async def test_pdf_resume(self):
        text = await parser.extract_text(_create_minimal_pdf("Python Engineer"), "cv.pdf")
        assert isinstance(text, str)
        assert "Python" in text or len(text) > 0

    @pytest.mark.asyncio
    async def test_pdf_without_text_layer(self):
        assert await parser.extract_text(_create_minimal_pdf(""), "scan.pdf") == ""

    @pytest.mark.asyncio
    async def test_docx_extension_is_case_insensitive(self):
        data = _create_test_docx("Ada Lovelace", "SQL").getvalue()
        text = await parser.extract_text(data, "CV.DOCX")
        assert text == "Ada Lovelace\nSQL"

    @pytest.mark.asyncio
    async def test_docx_tables_follow_paragraphs(self, simple_docx):
        text = await parser.extract_text(simple_docx, "cv.docx")
        assert text.splitlines() == ["Test paragraph", "Test cell"]

    @pytest.mark.asyncio
    async def test_empty_docx(self):
        stream = BytesIO()
        Document().save(stream)
        assert await parser.extract_text(stream.getvalue(), "blank.docx") == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["notes.txt", "guide.md"])
    async def test_plain_text_blank_lines_collapse(self, filename):
        text = await parser.extract_text(b"  Line one \n\n\n\nLine two\n", filename)
        assert text == "Line one\nLine two"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["resume.exe", "resume", "photo.png", "sheet.xlsx"])
    async def test_unknown_extension(self, filename):
        with pytest.raises(UnsupportedFileError) as exc_info:
            await parser.extract_text(b"data", filename)
        assert ".pdf" in exc_info.value.details["supported"]

    @pytest.mark.asyncio
    async def test_non_utf8_text(self):
        with pytest.raises(UnsupportedFileError, match="UTF-8"):
            await parser.extract_text(b"\xff\xfe\xfa", "notes.txt")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename", ["resume.docx", "resume.pdf"])
    async def test_corrupt_binary(self, filename):
        with pytest.raises(UnsupportedFileError):
            await parser.extract_text(b"not a real document", filename)


class TestStreams:
    @pytest.mark.asyncio
    async def test_stream_is_rewound(self):
        stream = _create_test_docx("Rewound")
        stream.seek(0, 2)
        assert await parser.extract_text_from_docx_stream(stream) == "Rewound"

    @pytest.mark.parametrize("data", [b"abc", bytearray(b"abc"), memoryview(b"abc")])
    def test_prepare_stream_wraps_buffers(self, data):
        stream = parser._prepare_stream(data)
        assert isinstance(stream, BytesIO)
        assert stream.read() == b"abc"

    @pytest.mark.asyncio
    async def test_closed_stream(self):
        stream = BytesIO(b"test")
        stream.close()
        with pytest.raises(ValueError, match="file_stream is closed"):
            await parser.extract_text_from_pdf_stream(stream)


@pytest.mark.parametrize("parts,expected", [
    (["Hello", "  World  ", "Test"], "Hello\nWorld\nTest"),
    (["Line1", "", "   ", "Line2"], "Line1\nLine2"),
    ([], ""),
])
def test_normalize_text(parts, expected):
    assert parser._normalize_text(parts) == expected
