"""Shared fixtures and utilities for tests."""

import json
import os
import tempfile
from io import BytesIO
from types import SimpleNamespace
from typing import Any, Optional

# Settings are read at import time, so the environment must be in place first.
_TEST_ROOT = tempfile.mkdtemp(prefix="screening-tests-")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_ROOT}/app.db")
os.environ.setdefault("VECTOR_STORE_BACKEND", "memory")
os.environ.setdefault("STORAGE_DIR", f"{_TEST_ROOT}/storage")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("JSON_LOGS", "false")

import pytest
import pytest_asyncio
from docx import Document
from docx.shared import Pt

import database.models  # noqa: F401
from core.notifications import NotificationDispatcher, TransitionEvent
from core.storage.local import LocalStorage
from database.engine import Base, create_engine, create_sessionmaker
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import JobPosting


# ==================== Model output fixtures ===================== #
def make_question(
    qid: str,
    category: str = "technical",
    correct: int = 0,
    options: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Canonical question dict."""
    return {
        "id": qid,
        "question": f"Question {qid}?",
        "options": options or ["A", "B", "C", "D"],
        "correctOptionIndex": correct,
        "category": category,
        "difficulty": "medium",
    }


def make_bank(aptitude: int = 5, technical: int = 5) -> list[dict[str, Any]]:
    """Bank whose correct answer is always option 0."""
    return [make_question(f"a{i}", "aptitude") for i in range(aptitude)] + [
        make_question(f"t{i}", "technical") for i in range(technical)
    ]


def screening_response(
    score: int = 80,
    questions: Any = None,
    **extra: Any,
) -> dict[str, Any]:
    """A well-formed resume-scoring model response."""
    if questions is None:
        questions = {
            "aptitude": [
                {"id": f"a{i}", "question": f"Aptitude {i}?", "options": ["1", "2", "3", "4"],
                 "correctOptionIndex": 0}
                for i in range(5)
            ],
            "technical": [
                {"id": f"t{i}", "question": f"Technical {i}?", "options": ["x", "y", "z", "w"],
                 "correctOptionIndex": 0}
                for i in range(5)
            ],
        }
    return {
        "score": score,
        "summary": "Solid backend experience.",
        "missing_skills": [],
        "questions": questions,
        **extra,
    }


class FakeModels:
    """Stands in for ``client.aio.models``.

    Responses are served in order; the last one repeats. Exceptions are raised.
    """

    def __init__(self, responses=(), embedding: Optional[list[float]] = None):
        self.responses = list(responses)
        self.embedding = embedding
        self.calls: list[dict[str, Any]] = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        text = item if isinstance(item, str) else json.dumps(item)
        return SimpleNamespace(text=text)

    async def embed_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        return SimpleNamespace(embeddings=[SimpleNamespace(values=list(self.embedding or []))])


class FakeGenAIClient:
    def __init__(self, responses=(), embedding: Optional[list[float]] = None):
        self.models = FakeModels(responses, embedding)
        self.aio = SimpleNamespace(models=self.models)


class FakeEmbedder:
    """Deterministic 3-d embeddings keyed on words in the text."""

    AXES = {"python": [1.0, 0.0, 0.0], "cooking": [0.0, 1.0, 0.0]}

    def __init__(self, fail_on: Optional[set[str]] = None):
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        for marker in self.fail_on:
            if marker in text:
                raise RuntimeError(f"embedding failed for {marker}")
        lowered = text.lower()
        for word, vector in self.AXES.items():
            if word in lowered:
                return list(vector)
        return [0.0, 0.0, 1.0]

    async def embed_query(self, text: str) -> list[float]:
        return await self.embed(text)


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that keeps every event it delivers."""

    def __init__(self):
        super().__init__()
        self.events: list[TransitionEvent] = []
        self.subscribe(self.events.append)


# ==================== Database fixtures ===================== #
@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield create_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "storage"))


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def job(session_factory):
    posting = JobPosting(
        title="Backend Engineer",
        description="Build Python APIs with FastAPI and PostgreSQL.",
        required_skills=["Python", "SQL"],
        organization_id="org-1",
    )
    async with session_factory() as session:
        session.add(posting)
        await session.commit()
        await session.refresh(posting)
    return posting


@pytest.fixture
def make_application(session_factory, job):
    """Insert an application directly, bypassing screening."""

    async def _make(
        status: ApplicationStatus = ApplicationStatus.NEW,
        question_bank: Any = None,
        **fields: Any,
    ) -> Application:
        data = {
            "job_id": job.id,
            "candidate_name": "Ada Lovelace",
            "candidate_email": "ada@example.com",
            "resume_text": "Python and SQL engineer with FastAPI experience.",
        }
        data.update(fields)
        application = Application(status=status, question_bank=question_bank, **data)
        async with session_factory() as session:
            session.add(application)
            await session.commit()
            await session.refresh(application)
        return application

    return _make


# ==================== File fixtures ===================== #
@pytest.fixture
def minimal_pdf():
    """Fixture providing a minimal valid PDF."""
    return _create_minimal_pdf("Test PDF")


@pytest.fixture
def simple_docx():
    """Fixture providing a simple DOCX document."""
    return _create_test_docx("Test paragraph", "Test cell", paragraphs_only=False)


def _create_minimal_pdf(text: str) -> bytes:
    """Create a minimal valid PDF with embedded text."""
    pdf = (
        b"%PDF-1.4\n"
        b"1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
        b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj\n"
        b"3 0 obj<</Type/Page/Parent 2 0 R/MediaBox[0 0 612 792]/Contents 4 0 R/Resources<</Font<</F1 5 0 R>>>>>>endobj\n"
        b"4 0 obj<</Length 44>>stream\nBT /F1 12 Tf 100 700 Td ("
        + text.encode()
        + b") Tj ET\nendstream endobj\n"
        b"5 0 obj<</Type/Font/Subtype/Type1/BaseFont/Helvetica>>endobj\n"
        b"xref\n0 6\n0000000000 65535 f \n0000000009 00000 n \n0000000058 00000 n \n0000000115 00000 n \n0000000214 00000 n \n0000000306 00000 n \n"
        b"trailer<</Size 6/Root 1 0 R>>\nstartxref\n388\n%%EOF"
    )
    return pdf


def _create_test_docx(
    para_text: str, cell_text: str = "", paragraphs_only: bool = True
) -> BytesIO:
    """Create a simple DOCX document for testing."""
    stream = BytesIO()
    doc = Document()

    para1 = doc.add_paragraph(para_text)
    para1.runs[0].font.size = Pt(12)

    if cell_text and paragraphs_only:
        para2 = doc.add_paragraph(cell_text)
        para2.runs[0].font.size = Pt(12)

    if not paragraphs_only:
        table = doc.add_table(rows=1, cols=1)
        cell = table.rows[0].cells[0]
        cell.text = cell_text or "Table Cell"

    doc.save(stream)
    stream.seek(0)
    return stream
