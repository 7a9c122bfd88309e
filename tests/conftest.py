"""
Pytest configuration.
In-memory SQLite store, temporary local blob storage, fake OCR and completion services.
"""

import os

# Must be set before any cvextract settings are read.
os.environ["FF_USE_AUTH0"] = "false"
os.environ["FF_USE_S3"] = "false"
os.environ["FF_USE_REDIS"] = "false"
os.environ["FF_USE_OCR"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["OPENAI_API_KEY"] = "test-openai-key"
os.environ["FJSOFTLAB_OCR_API_KEY"] = "test-ocr-key"

from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cvextract.core.database import init_db
from cvextract.core.storage import LocalStorage
from cvextract.models.document import DocumentStatus
from cvextract.repositories import DocumentsRepository, ProfilesRepository, PromptsRepository
from cvextract.services.ocr import OcrClient

OCR_BASE_URL = "https://ocr.test"


# ==================== Store fixtures ====================

@pytest.fixture
async def engine():
    """Fresh in-memory database per test, tables created and prompts seeded."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "blobs"))


@pytest.fixture
def documents_repo(db, storage):
    return DocumentsRepository(db, storage)


@pytest.fixture
def prompts_repo(db):
    return PromptsRepository(db)


@pytest.fixture
def profiles_repo(db):
    return ProfilesRepository(db)


@pytest.fixture
def make_document(documents_repo):
    """Factory: create a document row with a given status and content."""
    counter = {"n": 0}

    async def _make(
        user_id: str = "user-1",
        title: Optional[str] = None,
        status: DocumentStatus = DocumentStatus.COMPLETED,
        markdown_content: Optional[str] = None,
        markdown_file_path: Optional[str] = None,
        document_type: str = "cv",
        file_name: Optional[str] = None,
    ):
        counter["n"] += 1
        n = counter["n"]
        name = file_name or f"doc{n}.pdf"
        doc = await documents_repo.create(
            user_id=user_id,
            title=title or f"Document {n}",
            document_type=document_type,
            file_path=f"{user_id}/{1700000000000 + n}-{name}",
            file_name=name,
            file_size=1234,
        )
        if status != DocumentStatus.PENDING or markdown_content or markdown_file_path:
            await documents_repo.update_by_file_path(
                doc.file_path,
                status=status.value,
                markdown_content=markdown_content,
                markdown_file_path=markdown_file_path,
            )
        return doc

    return _make


# ==================== Fake external services ====================

class FakeCompletion:
    """Stands in for CompletionClient. Records every message list it receives."""

    def __init__(self, content: str = '{"ok": true}', error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: list[list[dict]] = []

    async def complete(self, messages: list[dict]) -> dict:
        self.calls.append(messages)
        if self.error:
            raise self.error
        return {
            "choices": [{"message": {"role": "assistant", "content": self.content}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5},
        }


@pytest.fixture
def fake_completion():
    return FakeCompletion()


class FakeOcrService:
    """
    httpx handler emulating the OCR provider.
    statuses: values returned by successive status checks.
    """

    def __init__(
        self,
        statuses: list[str],
        result_body: str = '{"markdown": "# Jane Doe\\nIngénieure"}',
        submit_responses: Optional[list[httpx.Response]] = None,
    ):
        self.statuses = list(statuses)
        self.result_body = result_body
        self.submit_responses = submit_responses
        self.submitted: list[dict] = []
        self.status_checks = 0
        self.result_fetches = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        assert request.headers.get("x-authentication") == "test-ocr-key"

        if path in ("/api/v1/ocr", "/api/V1/ocr"):
            self.submitted.append({"path": path, "body": request.content.decode()})
            if self.submit_responses:
                return self.submit_responses.pop(0)
            return httpx.Response(200, json={"job_id": "job-1"})

        if path == "/api/v1/status/job-1":
            status = self.statuses[self.status_checks]
            self.status_checks += 1
            return httpx.Response(200, json={"status": status})

        if path == "/api/v1/result/job-1":
            self.result_fetches += 1
            return httpx.Response(200, text=self.result_body)

        return httpx.Response(404, text="not found")

    def client(self, sleep=None) -> OcrClient:
        async def no_sleep(_seconds):
            return None

        return OcrClient(
            api_key="test-ocr-key",
            base_url=OCR_BASE_URL,
            http=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            sleep=sleep or no_sleep,
        )


@pytest.fixture
def ocr_service():
    """Factory for FakeOcrService instances."""
    return FakeOcrService
