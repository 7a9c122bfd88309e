"""
HTTP layer: routing, status codes, response shapes.
Auth is off (dev user), storage is a temp dir, external services are faked.
"""

import httpx
import pytest
from fastapi import HTTPException

from cvextract.core import dependencies
from cvextract.core.auth import DEV_USER, AuthenticatedUser
from cvextract.core.dependencies import (
    ensure_same_user,
    get_completion_dep,
    get_db,
    get_ocr_dep,
    get_storage_dep,
    get_user,
)
from cvextract.factory import create_app
from cvextract.models.document import DocumentStatus
from cvextract.services.completion import CompletionClient

from .conftest import FakeCompletion

USER = DEV_USER.user_id


@pytest.fixture
def completion():
    return FakeCompletion(content='[{"nom_formation": "Master"}]')


@pytest.fixture
def app(db, storage, completion):
    app = create_app()

    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_storage_dep] = lambda: storage
    app.dependency_overrides[get_completion_dep] = lambda: completion
    app.dependency_overrides[get_ocr_dep] = lambda: None
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ==================== Extraction tasks ====================

class TestExtractionRoutes:
    async def test_formations_response_is_camel_case(self, client, make_document):
        doc = await make_document(user_id=USER, title="CV", markdown_content="Master 2020")

        resp = await client.post("/api/extract/formations", json={"documentIds": [doc.id]})

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "extractedData": '[{"nom_formation": "Master"}]',
            "documentsCount": 1,
            "processedDocuments": [{"id": doc.id, "title": "CV", "type": "cv"}],
        }

    async def test_launch_extraction_dispatches_by_key(self, client, make_document, completion):
        doc = await make_document(user_id=USER, markdown_content="CV")

        resp = await client.post(
            "/api/launch-extraction",
            json={"key": "extract-parcours-professionnel", "documentIds": [doc.id]},
        )

        assert resp.status_code == 200
        assert resp.json()["documentsCount"] == 1
        assert len(completion.calls) == 1

    @pytest.mark.parametrize("key", ["formations", "", None, "EXTRACT-FORMATIONS"])
    async def test_launch_extraction_unknown_key(self, client, completion, key):
        resp = await client.post("/api/launch-extraction", json={"key": key, "documentIds": ["x"]})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid document process key or Process not yet implemented"
        assert completion.calls == []

    async def test_individual_data_requires_user_id(self, client, make_document):
        doc = await make_document(user_id=USER, markdown_content="CV")

        resp = await client.post("/api/extract/individual-data", json={"documentIds": [doc.id]})

        assert resp.status_code == 400
        assert resp.json()["detail"] == "userId is required"

    async def test_document_ids_must_be_a_list(self, client):
        resp = await client.post("/api/extract/formations", json={"documentIds": "abc"})
        assert resp.status_code == 400

    async def test_no_completed_documents(self, client, make_document, completion):
        doc = await make_document(user_id=USER, status=DocumentStatus.PROCESSING)

        resp = await client.post("/api/extract/formations", json={"documentIds": [doc.id]})

        assert resp.status_code == 404
        assert completion.calls == []

    async def test_analysis_omits_extracted_data(self, client, make_document, completion):
        doc = await make_document(user_id=USER, markdown_content="CV")

        resp = await client.post(
            "/api/analysis/openAi",
            json={"documentIds": [doc.id], "userId": USER, "prompt": "Résume."},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert "extractedData" not in body
        assert body["documentsCount"] == 1
        assert completion.calls[0][1]["content"].startswith("Résume.")

    async def test_realisations_use_all_completed_documents_of_user(self, client, make_document):
        await make_document(user_id=USER, markdown_content="A")
        await make_document(user_id=USER, markdown_content="B")
        await make_document(user_id="someone-else", markdown_content="C")

        resp = await client.post("/api/extract/realisation", json={"userId": USER})

        assert resp.status_code == 200
        assert resp.json()["documentsCount"] == 2

    async def test_rate_limit_body_is_returned_verbatim(self, app, client, make_document):
        body = '{"error": {"message": "Rate limit reached", "type": "requests"}}'
        app.dependency_overrides[get_completion_dep] = lambda: CompletionClient(
            api_key="sk-test",
            base_url="https://llm.test/v1",
            model="gpt-4.1-2025-04-14",
            max_completion_tokens=1000,
            http=httpx.AsyncClient(
                transport=httpx.MockTransport(lambda request: httpx.Response(429, text=body))
            ),
        )
        doc = await make_document(user_id=USER, markdown_content="CV")

        resp = await client.post("/api/extract/formations", json={"documentIds": [doc.id]})

        assert resp.status_code == 502
        assert resp.json()["detail"] == body

        results = await client.get(f"/api/prompt-results/{USER}")
        assert results.json() == {"results": []}


# ==================== OCR ====================

class TestPdfData:
    async def test_missing_file_path(self, client):
        resp = await client.post("/api/extract/pdf-data", json={})
        assert resp.status_code == 400

    async def test_unknown_file_path(self, client):
        resp = await client.post("/api/extract/pdf-data", json={"filePath": "nobody/nothing.pdf"})
        assert resp.status_code == 404

    async def test_ocr_success(self, app, client, make_document, documents_repo, ocr_service):
        service = ocr_service(statuses=["queued", "completed"])
        app.dependency_overrides[get_ocr_dep] = lambda: service.client()
        doc = await make_document(user_id=USER, status=DocumentStatus.PENDING, file_name="cv.pdf")

        resp = await client.post("/api/extract/pdf-data", json={"filePath": doc.file_path})

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "markdownContent": "# Jane Doe\nIngénieure",
            "extractionError": None,
        }
        stored = await documents_repo.get(doc.id)
        await documents_repo.db.refresh(stored)
        assert stored.status == DocumentStatus.COMPLETED.value
        assert stored.markdown_file_path == f"{USER}/markdowns/cv.md"

    async def test_ocr_failure_is_reported_in_body(self, app, client, make_document, ocr_service):
        service = ocr_service(statuses=["failed"])
        app.dependency_overrides[get_ocr_dep] = lambda: service.client()
        doc = await make_document(user_id=USER, status=DocumentStatus.PENDING)

        resp = await client.post("/api/extract/pdf-data", json={"filePath": doc.file_path})

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["extractionError"] == "OCR processing failed with status: failed"


# ==================== Documents & files ====================

class TestDocuments:
    async def test_upload_list_delete(self, client, storage):
        resp = await client.post(
            "/api/documents",
            files={"file": ("Mon CV.pdf", b"%PDF-1.4 fake", "application/pdf")},
            data={"title": "Mon CV", "document_type": "cv"},
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["status"] == DocumentStatus.PENDING.value
        assert created["file_path"].startswith(f"{USER}/")
        assert created["file_path"].endswith("-Mon_CV.pdf")
        assert await storage.download(created["file_path"]) == b"%PDF-1.4 fake"

        listed = await client.get("/api/documents")
        assert [d["id"] for d in listed.json()] == [created["id"]]

        deleted = await client.delete(f"/api/documents/{created['id']}")
        assert deleted.status_code == 200
        assert (await client.get("/api/documents")).json() == []

    async def test_rejects_non_pdf(self, client):
        resp = await client.post(
            "/api/documents",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400

    async def test_rejects_unknown_document_type(self, client):
        resp = await client.post(
            "/api/documents",
            files={"file": ("cv.pdf", b"%PDF", "application/pdf")},
            data={"document_type": "diploma"},
        )
        assert resp.status_code == 400

    async def test_delete_other_users_document(self, client, make_document):
        doc = await make_document(user_id="someone-else")
        resp = await client.delete(f"/api/documents/{doc.id}")
        assert resp.status_code == 404


class TestSignedFiles:
    async def test_signed_url_round_trip(self, client, storage):
        await storage.upload(f"{USER}/1-cv.pdf", b"%PDF-1.4", "application/pdf")
        url = httpx.URL(await storage.signed_url(f"{USER}/1-cv.pdf"))

        resp = await client.get(url.raw_path.decode())

        assert resp.status_code == 200
        assert resp.content == b"%PDF-1.4"

    async def test_tampered_signature(self, client, storage):
        await storage.upload(f"{USER}/1-cv.pdf", b"%PDF-1.4", "application/pdf")
        url = httpx.URL(await storage.signed_url(f"{USER}/1-cv.pdf"))
        params = dict(url.params)
        params["signature"] = "0" * 64

        resp = await client.get(url.path, params=params)

        assert resp.status_code == 403


# ==================== Prompts & profiles ====================

class TestPromptsAndProfiles:
    async def test_prompt_catalogue(self, client):
        resp = await client.get("/api/prompts")
        keys = {p["key"] for p in resp.json()}
        assert "extract-formations" in keys
        assert "openai-assistant" in keys

    async def test_prompt_results_shape(self, client, make_document):
        doc = await make_document(user_id=USER, markdown_content="CV")
        await client.post(
            "/api/extract/individual-data",
            json={"documentIds": [doc.id], "userId": USER},
        )

        resp = await client.get(f"/api/prompt-results/{USER}")

        results = resp.json()["results"]
        assert len(results) == 1
        assert results[0]["result"] == '[{"nom_formation": "Master"}]'
        assert set(results[0]["prompts"]) == {"id", "title", "sub_title"}

    async def test_profile_create_and_read(self, client):
        created = await client.post("/api/profiles", json={"first_name": "Jane", "last_name": "Doe"})
        assert created.status_code == 200

        resp = await client.get(f"/api/profiles/{USER}")
        assert resp.json()["first_name"] == "Jane"

    async def test_missing_profile(self, client):
        resp = await client.get("/api/profiles/nobody")
        assert resp.status_code == 404


class TestOwnership:
    def test_other_user_rejected_when_auth_enabled(self, monkeypatch):
        class AuthOn:
            use_auth0 = True

        monkeypatch.setattr(dependencies, "get_flags", lambda: AuthOn())

        with pytest.raises(HTTPException) as exc:
            ensure_same_user("user-2", DEV_USER)
        assert exc.value.status_code == 403

        ensure_same_user(DEV_USER.user_id, DEV_USER)
        ensure_same_user(None, DEV_USER)

    def test_any_user_accepted_in_dev_mode(self):
        ensure_same_user("user-2", DEV_USER)


class TestDocumentScopingWithAuth:
    """Auth on, caller is "intruder"; documents of "owner-1" must stay out of reach."""

    @pytest.fixture(autouse=True)
    def auth_on(self, app, monkeypatch):
        class AuthOn:
            use_auth0 = True
            use_ocr = True

        monkeypatch.setattr(dependencies, "get_flags", lambda: AuthOn())
        app.dependency_overrides[get_user] = lambda: AuthenticatedUser(user_id="intruder")

    async def test_foreign_document_ids_are_not_found(
        self, client, make_document, completion, profiles_repo, prompts_repo
    ):
        victim = await make_document(user_id="owner-1", markdown_content="Secret CV")

        resp = await client.post("/api/extract/formations", json={"documentIds": [victim.id]})

        assert resp.status_code == 404
        assert completion.calls == []
        assert await profiles_repo.get("owner-1") is None
        assert await prompts_repo.list_results("owner-1") == []

    async def test_foreign_documents_dropped_from_mixed_request(self, client, make_document, completion):
        mine = await make_document(user_id="intruder", markdown_content="My CV")
        victim = await make_document(user_id="owner-1", markdown_content="Secret CV")

        resp = await client.post(
            "/api/extract/formations", json={"documentIds": [victim.id, mine.id]}
        )

        assert resp.status_code == 200
        assert resp.json()["processedDocuments"] == [{"id": mine.id, "title": mine.title, "type": "cv"}]
        prompt = completion.calls[0][1]["content"]
        assert "My CV" in prompt
        assert "Secret CV" not in prompt

    async def test_foreign_user_id_is_forbidden(self, client, make_document, completion):
        await make_document(user_id="owner-1", markdown_content="Secret CV")

        resp = await client.post("/api/extract/realisation", json={"userId": "owner-1"})

        assert resp.status_code == 403
        assert completion.calls == []

    async def test_foreign_file_path_is_not_found(self, client, make_document, documents_repo):
        victim = await make_document(user_id="owner-1", status=DocumentStatus.PENDING)

        resp = await client.post("/api/extract/pdf-data", json={"filePath": victim.file_path})

        assert resp.status_code == 404
        row = await documents_repo.get(victim.id)
        await documents_repo.db.refresh(row)
        assert row.status == DocumentStatus.PENDING.value
