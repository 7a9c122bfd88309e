"""
Document upload, listing and deletion for the authenticated user.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from ..core.auth import AuthenticatedUser
from ..core.dependencies import get_documents_repo, get_user
from ..core.errors import StorageError
from ..models.document import Document, DocumentType
from ..repositories import DocumentsRepository

logger = logging.getLogger(__name__)

documents_router = APIRouter(tags=["documents"])

MAX_UPLOAD_SIZE = 20 * 1024 * 1024  # 20 MB
ALLOWED_EXTENSIONS = {".pdf"}


class DocumentResponse(BaseModel):
    id: str
    title: str
    document_type: str
    file_name: str
    file_path: str
    file_size: Optional[int] = None
    status: str
    extraction_error: Optional[str] = None
    has_markdown: bool = False
    created_at: Optional[datetime] = None


def _to_response(doc: Document) -> DocumentResponse:
    return DocumentResponse(
        id=doc.id,
        title=doc.title,
        document_type=doc.document_type,
        file_name=doc.file_name,
        file_path=doc.file_path,
        file_size=doc.file_size,
        status=doc.status,
        extraction_error=doc.extraction_error,
        has_markdown=bool(doc.markdown_content or doc.markdown_file_path),
        created_at=doc.created_at,
    )


def source_key(user_id: str, filename: str) -> str:
    """Blob key for an uploaded file: {userId}/{timestamp}-{filename}"""
    safe_name = Path(filename).name.replace(" ", "_")
    return f"{user_id}/{int(time.time() * 1000)}-{safe_name}"


@documents_router.post("/documents", response_model=DocumentResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    document_type: str = Form(DocumentType.CV.value),
    user: AuthenticatedUser = Depends(get_user),
    documents: DocumentsRepository = Depends(get_documents_repo),
):
    """Store a PDF and create its document row in pending state."""
    filename = file.filename or "document.pdf"
    if Path(filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only PDF files are accepted")

    try:
        doc_type = DocumentType(document_type)
    except ValueError:
        allowed = ", ".join(t.value for t in DocumentType)
        raise HTTPException(status_code=400, detail=f"document_type must be one of: {allowed}")

    file_bytes = await file.read()
    if not file_bytes:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(file_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {MAX_UPLOAD_SIZE // (1024 * 1024)}MB)",
        )

    key = source_key(user.user_id, filename)
    try:
        await documents.upload_source(key, file_bytes, file.content_type or "application/pdf")
        doc = await documents.create(
            user_id=user.user_id,
            title=title or Path(filename).stem,
            document_type=doc_type.value,
            file_path=key,
            file_name=filename,
            file_size=len(file_bytes),
        )
    except StorageError as e:
        logger.error("Upload failed for %s: %s", filename, e)
        raise HTTPException(status_code=500, detail="Error occurred while saving document")

    logger.info("Document uploaded: %s (%d bytes)", key, len(file_bytes))
    return _to_response(doc)


@documents_router.get("/documents", response_model=list[DocumentResponse])
async def list_documents(
    user: AuthenticatedUser = Depends(get_user),
    documents: DocumentsRepository = Depends(get_documents_repo),
):
    """List the user's documents, newest first."""
    return [_to_response(d) for d in await documents.list_for_user(user.user_id)]


@documents_router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    user: AuthenticatedUser = Depends(get_user),
    documents: DocumentsRepository = Depends(get_documents_repo),
):
    """Delete a document row and its blobs."""
    doc = await documents.get(document_id, user_id=user.user_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    try:
        await documents.delete(doc)
    except StorageError as e:
        logger.error("Delete failed for %s: %s", document_id, e)
        raise HTTPException(status_code=500, detail="Error occurred while deleting document")
    return {"status": "deleted", "id": document_id}
