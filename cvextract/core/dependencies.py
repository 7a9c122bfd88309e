"""
FastAPI dependencies. Injected into route handlers.

This is the composition root: each request gets repositories bound to its
session and the process-wide storage backend and service clients.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import AuthenticatedUser, get_current_user
from .config import get_settings
from .database import get_db as _get_db
from .flags import get_flags
from .storage import StorageBackend, get_storage as _get_storage
from ..pipeline.runner import ExtractionPipeline
from ..repositories import DocumentsRepository, ProfilesRepository, PromptsRepository
from ..services.completion import CompletionClient, get_completion_client
from ..services.ocr import OcrClient, get_ocr_client
from ..services.pdf_extraction import PdfExtractor


async def get_db() -> AsyncSession:
    """Yields an async DB session per request."""
    async for session in _get_db():
        yield session


async def get_user(
    authorization: str = Header(default=""),
) -> AuthenticatedUser:
    """
    Resolve authenticated user from Authorization header.
    Returns dev user if FF_USE_AUTH0=false.
    """
    try:
        return await get_current_user(authorization)
    except PermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


def ensure_same_user(user_id: Optional[str], user: AuthenticatedUser) -> None:
    """Reject a body/path userId that is not the caller (auth enabled only)."""
    if not get_flags().use_auth0 or not user_id:
        return
    if user_id != user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="userId does not match the authenticated user",
        )


def owner_scope(user: AuthenticatedUser) -> Optional[str]:
    """User id that document access is restricted to. None in dev mode."""
    return user.user_id if get_flags().use_auth0 else None


def get_storage_dep() -> StorageBackend:
    """Returns the active storage backend (S3 or local)."""
    return _get_storage()


def get_documents_repo(
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage_dep),
) -> DocumentsRepository:
    return DocumentsRepository(db, storage)


def get_prompts_repo(db: AsyncSession = Depends(get_db)) -> PromptsRepository:
    return PromptsRepository(db)


def get_profiles_repo(db: AsyncSession = Depends(get_db)) -> ProfilesRepository:
    return ProfilesRepository(db)


def get_completion_dep() -> CompletionClient:
    return get_completion_client()


def get_ocr_dep() -> Optional[OcrClient]:
    """OCR client, or None when FF_USE_OCR=false (local text-layer extraction)."""
    if not get_flags().use_ocr:
        return None
    return get_ocr_client()


def get_pipeline(
    documents: DocumentsRepository = Depends(get_documents_repo),
    prompts: PromptsRepository = Depends(get_prompts_repo),
    profiles: ProfilesRepository = Depends(get_profiles_repo),
    completion: CompletionClient = Depends(get_completion_dep),
) -> ExtractionPipeline:
    return ExtractionPipeline(documents, prompts, profiles, completion)


def get_pdf_extractor(
    documents: DocumentsRepository = Depends(get_documents_repo),
    ocr: Optional[OcrClient] = Depends(get_ocr_dep),
) -> PdfExtractor:
    return PdfExtractor(documents, ocr, signed_url_ttl=get_settings().signed_url_ttl)
