"""
Main API router. Mounts all sub-routers under /api.
"""

from fastapi import APIRouter, Depends

from ..core.dependencies import get_user
from .documents import documents_router
from .extract import extract_router
from .files import files_router
from .profiles import profiles_router
from .prompts import prompts_router

router = APIRouter()


# ── Health (no auth) ─────────────────────────────────────────────────

@router.get("/health")
async def health():
    return {"status": "ok", "service": "cvextract"}


# ── API routes (auth required) ───────────────────────────────────────

router.include_router(extract_router, prefix="/api", dependencies=[Depends(get_user)])
router.include_router(documents_router, prefix="/api", dependencies=[Depends(get_user)])
router.include_router(prompts_router, prefix="/api", dependencies=[Depends(get_user)])
router.include_router(profiles_router, prefix="/api", dependencies=[Depends(get_user)])
# Signed-URL access: no bearer token, the signature is the credential.
router.include_router(files_router, prefix="/api")
