"""
Serves locally stored blobs behind signed URLs (FF_USE_S3=false only).
The OCR service fetches source PDFs through this route in local mode.
"""

import mimetypes

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from ..core.dependencies import get_storage_dep
from ..core.errors import StorageError
from ..core.storage import LocalStorage, StorageBackend, verify_signature

files_router = APIRouter(tags=["files"])


@files_router.get("/files/{key:path}")
async def serve_file(
    key: str,
    expires: int,
    signature: str,
    storage: StorageBackend = Depends(get_storage_dep),
):
    if not isinstance(storage, LocalStorage):
        raise HTTPException(status_code=404, detail="Direct file serving only in local mode")
    if not verify_signature(key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")

    try:
        data = await storage.download(key)
    except StorageError:
        raise HTTPException(status_code=404, detail="File not found")

    ct = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=ct)
