"""
Documents table + document blobs (source PDFs and extracted markdown).
"""

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import StorageError
from ..core.storage import StorageBackend
from ..models.document import Document, DocumentStatus
from .base import Repository

logger = logging.getLogger(__name__)

MARKDOWN_CONTENT_TYPE = "text/markdown"


class DocumentsRepository(Repository):
    def __init__(self, db: AsyncSession, storage: StorageBackend):
        super().__init__(db)
        self.storage = storage

    # ── Rows ─────────────────────────────────────────────────────────

    async def create(
        self,
        user_id: str,
        title: str,
        document_type: str,
        file_path: str,
        file_name: str,
        file_size: Optional[int] = None,
    ) -> Document:
        doc = Document(
            user_id=user_id,
            title=title,
            document_type=document_type,
            file_path=file_path,
            file_name=file_name,
            file_size=file_size,
            status=DocumentStatus.PENDING.value,
        )
        self.db.add(doc)
        await self._commit("Document insert")
        logger.info("Document created: %s (%s)", doc.id, file_path)
        return doc

    async def get(self, document_id: str, user_id: Optional[str] = None) -> Optional[Document]:
        query = select(Document).where(Document.id == document_id)
        if user_id is not None:
            query = query.where(Document.user_id == user_id)
        return await self._one_or_none(query)

    async def get_by_file_path(self, file_path: str) -> Optional[Document]:
        return await self._one_or_none(select(Document).where(Document.file_path == file_path))

    async def list_for_user(self, user_id: str) -> list[Document]:
        return await self._all(
            select(Document)
            .where(Document.user_id == user_id)
            .order_by(Document.created_at.desc())
        )

    async def get_completed(
        self, document_ids: Sequence[str], owner_id: Optional[str] = None
    ) -> list[Document]:
        """
        Completed documents among the ids, in the order the ids were given.
        With owner_id set, documents of other users are left out.
        """
        query = select(Document).where(
            Document.id.in_(list(document_ids)),
            Document.status == DocumentStatus.COMPLETED.value,
        )
        if owner_id is not None:
            query = query.where(Document.user_id == owner_id)
        docs = await self._all(query)
        position = {doc_id: i for i, doc_id in enumerate(document_ids)}
        return sorted(docs, key=lambda d: position[d.id])

    async def get_completed_for_user(self, user_id: str) -> list[Document]:
        return await self._all(
            select(Document)
            .where(
                Document.user_id == user_id,
                Document.status == DocumentStatus.COMPLETED.value,
            )
            .order_by(Document.created_at.asc(), Document.id.asc())
        )

    async def update_by_file_path(self, file_path: str, **fields) -> Document:
        doc = await self.get_by_file_path(file_path)
        if doc is None:
            raise StorageError(f"No document found for {file_path}")
        for name, value in fields.items():
            setattr(doc, name, value)
        await self._commit("Document update")
        return doc

    async def delete(self, doc: Document) -> None:
        """Remove the row and its blobs."""
        keys = [doc.file_path]
        if doc.markdown_file_path:
            keys.append(doc.markdown_file_path)
        for key in keys:
            await self.storage.delete(key)
        await self.db.delete(doc)
        await self._commit("Document delete")
        logger.info("Document deleted: %s", doc.id)

    # ── Blobs ────────────────────────────────────────────────────────

    async def upload_source(self, key: str, data: bytes, content_type: str) -> str:
        return await self.storage.upload(key, data, content_type)

    async def download_source(self, key: str) -> bytes:
        return await self.storage.download(key)

    async def get_signed_url(self, key: str, expires_in: Optional[int] = None) -> str:
        return await self.storage.signed_url(key, expires_in)

    async def upload_markdown(self, key: str, content: str) -> str:
        return await self.storage.upload(key, content.encode("utf-8"), MARKDOWN_CONTENT_TYPE)

    async def read_markdown(self, key: str) -> str:
        return await self.storage.download_text(key)

    # ── Helpers ──────────────────────────────────────────────────────

    async def _one_or_none(self, query) -> Optional[Document]:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(f"Document query failed: {e}") from e
        return result.scalar_one_or_none()

    async def _all(self, query) -> list[Document]:
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            raise StorageError(f"Document query failed: {e}") from e
        return list(result.scalars().all())
