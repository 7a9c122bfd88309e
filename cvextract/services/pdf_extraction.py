"""
PDF → text state machine for an uploaded document.

    PENDING ──▶ PROCESSING ──▶ COMPLETED  (markdown_content + markdown_file_path)
                          └──▶ ERROR      (extraction_error)

The final row update always runs, so a document never stays PROCESSING
once run() returns. If that final write itself fails, StorageError propagates.
"""

import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

from ..core.errors import NotFoundError, OcrError, StorageError
from ..models.document import Document, DocumentStatus
from ..repositories.documents import DocumentsRepository
from . import realtime
from .ocr import OcrClient

logger = logging.getLogger(__name__)

SIGNED_URL_TTL = 600


@dataclass
class PdfExtractionResult:
    document_id: str
    status: DocumentStatus
    markdown_content: Optional[str] = None
    markdown_file_path: Optional[str] = None
    extraction_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == DocumentStatus.COMPLETED


def markdown_key(doc: Document) -> str:
    """Blob key for the extracted text: {owner}/markdowns/{stem}.md"""
    return f"{doc.user_id}/markdowns/{Path(doc.file_name).stem}.md"


class PdfExtractor:
    """
    Runs OCR for one document. Pass ocr=None to read the PDF text layer
    locally with pdfplumber instead of calling the OCR service.
    """

    def __init__(
        self,
        documents: DocumentsRepository,
        ocr: Optional[OcrClient],
        signed_url_ttl: int = SIGNED_URL_TTL,
    ):
        self.documents = documents
        self.ocr = ocr
        self.signed_url_ttl = signed_url_ttl

    async def run(self, file_path: str, owner_id: Optional[str] = None) -> PdfExtractionResult:
        """OCR one document. With owner_id set, other users' documents are not found."""
        doc = await self.documents.get_by_file_path(file_path)
        if doc is None or (owner_id is not None and doc.user_id != owner_id):
            raise NotFoundError(f"No document found for {file_path}")

        # Captured before any write: a failed commit rolls back and expires the row.
        doc_id, owner, target_key = doc.id, doc.user_id, markdown_key(doc)

        await self._mark_processing(doc_id, owner, file_path)

        markdown: Optional[str] = None
        md_path: Optional[str] = None
        error: Optional[str] = None

        try:
            markdown = await self._extract_text(file_path)
            md_path = target_key
            await self.documents.upload_markdown(md_path, markdown)
        except Exception as e:
            logger.error("Extraction failed for %s: %s", file_path, e)
            markdown, md_path = None, None
            error = str(e) or "Erreur lors de l'extraction avec OCR"

        status = DocumentStatus.ERROR if error else DocumentStatus.COMPLETED
        await self.documents.update_by_file_path(
            file_path,
            status=status.value,
            markdown_content=markdown,
            markdown_file_path=md_path,
            extraction_error=error,
        )
        await realtime.document_status(owner, doc_id, status.value, error)

        logger.info("Extraction %s for %s", status.value, file_path)
        return PdfExtractionResult(
            document_id=doc_id,
            status=status,
            markdown_content=markdown,
            markdown_file_path=md_path,
            extraction_error=error,
        )

    async def _mark_processing(self, doc_id: str, owner: str, file_path: str) -> None:
        try:
            await self.documents.update_by_file_path(
                file_path, status=DocumentStatus.PROCESSING.value
            )
        except StorageError as e:
            logger.warning("Could not mark %s as processing: %s", file_path, e)
            return
        await realtime.document_status(owner, doc_id, DocumentStatus.PROCESSING.value)

    async def _extract_text(self, file_path: str) -> str:
        if self.ocr is None:
            data = await self.documents.download_source(file_path)
            text = await asyncio.to_thread(read_pdf_text, data)
            if not text.strip():
                raise OcrError("No text layer found in PDF")
            return text

        logger.info("Starting OCR extraction for %s", file_path)
        url = await self.documents.get_signed_url(file_path, self.signed_url_ttl)
        return await self.ocr.extract(url)


def read_pdf_text(file_bytes: bytes) -> str:
    """Extract the text layer from a PDF using pdfplumber (local, free)."""
    import pdfplumber

    pages_text = []
    with pdfplumber.open(BytesIO(file_bytes)) as pdf:
        for page in pdf.pages:
            pages_text.append(page.extract_text() or "")
    return "\n\n".join(pages_text)
