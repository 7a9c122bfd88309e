"""
Extraction API.

POST /api/extract/pdf-data           OCR one uploaded PDF
POST /api/extract/individual-data    documentIds + userId
POST /api/extract/formations         documentIds
POST /api/extract/parcours-pro       documentIds
POST /api/extract/autres-experience  userId
POST /api/extract/realisation        userId
POST /api/analysis/openAi            documentIds + userId (+ prompt)
POST /api/launch-extraction          any of the above, selected by key
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..core.auth import AuthenticatedUser
from ..core.dependencies import (
    ensure_same_user,
    get_pdf_extractor,
    get_pipeline,
    get_user,
    owner_scope,
)
from ..core.errors import NotFoundError, StorageError
from ..pipeline import (
    TASKS,
    ExtractionContext,
    ExtractionPipeline,
    ExtractionRequest,
    ExtractionTask,
    StepFailure,
)
from ..services.pdf_extraction import PdfExtractor

logger = logging.getLogger(__name__)

extract_router = APIRouter(tags=["extraction"])


# ── Schemas ──────────────────────────────────────────────────────────

class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PdfExtractionBody(CamelModel):
    file_path: Optional[str] = Field(default=None, alias="filePath")


class PdfExtractionResponse(CamelModel):
    success: bool
    markdown_content: Optional[str] = Field(default=None, alias="markdownContent")
    extraction_error: Optional[str] = Field(default=None, alias="extractionError")


class ExtractionBody(CamelModel):
    # Loosely typed so shape errors surface as 400s from the validate step.
    document_ids: Any = Field(default=None, alias="documentIds")
    user_id: Optional[str] = Field(default=None, alias="userId")
    prompt: Optional[str] = None


class LaunchExtractionBody(ExtractionBody):
    key: Optional[str] = None


class ProcessedDocument(BaseModel):
    id: str
    title: str
    type: str


class ExtractionResponse(CamelModel):
    success: bool = True
    extracted_data: Optional[str] = Field(default=None, alias="extractedData")
    documents_count: int = Field(alias="documentsCount")
    processed_documents: list[ProcessedDocument] = Field(alias="processedDocuments")


# ── OCR ──────────────────────────────────────────────────────────────

@extract_router.post(
    "/extract/pdf-data",
    response_model=PdfExtractionResponse,
)
async def extract_pdf_data(
    body: PdfExtractionBody,
    extractor: PdfExtractor = Depends(get_pdf_extractor),
    user: AuthenticatedUser = Depends(get_user),
):
    """Run OCR for an uploaded PDF. Blocks until the job completes or times out."""
    if not body.file_path:
        raise HTTPException(status_code=400, detail="filePath is required")

    try:
        result = await extractor.run(body.file_path, owner_id=owner_scope(user))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageError as e:
        logger.error("Final document update failed for %s: %s", body.file_path, e)
        raise HTTPException(status_code=500, detail="Error occurred while updating document")

    return PdfExtractionResponse(
        success=result.succeeded,
        markdown_content=result.markdown_content,
        extraction_error=result.extraction_error,
    )


# ── AI tasks ─────────────────────────────────────────────────────────

async def run_task(
    task: ExtractionTask,
    body: ExtractionBody,
    pipeline: ExtractionPipeline,
    user: AuthenticatedUser,
) -> ExtractionResponse:
    ensure_same_user(body.user_id, user)

    spec = TASKS[task]
    result = await pipeline.run(
        spec,
        ExtractionRequest(
            document_ids=body.document_ids,
            user_id=body.user_id,
            instruction=body.prompt,
            owner_id=owner_scope(user),
        ),
    )
    if isinstance(result, StepFailure):
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return _to_response(result)


def _to_response(ctx: ExtractionContext) -> ExtractionResponse:
    return ExtractionResponse(
        success=True,
        extracted_data=ctx.extracted_data if ctx.task.returns_data else None,
        documents_count=len(ctx.documents),
        processed_documents=[ProcessedDocument(**s) for s in ctx.summaries],
    )


def _task_endpoint(task: ExtractionTask):
    async def endpoint(
        body: ExtractionBody,
        pipeline: ExtractionPipeline = Depends(get_pipeline),
        user: AuthenticatedUser = Depends(get_user),
    ):
        return await run_task(task, body, pipeline, user)

    endpoint.__name__ = f"run_{task.name.lower()}"
    endpoint.__doc__ = f"Run the {task.value} extraction."
    return endpoint


TASK_ROUTES: dict[str, ExtractionTask] = {
    "/extract/individual-data": ExtractionTask.INDIVIDUAL_DATA,
    "/extract/formations": ExtractionTask.FORMATIONS,
    "/extract/parcours-pro": ExtractionTask.PARCOURS_PRO,
    "/extract/autres-experience": ExtractionTask.AUTRES_EXPERIENCES,
    "/extract/realisation": ExtractionTask.REALISATIONS,
    "/analysis/openAi": ExtractionTask.ANALYSIS,
}

for _path, _task in TASK_ROUTES.items():
    extract_router.add_api_route(
        _path,
        _task_endpoint(_task),
        methods=["POST"],
        response_model=ExtractionResponse,
        response_model_exclude_none=True,
    )


@extract_router.post(
    "/launch-extraction",
    response_model=ExtractionResponse,
    response_model_exclude_none=True,
)
async def launch_extraction(
    body: LaunchExtractionBody,
    pipeline: ExtractionPipeline = Depends(get_pipeline),
    user: AuthenticatedUser = Depends(get_user),
):
    """Dispatch to a task pipeline by key."""
    try:
        task = ExtractionTask(body.key)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Invalid document process key or Process not yet implemented",
        )
    return await run_task(task, body, pipeline, user)
