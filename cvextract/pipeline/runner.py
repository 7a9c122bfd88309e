"""
Extraction pipeline: an ordered list of steps over an ExtractionContext.

    validate → fetch_documents → combine_content → render_prompt
             → call_completion → persist_result

Each step returns a new context or a StepFailure. The first failure stops
the run; nothing after it executes.
"""

import logging
from typing import Awaitable, Callable

from ..core.errors import CompletionError, FailureKind, StorageError, UpstreamError
from ..models.document import Document
from ..repositories import DocumentsRepository, ProfilesRepository, PromptsRepository
from ..services.completion import CompletionClient, Role, first_choice_content, message
from .context import (
    DEFAULT_INSTRUCTION,
    ExtractionContext,
    ExtractionRequest,
    StepFailure,
    StepResult,
)
from .tasks import DocumentSource, TaskSpec

logger = logging.getLogger(__name__)

PLACEHOLDER = "{documents}"

Step = Callable[[ExtractionContext], Awaitable[StepResult]]


def render_template(template: str, documents: str) -> str:
    """Single-pass substitution; braces inside documents are left alone."""
    return template.replace(PLACEHOLDER, documents)


def document_header(doc: Document) -> str:
    return f"\n\n=== DOCUMENT: {doc.title} ({doc.document_type}) ===\n"


class ExtractionPipeline:
    def __init__(
        self,
        documents: DocumentsRepository,
        prompts: PromptsRepository,
        profiles: ProfilesRepository,
        completion: CompletionClient,
    ):
        self.documents = documents
        self.prompts = prompts
        self.profiles = profiles
        self.completion = completion

    @property
    def steps(self) -> list[Step]:
        return [
            self.validate,
            self.fetch_documents,
            self.combine_content,
            self.render_prompt,
            self.call_completion,
            self.persist_result,
        ]

    async def run(self, task: TaskSpec, request: ExtractionRequest) -> StepResult:
        ctx = ExtractionContext(task=task, request=request)
        for step in self.steps:
            result = await step(ctx)
            if isinstance(result, StepFailure):
                logger.warning(
                    "Extraction %s stopped at %s: %s",
                    task.task.value, step.__name__, result.message[:200],
                )
                return result
            ctx = result

        logger.info(
            "Extraction %s done for user %s (%d documents)",
            task.task.value, ctx.user_id, len(ctx.documents),
        )
        return ctx

    # ── Steps ────────────────────────────────────────────────────────

    async def validate(self, ctx: ExtractionContext) -> StepResult:
        task, req = ctx.task, ctx.request

        if (task.requires_user or task.source == DocumentSource.BY_OWNER) and not req.user_id:
            return StepFailure(FailureKind.VALIDATION, "userId is required")

        document_ids: tuple[str, ...] = ()
        if task.source == DocumentSource.BY_IDS:
            ids = req.document_ids
            if not ids or not isinstance(ids, list) or not all(isinstance(i, str) and i for i in ids):
                return StepFailure(
                    FailureKind.VALIDATION,
                    "documentIds is required and must be a non-empty array",
                )
            document_ids = tuple(ids)

        return ctx.evolve(user_id=req.user_id, document_ids=document_ids)

    async def fetch_documents(self, ctx: ExtractionContext) -> StepResult:
        owner_id = ctx.request.owner_id
        try:
            if ctx.task.source == DocumentSource.BY_OWNER:
                if owner_id is not None and ctx.user_id != owner_id:
                    docs = []
                else:
                    docs = await self.documents.get_completed_for_user(ctx.user_id)
            else:
                docs = await self.documents.get_completed(ctx.document_ids, owner_id=owner_id)
        except StorageError as e:
            logger.error("Fetching documents failed: %s", e)
            return StepFailure(FailureKind.PERSISTENCE, "An error occurred while fetching documents")

        if not docs:
            return StepFailure(FailureKind.NOT_FOUND, "No completed documents found")

        # Without an explicit userId, results belong to the documents' owner.
        user_id = ctx.user_id or docs[0].user_id
        return ctx.evolve(documents=tuple(docs), user_id=user_id)

    async def combine_content(self, ctx: ExtractionContext) -> StepResult:
        parts = []
        summaries = []

        for doc in ctx.documents:
            parts.append(document_header(doc))

            if doc.markdown_content:
                parts.append(doc.markdown_content)
            elif doc.markdown_file_path:
                try:
                    parts.append(await self.documents.read_markdown(doc.markdown_file_path))
                except StorageError as e:
                    logger.error("Reading %s failed: %s", doc.markdown_file_path, e)
                    parts.append(f"[Erreur lors du traitement du fichier: {doc.markdown_file_path}]")
            else:
                parts.append("[Aucun contenu disponible pour ce document]")

            summaries.append({"id": doc.id, "title": doc.title, "type": doc.document_type})

        return ctx.evolve(combined_content="".join(parts), summaries=tuple(summaries))

    async def render_prompt(self, ctx: ExtractionContext) -> StepResult:
        name = ctx.task.prompt_name
        try:
            prompt = await self.prompts.get_active_by_name(name)
        except StorageError as e:
            return StepFailure(FailureKind.PERSISTENCE, str(e))

        if prompt is None:
            return StepFailure(FailureKind.NOT_FOUND, f"No active prompt found for {name}")

        user_prompt = render_template(prompt.prompt_text, ctx.combined_content)
        if ctx.task.accepts_instruction:
            instruction = ctx.request.instruction or DEFAULT_INSTRUCTION
            user_prompt = f"{instruction}\n\n{user_prompt}"

        return ctx.evolve(
            prompt_id=prompt.id,
            system_message=prompt.system_message or "",
            user_prompt=user_prompt,
        )

    async def call_completion(self, ctx: ExtractionContext) -> StepResult:
        messages = [
            message(Role.SYSTEM, ctx.system_message),
            message(Role.USER, ctx.user_prompt),
        ]
        try:
            data = await self.completion.complete(messages)
        except CompletionError as e:
            return StepFailure(FailureKind.UPSTREAM, e.body)
        except UpstreamError as e:
            return StepFailure(FailureKind.UPSTREAM, str(e))

        content = first_choice_content(data)
        if content is None:
            return StepFailure(FailureKind.UPSTREAM, "Invalid OpenAI response")

        return ctx.evolve(extracted_data=content)

    async def persist_result(self, ctx: ExtractionContext) -> StepResult:
        try:
            await self.prompts.save_result(ctx.user_id, ctx.prompt_id, ctx.extracted_data)
            await self.profiles.update_fields(
                ctx.user_id, **{ctx.task.profile_column: ctx.extracted_data}
            )
        except StorageError as e:
            return StepFailure(FailureKind.PERSISTENCE, str(e))
        return ctx
