"""
Prompts (read-only templates) and prompt results (one row per user and prompt).
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import StorageError
from ..models.base import new_uuid
from ..models.prompt import Prompt, PromptResult
from .base import Repository

logger = logging.getLogger(__name__)

UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PromptsRepository(Repository):
    async def get_active_by_name(self, name: str) -> Optional[Prompt]:
        """Latest active version of the prompt for a task key."""
        try:
            result = await self.db.execute(
                select(Prompt)
                .where(Prompt.name == name, Prompt.active == True)  # noqa: E712
                .order_by(Prompt.version.desc())
                .limit(1)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Prompt query failed: {e}") from e
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Prompt]:
        try:
            result = await self.db.execute(
                select(Prompt)
                .where(Prompt.active == True)  # noqa: E712
                .order_by(Prompt.created_at.desc())
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Prompt query failed: {e}") from e
        return list(result.scalars().all())

    async def save_result(self, user_id: str, prompt_id: str, value: str) -> PromptResult:
        """
        Native upsert on (user_id, prompt_id). Concurrent runs for the same
        user and task never conflict; the last write wins.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect not in UPSERT_INSERTS:
            raise StorageError(f"Prompt result upsert not supported on {dialect}")

        stmt = UPSERT_INSERTS[dialect](PromptResult).values(
            id=new_uuid(), user_id=user_id, prompt_id=prompt_id, result=value
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PromptResult.user_id, PromptResult.prompt_id],
            set_={"result": stmt.excluded.result, "updated_at": func.now()},
        )
        try:
            await self.db.execute(stmt)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StorageError(f"Prompt result upsert failed: {e}") from e
        await self._commit("Prompt result upsert")
        logger.debug("Saved prompt result for %s/%s", user_id, prompt_id)

        try:
            result = await self.db.execute(
                select(PromptResult)
                .where(PromptResult.user_id == user_id, PromptResult.prompt_id == prompt_id)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Prompt result query failed: {e}") from e
        return result.unique().scalar_one()

    async def list_results(self, user_id: str) -> list[PromptResult]:
        try:
            result = await self.db.execute(
                select(PromptResult)
                .where(PromptResult.user_id == user_id)
                .order_by(PromptResult.updated_at.desc())
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise StorageError(f"Prompt result query failed: {e}") from e
        return list(result.unique().scalars().all())
