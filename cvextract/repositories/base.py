import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.errors import StorageError

logger = logging.getLogger(__name__)


class Repository:
    """Shared session handling. Every write is committed on its own."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Store write failed (%s): %s", action, e)
            raise StorageError(f"{action} failed: {e}") from e
