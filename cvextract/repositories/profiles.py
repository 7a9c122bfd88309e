"""
Profiles table. Extraction pipelines write their task's column here.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import StorageError
from ..models.profile import Profile
from .base import Repository

logger = logging.getLogger(__name__)


class ProfilesRepository(Repository):
    async def get(self, user_id: str) -> Optional[Profile]:
        try:
            result = await self.db.execute(select(Profile).where(Profile.user_id == user_id))
        except SQLAlchemyError as e:
            raise StorageError(f"Profile query failed: {e}") from e
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        user_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Profile:
        profile = await self.get(user_id)
        if profile is None:
            profile = Profile(user_id=user_id, first_name=first_name, last_name=last_name)
            self.db.add(profile)
            await self._commit("Profile insert")
            logger.info("Profile created for user %s", user_id)
        return profile

    async def update_fields(self, user_id: str, **fields) -> Profile:
        profile = await self.get_or_create(user_id)
        for name, value in fields.items():
            if not hasattr(Profile, name):
                raise StorageError(f"Unknown profile column: {name}")
            setattr(profile, name, value)
        await self._commit("Profile update")
        return profile
