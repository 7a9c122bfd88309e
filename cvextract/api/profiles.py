"""
Profiles: creation at signup and read-back of extracted columns.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..core.auth import AuthenticatedUser
from ..core.dependencies import ensure_same_user, get_profiles_repo, get_user
from ..models.profile import Profile
from ..repositories import ProfilesRepository

profiles_router = APIRouter(prefix="/profiles", tags=["profiles"])


class ProfileCreate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProfileResponse(BaseModel):
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    extracted_individual_data: Optional[str] = None
    extracted_formations_data: Optional[str] = None
    extracted_parcours_data: Optional[str] = None
    extracted_autres_experiences_data: Optional[str] = None
    extracted_realisations_data: Optional[str] = None
    analysis_result: Optional[str] = None


def _to_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(**{name: getattr(profile, name) for name in ProfileResponse.model_fields})


@profiles_router.post("", response_model=ProfileResponse)
async def create_profile(
    body: ProfileCreate,
    user: AuthenticatedUser = Depends(get_user),
    profiles: ProfilesRepository = Depends(get_profiles_repo),
):
    """Create the caller's profile (idempotent)."""
    profile = await profiles.get_or_create(user.user_id, body.first_name, body.last_name)
    return _to_response(profile)


@profiles_router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    user: AuthenticatedUser = Depends(get_user),
    profiles: ProfilesRepository = Depends(get_profiles_repo),
):
    ensure_same_user(user_id, user)
    profile = await profiles.get(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _to_response(profile)
