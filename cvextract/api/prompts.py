"""
Prompt catalogue and stored prompt results.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.auth import AuthenticatedUser
from ..core.dependencies import ensure_same_user, get_prompts_repo, get_user
from ..repositories import PromptsRepository

prompts_router = APIRouter(tags=["prompts"])


class PromptSummary(BaseModel):
    key: str
    button_label: Optional[str] = None
    title: Optional[str] = None
    sub_title: Optional[str] = None


class PromptRef(BaseModel):
    id: str
    title: Optional[str] = None
    sub_title: Optional[str] = None


class PromptResultItem(BaseModel):
    result: Optional[str] = None
    prompts: PromptRef


class PromptResultsResponse(BaseModel):
    results: list[PromptResultItem]


@prompts_router.get("/prompts", response_model=list[PromptSummary])
async def list_prompts(prompts: PromptsRepository = Depends(get_prompts_repo)):
    """Active prompts, used by the front end to render task buttons."""
    return [
        PromptSummary(key=p.name, button_label=p.button_label, title=p.title, sub_title=p.sub_title)
        for p in await prompts.list_active()
    ]


@prompts_router.get("/prompt-results/{user_id}", response_model=PromptResultsResponse)
async def get_prompt_results(
    user_id: str,
    user: AuthenticatedUser = Depends(get_user),
    prompts: PromptsRepository = Depends(get_prompts_repo),
):
    """Latest result of every prompt run for a user."""
    ensure_same_user(user_id, user)
    rows = await prompts.list_results(user_id)
    return PromptResultsResponse(
        results=[
            PromptResultItem(
                result=r.result,
                prompts=PromptRef(id=r.prompt.id, title=r.prompt.title, sub_title=r.prompt.sub_title),
            )
            for r in rows
        ]
    )
