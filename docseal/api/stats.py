"""Dashboard counters."""

from __future__ import annotations

from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docseal.api.dependencies import (
    get_event_repo,
    get_letter_repo,
    get_user_repo,
    require_user,
)
from docseal.models.letter import LetterStatus
from docseal.models.principal import Principal
from docseal.repos.event_repo import EventRepo
from docseal.repos.letter_repo import LetterRepo
from docseal.repos.user_repo import UserRepo

router = APIRouter(tags=["stats"])


class StatsOut(BaseModel):
    total_letters: int
    draft_letters: int
    signed_letters: int
    invalid_letters: int
    total_users: int
    active_users: int
    total_events: int
    total_claims: int


@router.get("/v1/stats", response_model=StatsOut)
async def stats(
    _principal: Annotated[Principal, Depends(require_user)],
    letters: Annotated[LetterRepo, Depends(get_letter_repo)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    events: Annotated[EventRepo, Depends(get_event_repo)],
) -> StatsOut:
    all_letters = await letters.list_letters()
    by_status = Counter(letter.status for letter in all_letters)
    all_users = await users.list_all()
    return StatsOut(
        total_letters=len(all_letters),
        draft_letters=by_status[LetterStatus.DRAFT],
        signed_letters=by_status[LetterStatus.SIGNED],
        invalid_letters=by_status[LetterStatus.INVALID],
        total_users=len(all_users),
        active_users=sum(1 for u in all_users if u.is_active),
        total_events=len(await events.list_events()),
        total_claims=await events.count_claims(),
    )
