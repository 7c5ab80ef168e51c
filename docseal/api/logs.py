from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from docseal.api.dependencies import get_activity_repo, require_admin
from docseal.models.principal import Principal
from docseal.repos.activity_repo import ActivityRepo

router = APIRouter(tags=["logs"])


class ActivityLogOut(BaseModel):
    id: UUID
    action: str
    description: str
    user_id: UUID | None
    user_name: str
    metadata: dict[str, Any]
    ip_address: str | None
    created_at: datetime


@router.get("/v1/logs", response_model=list[ActivityLogOut])
async def list_logs(
    _principal: Annotated[Principal, Depends(require_admin)],
    audit: Annotated[ActivityRepo, Depends(get_activity_repo)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[ActivityLogOut]:
    return [
        ActivityLogOut(
            id=e.id,
            action=str(e.action),
            description=e.description,
            user_id=e.user_id,
            user_name=e.user_name,
            metadata=e.metadata,
            ip_address=e.ip_address,
            created_at=e.created_at,
        )
        for e in await audit.list_recent(limit)
    ]
