from __future__ import annotations

import logging
from typing import Any

from docseal.models.activity import ActivityAction, ActivityLog, Actor
from docseal.repos.activity_repo import ActivityRepo

logger = logging.getLogger(__name__)


async def record(
    audit: ActivityRepo,
    actor: Actor,
    action: ActivityAction,
    description: str,
    **metadata: Any,
) -> ActivityLog:
    """Append one activity entry attributed to *actor*."""
    entry = ActivityLog.new(
        action=action,
        description=description,
        user_id=actor.user_id,
        user_name=actor.name,
        metadata=metadata,
        ip_address=actor.ip_address,
    )
    await audit.append(entry)
    logger.debug("Activity recorded action=%s user=%s", action, actor.user_id)
    return entry
