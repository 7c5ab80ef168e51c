from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4


class ActivityAction(StrEnum):
    LOGIN = "login"
    LOGOUT = "logout"
    SIGN_LETTER = "sign_letter"
    CREATE_LETTER = "create_letter"
    UPDATE_LETTER = "update_letter"
    DELETE_LETTER = "delete_letter"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    RESET_SECRET_KEY = "reset_secret_key"
    GENERATE_SECRET_KEY = "generate_secret_key"
    FAILED_SECRET_KEY_ATTEMPT = "failed_secret_key_attempt"
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    CLAIM_CERTIFICATE = "claim_certificate"


@dataclass(frozen=True, slots=True)
class ActivityLog:
    """One append-only audit entry."""

    id: UUID
    action: ActivityAction
    description: str
    created_at: datetime
    user_id: UUID | None = None
    user_name: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None

    @staticmethod
    def new(
        *,
        action: ActivityAction,
        description: str,
        user_id: UUID | None = None,
        user_name: str = "",
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> ActivityLog:
        return ActivityLog(
            id=uuid4(),
            action=action,
            description=description,
            created_at=datetime.now(UTC),
            user_id=user_id,
            user_name=user_name,
            metadata=dict(metadata or {}),
            ip_address=ip_address,
        )


@dataclass(frozen=True, slots=True)
class Actor:
    """Who performed an audited action, as far as the caller knows."""

    user_id: UUID | None = None
    name: str = ""
    ip_address: str | None = None
    user_agent: str | None = None


ANONYMOUS = Actor()
