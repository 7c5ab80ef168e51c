"""FastAPI dependencies: caller identity, repositories, workflows.

REPOSITORIES
-------------
With DATABASE_URL set every request gets PostgreSQL repos bound to one
request-scoped session (committed after the handler returns, rolled back
if it raises).  Without it the module-level in-memory repos below are
used; tests reset them between cases.

The activity repo is the exception: in PostgreSQL mode it writes through
its own short transactions so audit entries outlive a failed request.
"""

from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from docseal.api.ratelimit import get_attempt_limiter
from docseal.core.config import SETTINGS
from docseal.db.engine import async_session_factory, get_async_session
from docseal.models.activity import Actor
from docseal.models.principal import Principal
from docseal.models.user import UserRole
from docseal.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from docseal.repos.event_repo import EventRepo, InMemoryEventRepo
from docseal.repos.letter_repo import InMemoryLetterRepo, LetterRepo
from docseal.repos.pg_activity_repo import PgActivityRepo
from docseal.repos.pg_event_repo import PgEventRepo
from docseal.repos.pg_letter_repo import PgLetterRepo
from docseal.repos.pg_user_repo import PgUserRepo
from docseal.repos.user_repo import InMemoryUserRepo, UserRepo
from docseal.services import token_service
from docseal.services.claims import ClaimWorkflow
from docseal.services.events_service import EventsService
from docseal.services.rate_limiter import AttemptLimiter
from docseal.services.signing import ClientInfo, SigningWorkflow
from docseal.services.users_service import UsersService
from docseal.services.verification import VerificationService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token", auto_error=True)

ADMIN_ROLES = {UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value}


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
        name=claims.get("name", ""),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("super_admin"))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s",
                principal.user_id,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role(ADMIN_ROLES))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                roles,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


require_admin = require_any_role(ADMIN_ROLES)


def client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


def actor_for(principal: Principal | None, request: Request) -> Actor:
    info = client_info(request)
    if principal is None:
        return Actor(ip_address=info.ip_address, user_agent=info.user_agent)
    return Actor(
        user_id=principal.user_uuid(),
        name=principal.name or principal.user_id,
        ip_address=info.ip_address,
        user_agent=info.user_agent,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------

letter_repo = InMemoryLetterRepo()
event_repo = InMemoryEventRepo()
user_repo = InMemoryUserRepo()
activity_repo = InMemoryActivityRepo()

_pg_activity_repo = (
    PgActivityRepo(async_session_factory) if async_session_factory is not None else None
)

SessionDep = Annotated[AsyncSession | None, Depends(get_async_session)]


def get_letter_repo(session: SessionDep) -> LetterRepo:
    return letter_repo if session is None else PgLetterRepo(session)


def get_event_repo(session: SessionDep) -> EventRepo:
    return event_repo if session is None else PgEventRepo(session)


def get_user_repo(session: SessionDep) -> UserRepo:
    return user_repo if session is None else PgUserRepo(session)


def get_activity_repo() -> ActivityRepo:
    return activity_repo if _pg_activity_repo is None else _pg_activity_repo


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


def get_signing_workflow(
    letters: Annotated[LetterRepo, Depends(get_letter_repo)],
    users: Annotated[UserRepo, Depends(get_user_repo)],
    audit: Annotated[ActivityRepo, Depends(get_activity_repo)],
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> SigningWorkflow:
    return SigningWorkflow(
        letters, users, audit, limiter, base_url=SETTINGS.public_base_url
    )


def get_verification_service(
    letters: Annotated[LetterRepo, Depends(get_letter_repo)],
    events: Annotated[EventRepo, Depends(get_event_repo)],
) -> VerificationService:
    return VerificationService(letters, events)


def get_claim_workflow(
    events: Annotated[EventRepo, Depends(get_event_repo)],
    audit: Annotated[ActivityRepo, Depends(get_activity_repo)],
) -> ClaimWorkflow:
    return ClaimWorkflow(events, audit)


def get_events_service(
    events: Annotated[EventRepo, Depends(get_event_repo)],
    audit: Annotated[ActivityRepo, Depends(get_activity_repo)],
) -> EventsService:
    return EventsService(events, audit)


def get_users_service(
    users: Annotated[UserRepo, Depends(get_user_repo)],
    audit: Annotated[ActivityRepo, Depends(get_activity_repo)],
) -> UsersService:
    return UsersService(users, audit)
