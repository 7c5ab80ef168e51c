"""User administration.

  POST   /v1/users                      create; response carries the secret key ONCE
  GET    /v1/users                      list (no key material)
  PATCH  /v1/users/{id}                 name / email / role / is_active
  DELETE /v1/users/{id}
  POST   /v1/users/{id}/secret-key      reset; response carries the new key ONCE
  DELETE /v1/users/{id}/rate-limit      lift a failed-attempt block

Creating admins and super-admins is reserved to super_admin.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from docseal.api.dependencies import (
    actor_for,
    get_users_service,
    require_admin,
)
from docseal.api.errors import to_http_exception
from docseal.api.ratelimit import get_attempt_limiter
from docseal.core.errors import DocsealError
from docseal.models.principal import Principal
from docseal.models.user import User, UserRole
from docseal.services.rate_limiter import AttemptLimiter
from docseal.services.signing import signer_attempt_key
from docseal.services.users_service import UsersService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users", tags=["users"])

Users = Annotated[UsersService, Depends(get_users_service)]
Admin = Annotated[Principal, Depends(require_admin)]


class UserOut(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class IssuedSecretKeyOut(BaseModel):
    user: UserOut
    secret_key: str


class UserCreateIn(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: UserRole = UserRole.USER


class UserUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, min_length=3)
    role: UserRole | None = None
    is_active: bool | None = None


def _check_role_grant(principal: Principal, role: UserRole | None) -> None:
    if role in (UserRole.ADMIN, UserRole.SUPER_ADMIN) and not principal.has_role(
        UserRole.SUPER_ADMIN.value
    ):
        logger.warning(
            "Role grant denied: user=%s attempted role=%s", principal.user_id, role
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only super_admin may grant admin roles",
        )


@router.post("", response_model=IssuedSecretKeyOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateIn, request: Request, principal: Admin, users: Users
) -> IssuedSecretKeyOut:
    _check_role_grant(principal, payload.role)
    try:
        issued = await users.create_user(
            name=payload.name,
            email=payload.email,
            role=payload.role,
            actor=actor_for(principal, request),
        )
    except DocsealError as e:
        logger.warning("User create rejected: %s", e)
        raise to_http_exception(e) from None
    return IssuedSecretKeyOut(
        user=UserOut.from_user(issued.user), secret_key=issued.secret_key
    )


@router.get("", response_model=list[UserOut])
async def list_users(_principal: Admin, users: Users) -> list[UserOut]:
    return [UserOut.from_user(u) for u in await users.list_users()]


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: UUID,
    payload: UserUpdateIn,
    request: Request,
    principal: Admin,
    users: Users,
) -> UserOut:
    _check_role_grant(principal, payload.role)
    try:
        user = await users.update_user(
            user_id,
            name=payload.name,
            email=payload.email,
            role=payload.role,
            is_active=payload.is_active,
            actor=actor_for(principal, request),
        )
    except DocsealError as e:
        raise to_http_exception(e) from None
    return UserOut.from_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID, request: Request, principal: Admin, users: Users
) -> Response:
    if principal.user_uuid() == user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="cannot delete yourself"
        )
    try:
        await users.delete_user(user_id, actor=actor_for(principal, request))
    except DocsealError as e:
        raise to_http_exception(e) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{user_id}/secret-key", response_model=IssuedSecretKeyOut)
async def reset_secret_key(
    user_id: UUID, request: Request, principal: Admin, users: Users
) -> IssuedSecretKeyOut:
    try:
        issued = await users.reset_secret_key(user_id, actor=actor_for(principal, request))
    except DocsealError as e:
        raise to_http_exception(e) from None
    return IssuedSecretKeyOut(
        user=UserOut.from_user(issued.user), secret_key=issued.secret_key
    )


@router.delete("/{user_id}/rate-limit", status_code=status.HTTP_204_NO_CONTENT)
async def clear_rate_limit(
    user_id: UUID,
    principal: Admin,
    limiter: Annotated[AttemptLimiter, Depends(get_attempt_limiter)],
) -> Response:
    await limiter.clear(signer_attempt_key(user_id))
    logger.info("Attempt block cleared for user=%s by=%s", user_id, principal.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
