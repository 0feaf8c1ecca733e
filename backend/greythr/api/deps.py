from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from greythr.core.errors import Forbidden, Unauthenticated
from greythr.core.security import TokenSigner, get_token_signer
from greythr.db.session import get_session
from greythr.models import User
from greythr.realtime.hub import ChannelHub

bearer = HTTPBearer(auto_error=False)

PRIVILEGED_ROLES = ("admin", "hr")


def authenticate_token(db: Session, signer: TokenSigner, token: str | None) -> User:
    claims = signer.verify(token)
    user = db.get(User, claims.user_id)
    if not user or not user.is_active:
        raise Unauthenticated("Invalid token or user inactive")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_token_signer),
) -> User:
    token = credentials.credentials if credentials else None
    return authenticate_token(db, signer, token)


def require_roles(*roles: str) -> Callable[..., User]:
    def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise Forbidden(f"User role {user.role} is not authorized to access this route")
        return user

    return dependency


def is_privileged(user: User) -> bool:
    return user.role in PRIVILEGED_ROLES


def ensure_self_or_privileged(user: User, target_user_id: int) -> None:
    if user.id != target_user_id and not is_privileged(user):
        raise Forbidden("Not authorized to access another user's records")


def get_hub(request: Request) -> ChannelHub:
    return request.app.state.hub
