from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from greythr.api.deps import get_current_user
from greythr.core.errors import InvalidCredentials, ValidationError
from greythr.core.logging import get_logger
from greythr.core.schemas import PartialUpdate, RequestModel, ResponseModel
from greythr.core.security import TokenSigner, get_token_signer, hash_password, verify_password
from greythr.db.session import get_session
from greythr.domains.employees import service as employee_service
from greythr.models import User

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)


class LoginRequest(RequestModel):
    email: str
    password: str = Field(..., min_length=1)


class RegisterRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)
    department: str | None = None


class ProfileUpdate(PartialUpdate):
    not_null = ("name",)

    name: str | None = Field(default=None, min_length=1, max_length=200)
    department: str | None = None
    avatar: str | None = None


class PasswordChange(RequestModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class UserOut(ResponseModel):
    id: int
    name: str
    email: str
    role: Literal["admin", "hr", "employee"]
    department: str | None = None
    avatar: str | None = None
    is_active: bool


class AuthResponse(ResponseModel):
    success: bool = True
    token: str
    user: UserOut


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).one_or_none()


def login_user(db: Session, signer: TokenSigner, email: str, password: str) -> tuple[str, User]:
    user = find_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    if not user.is_active:
        raise InvalidCredentials("Account is inactive")
    return signer.issue(user.id, user.role), user


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_token_signer),
) -> AuthResponse:
    logger.info("login_attempt", email=payload.email)
    token, user = login_user(db, signer, payload.email, payload.password)
    logger.info("login_success", email=user.email, role=user.role)
    return AuthResponse(token=token, user=user)


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_session),
    signer: TokenSigner = Depends(get_token_signer),
) -> AuthResponse:
    user, _ = employee_service.create_user_with_employee(
        db,
        name=payload.name,
        email=str(payload.email),
        password=payload.password,
        role="employee",
        department=payload.department,
    )
    logger.info("user_registered", email=user.email, role=user.role)
    return AuthResponse(token=signer.issue(user.id, user.role), user=user)


@router.get("/profile", response_model=UserOut)
def profile(user: User = Depends(get_current_user)) -> User:
    return user


@router.put("/profile", response_model=UserOut)
def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> User:
    return employee_service.update_profile(db, user, payload.changes())


@router.put("/change-password")
def change_password(
    payload: PasswordChange,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, bool | str]:
    if not verify_password(payload.current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    user.hashed_password = hash_password(payload.new_password)
    db.commit()
    logger.info("password_changed", user_id=user.id)
    return {"success": True, "message": "Password changed successfully"}
