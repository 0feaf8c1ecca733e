from __future__ import annotations

import time
from dataclasses import dataclass
from functools import lru_cache

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from greythr.core.config import settings
from greythr.core.errors import Unauthenticated

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    expires_at: int


@dataclass(frozen=True)
class TokenSigner:
    """Signs and verifies access tokens with a secret fixed at construction."""

    secret: str
    algorithm: str = "HS256"
    expire_minutes: int = 7 * 24 * 60

    def issue(self, user_id: int, role: str, now: int | None = None) -> str:
        issued_at = int(time.time()) if now is None else now
        claims = {
            "sub": str(user_id),
            "role": role,
            "iat": issued_at,
            "exp": issued_at + self.expire_minutes * 60,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str | None) -> TokenClaims:
        if not token:
            raise Unauthenticated("Not authorized, no token")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise Unauthenticated("Token expired") from exc
        except JWTError as exc:
            raise Unauthenticated("Not authorized, token failed") from exc

        try:
            return TokenClaims(
                user_id=int(payload["sub"]),
                role=str(payload.get("role", "")),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise Unauthenticated("Not authorized, token failed") from exc


@lru_cache
def get_token_signer() -> TokenSigner:
    return TokenSigner(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )
