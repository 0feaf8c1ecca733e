from __future__ import annotations

import time

import pytest

from greythr.core.errors import Unauthenticated
from greythr.core.security import TokenSigner, hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("password")

    assert hashed != "password"
    assert verify_password("password", hashed)
    assert not verify_password("Password", hashed)
    assert not verify_password("password", "")


def test_token_carries_user_id_and_role():
    signer = TokenSigner(secret="test-secret")

    claims = signer.verify(signer.issue(42, "hr"))

    assert claims.user_id == 42
    assert claims.role == "hr"


def test_token_expires():
    signer = TokenSigner(secret="test-secret", expire_minutes=1)
    token = signer.issue(7, "employee", now=int(time.time()) - 120)

    with pytest.raises(Unauthenticated) as exc:
        signer.verify(token)

    assert exc.value.message == "Token expired"


def test_token_valid_until_expiry():
    signer = TokenSigner(secret="test-secret", expire_minutes=1)
    token = signer.issue(7, "employee", now=int(time.time()) - 30)

    assert signer.verify(token).user_id == 7


def test_token_signed_with_other_secret_rejected():
    token = TokenSigner(secret="one").issue(1, "admin")

    with pytest.raises(Unauthenticated) as exc:
        TokenSigner(secret="two").verify(token)

    assert exc.value.message == "Not authorized, token failed"


def test_missing_token_rejected():
    with pytest.raises(Unauthenticated) as exc:
        TokenSigner(secret="test-secret").verify(None)

    assert exc.value.status_code == 401
    assert exc.value.message == "Not authorized, no token"


def test_signer_is_immutable():
    signer = TokenSigner(secret="test-secret")

    with pytest.raises(AttributeError):
        signer.secret = "changed"
