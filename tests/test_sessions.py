from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.models.user import User
from app.services.errors import InvalidSessionToken
from app.services.sessions import SessionIssuer
from conftest import SECRET

USER = User(id="user-1", email="a@b.com", name="Ada", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))


def test_token_carries_identity_and_thirty_day_window(clock) -> None:
    issuer = SessionIssuer(SECRET, clock=clock)

    claims = issuer.verify(issuer.issue(USER))

    assert claims.user_id == "user-1"
    assert claims.email == "a@b.com"
    assert claims.issued_at == clock.now.replace(microsecond=0)
    assert claims.expires_at - claims.issued_at == timedelta(days=30)


def test_token_is_a_standard_hs256_jwt(clock) -> None:
    token = SessionIssuer(SECRET, clock=clock).issue(USER)

    payload = jwt.get_unverified_claims(token)

    assert jwt.get_unverified_header(token)["alg"] == "HS256"
    assert set(payload) == {"id", "email", "iat", "exp"}


def test_token_rejected_after_expiry(clock) -> None:
    issuer = SessionIssuer(SECRET, clock=clock)
    token = issuer.issue(USER)

    clock.advance(days=30)

    with pytest.raises(InvalidSessionToken):
        issuer.verify(token)


def test_token_signed_with_another_secret_is_rejected(clock) -> None:
    token = SessionIssuer("some-other-secret", clock=clock).issue(USER)

    with pytest.raises(InvalidSessionToken):
        SessionIssuer(SECRET, clock=clock).verify(token)


def test_garbage_token_is_rejected(clock) -> None:
    with pytest.raises(InvalidSessionToken):
        SessionIssuer(SECRET, clock=clock).verify("not-a-jwt")


def test_token_missing_claims_is_rejected(clock) -> None:
    token = jwt.encode({"email": "a@b.com"}, SECRET, algorithm="HS256")

    with pytest.raises(InvalidSessionToken):
        SessionIssuer(SECRET, clock=clock).verify(token)


def test_issuer_requires_secret() -> None:
    with pytest.raises(ValueError):
        SessionIssuer("")
