from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from jose import JWTError, jwt

from app.models.user import User
from app.services.errors import InvalidSessionToken
from .tokens import utcnow


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class SessionIssuer:
    """Mints and checks stateless signed session tokens. Nothing is stored server-side."""

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user: User) -> str:
        now = self._clock()
        claims = {
            "id": user.id,
            "email": user.email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> SessionClaims:
        try:
            # expiry is checked below against our own clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidSessionToken() from exc

        try:
            claims = SessionClaims(
                user_id=str(payload["id"]),
                email=str(payload["email"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSessionToken() from exc

        if self._clock() >= claims.expires_at:
            raise InvalidSessionToken()
        return claims
