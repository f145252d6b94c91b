"""Credential storage for pending OTP challenges and user identities.

Every method is a single atomic unit against the backing store. Callers never
read a challenge and delete it in two steps; ``consume_challenge`` counts the
guess, compares and deletes together, so two verifications of the same code
cannot both succeed and parallel guesses cannot exceed the attempt limit.
"""
from __future__ import annotations

import hmac
import threading
from abc import ABC, abstractmethod
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from app.models.otp_challenge import OtpChallenge
from app.models.user import User
from app.services.errors import DuplicateKeyError
from app.services.tokens import as_utc, utcnow


class CredentialStore(ABC):
    @abstractmethod
    def upsert_challenge(
        self, email: str, code_hash: str, expires_at: datetime, name: str | None = None
    ) -> None:
        """Create or replace the challenge for ``email``, resetting its attempt count."""

    @abstractmethod
    def get_challenge(self, email: str) -> OtpChallenge | None: ...

    @abstractmethod
    def delete_challenge(self, email: str) -> None: ...

    @abstractmethod
    def consume_challenge(
        self, email: str, code_hash: str, now: datetime, max_attempts: int
    ) -> OtpChallenge | None:
        """Spend one attempt on the challenge and delete it if ``code_hash`` matches.

        A guess is only admitted while the challenge is unexpired and has fewer
        than ``max_attempts`` recorded guesses; admitting it counts it. Returns
        the deleted row for the one caller that removed it, None otherwise.
        """

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    def insert_user(self, user: User) -> User:
        """Persist a new user. Raises :class:`DuplicateKeyError` if the email is taken."""


class SqlCredentialStore(CredentialStore):
    def __init__(self, session_factory: sessionmaker):
        self._factory = session_factory

    def _upsert_statement(self, dialect: str, values: dict):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return None
        stmt = insert(OtpChallenge).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[OtpChallenge.email],
            set_={
                "code_hash": stmt.excluded.code_hash,
                "expires_at": stmt.excluded.expires_at,
                "name": stmt.excluded.name,
                "attempts": 0,
                "created_at": stmt.excluded.created_at,
            },
        )

    def upsert_challenge(
        self, email: str, code_hash: str, expires_at: datetime, name: str | None = None
    ) -> None:
        values = {
            "email": email,
            "code_hash": code_hash,
            "expires_at": as_utc(expires_at),
            "name": name,
            "attempts": 0,
            "created_at": utcnow(),
        }
        with self._factory.begin() as db:
            stmt = self._upsert_statement(db.get_bind().dialect.name, values)
            if stmt is not None:
                db.execute(stmt)
            else:
                db.merge(OtpChallenge(**values))

    def get_challenge(self, email: str) -> OtpChallenge | None:
        with self._factory() as db:
            return db.get(OtpChallenge, email)

    def delete_challenge(self, email: str) -> None:
        with self._factory.begin() as db:
            db.execute(
                delete(OtpChallenge).where(OtpChallenge.email == email),
                execution_options={"synchronize_session": False},
            )

    def consume_challenge(
        self, email: str, code_hash: str, now: datetime, max_attempts: int
    ) -> OtpChallenge | None:
        admit = (
            update(OtpChallenge)
            .where(
                OtpChallenge.email == email,
                OtpChallenge.attempts < max_attempts,
                OtpChallenge.expires_at > as_utc(now),
            )
            .values(attempts=OtpChallenge.attempts + 1)
        )
        with self._factory.begin() as db:
            # the UPDATE holds the row lock until commit, so concurrent guesses queue here
            admitted = db.execute(admit, execution_options={"synchronize_session": False})
            if admitted.rowcount != 1:
                return None

            row = db.get(OtpChallenge, email)
            if row is None or not hmac.compare_digest(row.code_hash, code_hash):
                return None
            db.delete(row)
            return row

    def get_user_by_email(self, email: str) -> User | None:
        with self._factory() as db:
            return db.scalar(select(User).where(User.email == email))

    def insert_user(self, user: User) -> User:
        with self._factory() as db:
            db.add(user)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise DuplicateKeyError(user.email) from exc
            return user


class MemoryCredentialStore(CredentialStore):
    """Process-local store for tests and single-process development."""

    def __init__(self) -> None:
        self._challenges: dict[str, OtpChallenge] = {}
        self._users: dict[str, User] = {}
        self._lock = threading.Lock()

    def upsert_challenge(
        self, email: str, code_hash: str, expires_at: datetime, name: str | None = None
    ) -> None:
        row = OtpChallenge(
            email=email,
            code_hash=code_hash,
            expires_at=as_utc(expires_at),
            name=name,
            attempts=0,
            created_at=utcnow(),
        )
        with self._lock:
            self._challenges[email] = row

    def get_challenge(self, email: str) -> OtpChallenge | None:
        with self._lock:
            return self._challenges.get(email)

    def delete_challenge(self, email: str) -> None:
        with self._lock:
            self._challenges.pop(email, None)

    def consume_challenge(
        self, email: str, code_hash: str, now: datetime, max_attempts: int
    ) -> OtpChallenge | None:
        with self._lock:
            row = self._challenges.get(email)
            if row is None:
                return None
            if row.attempts >= max_attempts or as_utc(row.expires_at) <= as_utc(now):
                return None
            row.attempts += 1
            if not hmac.compare_digest(row.code_hash, code_hash):
                return None
            del self._challenges[email]
            return row

    def get_user_by_email(self, email: str) -> User | None:
        with self._lock:
            return self._users.get(email)

    def insert_user(self, user: User) -> User:
        with self._lock:
            if user.email in self._users:
                raise DuplicateKeyError(user.email)
            if any(u.id == user.id for u in self._users.values()):
                raise DuplicateKeyError(user.id)
            self._users[user.email] = user
            return user

    def user_count(self) -> int:
        with self._lock:
            return len(self._users)
