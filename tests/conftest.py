from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

os.environ.setdefault("JWT_SECRET", "tests-signing-secret")

from app.config import load_settings
from app.database import init_db, make_engine, make_sessionmaker
from app.main import create_app
from app.models.user import User
from app.services.errors import DeliveryError
from app.services.mailer import Mailer
from app.services.store import MemoryCredentialStore, SqlCredentialStore

SECRET = "tests-signing-secret"


class FrozenClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str | None]] = []
        self.fail = False

    async def send_otp(self, to: str, code: str, name: str | None = None) -> None:
        if self.fail:
            raise DeliveryError()
        self.sent.append((to, code, name))

    def last_code(self, to: str) -> str:
        for email, code, _ in reversed(self.sent):
            if email == to:
                return code
        raise AssertionError(f"no code sent to {to}")


def count_users(store) -> int:
    if isinstance(store, MemoryCredentialStore):
        return store.user_count()
    with store._factory() as db:
        return db.scalar(select(func.count()).select_from(User))


def sql_store_for(url: str) -> SqlCredentialStore:
    engine = make_engine(url)
    init_db(engine)
    return SqlCredentialStore(make_sessionmaker(engine))


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        return MemoryCredentialStore()
    return sql_store_for("sqlite://")


@pytest.fixture()
def file_store(tmp_path) -> SqlCredentialStore:
    return sql_store_for(f"sqlite:///{tmp_path / 'careerpro.sqlite3'}")


@pytest.fixture()
def settings():
    return load_settings(JWT_SECRET=SECRET, _env_file=None)


@pytest.fixture()
def client(settings, store, mailer, clock):
    app = create_app(settings, store=store, mailer=mailer, clock=clock)
    with TestClient(app) as c:
        yield c
