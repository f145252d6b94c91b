from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_creates_tables_matching_models(tmp_path, monkeypatch) -> None:
    db_path = tmp_path / "migrated.sqlite3"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

    command.upgrade(Config(str(ROOT / "alembic.ini")), "head")

    inspector = inspect(create_engine(f"sqlite:///{db_path}"))
    assert {"users", "otp_challenges", "alembic_version"} <= set(inspector.get_table_names())
    columns = {c["name"] for c in inspector.get_columns("otp_challenges")}
    assert columns == {"email", "code_hash", "expires_at", "name", "attempts", "created_at"}
    assert any(ix["unique"] and ix["column_names"] == ["email"] for ix in inspector.get_indexes("users"))


def test_downgrade_to_first_revision_drops_name(tmp_path, monkeypatch) -> None:
    db_path = tmp_path / "migrated.sqlite3"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    config = Config(str(ROOT / "alembic.ini"))

    command.upgrade(config, "head")
    command.downgrade(config, "0001")

    columns = {c["name"] for c in inspect(create_engine(f"sqlite:///{db_path}")).get_columns("otp_challenges")}
    assert "name" not in columns
