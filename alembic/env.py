import logging
import os
from logging.config import fileConfig

from dotenv import load_dotenv
from alembic import context

from app.config import DEFAULT_DATABASE_URL
from app.database import Base, make_engine
import app.models  # noqa: F401  registers users and otp_challenges

load_dotenv()

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")

# same fallback as Settings.DATABASE_URL, so the app and its migrations agree on the target
database_url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
if not os.getenv("DATABASE_URL"):
    logger.warning("DATABASE_URL is not set, migrating the default database %s", DEFAULT_DATABASE_URL)
config.set_main_option("sqlalchemy.url", database_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=database_url.startswith("sqlite"),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = make_engine(database_url)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
