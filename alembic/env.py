import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from shared_database.core.database import Base
from shared_database.conversations import models as conversation_models  # noqa: F401
from shared_database.customers import models as customer_models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", config.get_main_option("sqlalchemy.url") or "")
    key = os.getenv("DATABASE_KEY")
    if key and url:
        from sqlalchemy.engine import make_url

        parsed = make_url(url)
        if parsed.password is None:
            url = parsed.set(password=key).render_as_string(hide_password=False)
    return url


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = _database_url()
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
