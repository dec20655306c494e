from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from shared_database.core.config import Settings, get_settings
from shared_database.core.errors import ConfigurationError


logger = logging.getLogger("shared_database.database")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Database:
    """Owns one engine and its session factory.

    Brand contexts in a process share a single handle; isolation between
    brands is applied per query, never per connection.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_settings(
        cls,
        url: str | None = None,
        key: str | None = None,
        settings: Settings | None = None,
    ) -> Database:
        settings = settings or get_settings()
        resolved_url = url or settings.database_url
        resolved_key = key or settings.database_key

        missing = [name for name, value in (("database_url", resolved_url), ("database_key", resolved_key)) if not value]
        if missing:
            raise ConfigurationError(f"Missing database configuration: {', '.join(missing)}")

        sa_url = make_url(str(resolved_url))
        engine_kwargs: dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
        if sa_url.get_backend_name() != "sqlite":
            if sa_url.password is None:
                sa_url = sa_url.set(password=resolved_key)
            engine_kwargs["pool_size"] = settings.database_pool_size

        engine = create_engine(sa_url, **engine_kwargs)
        logger.info("database.engine_created", extra={"status": sa_url.get_backend_name()})
        return cls(engine)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._session_factory() as session:
            yield session

    def dispose(self) -> None:
        self.engine.dispose()


_DATABASE: Database | None = None
_DATABASE_LOCK = Lock()


def get_database() -> Database:
    """Return the process-wide handle, creating it from configuration on first use."""

    global _DATABASE
    with _DATABASE_LOCK:
        if _DATABASE is None:
            _DATABASE = Database.from_settings()
        return _DATABASE


def set_database(database: Database | None) -> None:
    global _DATABASE
    with _DATABASE_LOCK:
        _DATABASE = database


def reset_database() -> None:
    global _DATABASE
    with _DATABASE_LOCK:
        if _DATABASE is not None:
            _DATABASE.dispose()
        _DATABASE = None


def create_schema(database: Database) -> None:
    from shared_database.conversations import models as conversation_models  # noqa: F401
    from shared_database.customers import models as customer_models  # noqa: F401

    Base.metadata.create_all(bind=database.engine)


def drop_schema(database: Database) -> None:
    Base.metadata.drop_all(bind=database.engine)
