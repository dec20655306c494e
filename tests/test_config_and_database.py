from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from shared_database.client import BrandAwareClient
from shared_database.core.config import Settings, get_settings
from shared_database.core.database import (
    Database,
    create_schema,
    drop_schema,
    get_database,
    reset_database,
    set_database,
)
from shared_database.core.errors import ConfigurationError
from shared_database.platform.security.context import BrandContext


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_KEY", raising=False)
    get_settings.cache_clear()
    reset_database()
    yield
    reset_database()
    get_settings.cache_clear()


def _memory_database() -> Database:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return Database(engine)


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.database_url is None
    assert settings.database_pool_size == 5
    assert settings.enforce_state_transitions is True
    assert settings.log_level == "INFO"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://db.internal:5432/app")
    monkeypatch.setenv("ENFORCE_STATE_TRANSITIONS", "false")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.database_url == "postgresql+psycopg://db.internal:5432/app"
    assert settings.enforce_state_transitions is False


def test_missing_configuration_names_both_values() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        Database.from_settings(settings=Settings(_env_file=None))

    assert "database_url" in str(exc_info.value)
    assert "database_key" in str(exc_info.value)


def test_missing_key_only() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        Database.from_settings(url="sqlite+pysqlite:///:memory:", settings=Settings(_env_file=None))

    assert "database_key" in str(exc_info.value)
    assert "database_url" not in str(exc_info.value)


def test_explicit_overrides_build_handle() -> None:
    database = Database.from_settings(
        url="sqlite+pysqlite:///:memory:",
        key="service-key",
        settings=Settings(_env_file=None),
    )
    try:
        assert database.dialect_name == "sqlite"
    finally:
        database.dispose()


def test_postgres_url_gets_key_as_password() -> None:
    database = Database.from_settings(
        url="postgresql+psycopg://app@db.internal:5432/app",
        key="service-key",
        settings=Settings(_env_file=None),
    )
    try:
        assert database.engine.url.password == "service-key"
        assert database.dialect_name == "postgresql"
    finally:
        database.dispose()


def test_client_without_handle_fails_fast_when_unconfigured() -> None:
    with pytest.raises(ConfigurationError):
        BrandAwareClient(BrandContext.for_brand("gnymble"))


def test_process_default_is_created_once(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("DATABASE_KEY", "service-key")
    get_settings.cache_clear()

    first = get_database()
    second = get_database()

    assert first is second


def test_set_database_installs_explicit_handle() -> None:
    database = _memory_database()
    set_database(database)

    client = BrandAwareClient(BrandContext.for_brand("gnymble"))

    assert get_database() is database
    assert client.raw is database


def test_create_and_drop_schema() -> None:
    database = _memory_database()

    create_schema(database)
    assert {"customers", "conversations", "messages"} <= set(inspect(database.engine).get_table_names())

    drop_schema(database)
    assert inspect(database.engine).get_table_names() == []
    database.dispose()
