from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_env: str = "local"
    database_url: str | None = None
    database_key: str | None = None
    database_echo: bool = False
    database_pool_size: int = 5
    enforce_state_transitions: bool = True
    log_level: str = "INFO"
    otel_enabled: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
