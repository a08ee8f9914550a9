from functools import lru_cache

from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    # infra
    app_name: str = "expedition_store"
    environment: str = Field("dev", alias="APP_ENV", description="dev|stage|prod")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # db
    postgres_dsn: str = Field(..., alias="POSTGRES_DSN")
    sql_echo: bool = Field(False, alias="SQL_ECHO")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, v: str | None) -> str:
        if not v:
            return "INFO"
        return str(v).strip().upper()


@lru_cache
def get_settings() -> Settings:
    """Settings are read on first use so imports never require a DSN."""
    return Settings()
