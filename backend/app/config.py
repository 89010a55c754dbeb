from functools import lru_cache
from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Wayfarer API", description="Human readable service name")
    environment: str = Field(default="development", description="Deployment environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:4200",
            "http://127.0.0.1:4200",
        ],
        description="List of allowed CORS origins",
    )

    database_url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full SQLAlchemy URL; takes precedence over the DB_* parts",
    )
    database_user: str = Field(default="wayfarer", validation_alias=AliasChoices("DB_USER", "database_user"))
    database_password: str = Field(default="wayfarer", validation_alias=AliasChoices("DB_PASSWORD", "database_password"))
    database_host: str = Field(default="localhost", validation_alias=AliasChoices("DB_HOST", "database_host"))
    database_port: int = Field(default=3306, validation_alias=AliasChoices("DB_PORT", "database_port"))
    database_name: str = Field(default="wayfarer", validation_alias=AliasChoices("DB_NAME", "database_name"))

    jwt_secret_key: str = Field(default="changeme")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24)

    websocket_keepalive_timeout_seconds: float = Field(
        default=30,
        description="Idle time after which the server probes the client with a ping.",
    )
    websocket_keepalive_ping_interval_seconds: float = Field(
        default=25,
        description="Minimum spacing between consecutive keepalive pings.",
    )

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[1] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        if not value:
            return "INFO"
        return str(value).strip().upper()


@lru_cache
def get_settings() -> Settings:
    return Settings()
