import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent

DEFAULT_JWT_SECRET = "change-me-in-production"
DEV_CORS_ORIGINS = ["http://localhost:5173", "http://localhost:3000"]


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "GreytHR-lite API"
    database_url: str = Field(
        default="sqlite:///./greythr.db",
        description="Database connection string",
    )
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, description="Token signing secret")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 7 * 24 * 60
    port: int = 8000
    cors_origins: str = Field(default="", description="Comma-separated allow-list")
    log_level: str = "INFO"
    log_json: bool = Field(default=True, description="JSON log lines; false renders for a terminal")
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN for error monitoring")
    otlp_endpoint: str | None = Field(default=None, description="OTLP endpoint for traces/metrics")

    model_config = SettingsConfigDict(env_prefix="GREYTHR_", extra="ignore", frozen=True)

    @model_validator(mode="after")
    def refuse_default_secret_in_production(self) -> "Settings":
        if self.is_production and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("GREYTHR_JWT_SECRET must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        if origins or self.is_production:
            return origins
        return list(DEV_CORS_ORIGINS)


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("GREYTHR_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None


settings = get_settings()
