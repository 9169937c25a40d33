"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal
from urllib.parse import quote_plus

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
)

DEFAULT_SQLITE_URL = "sqlite:///./knowledgehub.db"
DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PORT: int = 3001
    API_PREFIX: str = "/api"
    APP_VERSION: str = "1.2.0"

    # Either a full URL, or the discrete DB_* values below (Postgres). Falls back to SQLite.
    DATABASE_URL: str | None = None
    DB_HOST: str | None = None
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: SecretStr = SecretStr("")
    DB_NAME: str = "knowledgehub"

    # JWT authentication
    JWT_SECRET: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 1440

    # Comma-separated list of allowed browser origins
    CORS_ORIGINS: str = (
        "http://localhost:8000,http://127.0.0.1:8000,"
        "http://localhost:8080,http://127.0.0.1:8080"
    )

    # In-memory rate limiting for /api routes
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SEC: int = 900
    RATE_LIMIT_MAX: int = 100

    # Outbound fetches (RSS feeds, quick capture)
    RSS_TIMEOUT_SEC: float = 10.0
    RSS_USER_AGENT: str = "KnowledgeHub RSS Reader 1.0"
    CAPTURE_TIMEOUT_SEC: float = 5.0
    CAPTURE_USER_AGENT: str = "KnowledgeHub Content Capture 1.0"

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL "
                "(e.g. sqlite:///./knowledgehub.db or postgresql://...)"
            )
        v = v.strip()
        # SQLAlchemy only registers the "postgresql" dialect name.
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://"):]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ALGORITHM must be set and non-empty")
        return v.strip()

    @field_validator("JWT_EXPIRE_MINUTES")
    @classmethod
    def validate_jwt_expire_minutes(cls, v: int) -> int:
        if v < 1 or v > 43200:
            raise ValueError(
                "JWT_EXPIRE_MINUTES must be between 1 and 43200 (1 min to 30 days)"
            )
        return v

    @field_validator("RATE_LIMIT_WINDOW_SEC", "RATE_LIMIT_MAX")
    @classmethod
    def validate_rate_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Rate limit window and max must be positive")
        return v

    @field_validator("RSS_TIMEOUT_SEC", "CAPTURE_TIMEOUT_SEC")
    @classmethod
    def validate_fetch_timeout(cls, v: float) -> float:
        if v <= 0 or v > 60:
            raise ValueError("Fetch timeouts must be greater than 0 and at most 60 seconds")
        return v

    @property
    def database_url(self) -> str:
        """DATABASE_URL if set, else a Postgres URL from DB_* values, else local SQLite."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST:
            password = quote_plus(self.DB_PASSWORD.get_secret_value())
            credentials = f"{self.DB_USER}:{password}" if password else self.DB_USER
            return f"postgresql://{credentials}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return DEFAULT_SQLITE_URL

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
