from typing import Any

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]
DEFAULT_SECRET_KEY = "change-this-secret-key-in-production"
STUB_KEYS = {"stub", "debug"}


def _split_csv(value: Any) -> list[str]:
    """Accept comma-separated string or list-like and strip each entry."""
    if value is None or value == "":
        return []

    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple, set)):
        parts = [str(part).strip() for part in value]
    else:
        return []

    return [part for part in parts if part]


class Settings(BaseSettings):
    """Application settings."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./expenser.db"
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: DEFAULT_ALLOWED_HOSTS.copy())

    # Application
    ENV: str = "development"
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    APP_NAME: str = "Expenser"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Durable storage keys are "<namespace>_<uid>"
    STORAGE_NAMESPACE: str = "expenser_expenses"
    CATEGORY_NAMESPACE: str = "expenser_categories"
    SEED_DEMO_DATA: bool = True
    SUMMARY_CACHE_SIZE: int = 256

    # Identity provider (Firebase Identity Toolkit REST API)
    IDENTITY_API_KEY: str = ""
    IDENTITY_API_URL: str = "https://identitytoolkit.googleapis.com/v1"
    IDENTITY_PROVIDER_ID: str = "google.com"
    IDENTITY_REQUEST_URI: str = "http://localhost"
    IDENTITY_TIMEOUT_SECONDS: float = 15.0

    # Security
    LOGIN_RATE_LIMIT_MAX: int = 5
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    ADMIN_EMAILS_RAW: str = Field(default="", alias="ADMIN_EMAILS")

    # Chat assistant
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-pro"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1/models"
    GEMINI_TIMEOUT_SECONDS: float = 60.0

    # Pydantic v2 compatible settings: read .env and ignore extra env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, value: Any) -> list[str] | Any:
        """Support comma-separated ALLOWED_HOSTS from environment."""
        return _split_csv(value)

    @computed_field
    @property
    def admin_emails(self) -> list[str]:
        """Return normalized admin emails list from raw env input."""
        return [email.lower() for email in _split_csv(self.ADMIN_EMAILS_RAW)]

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


def _validate_security() -> None:
    """Fail fast when running production with insecure defaults."""
    if not settings.is_production:
        return

    secret = settings.SECRET_KEY
    if not secret or secret == DEFAULT_SECRET_KEY or len(secret) < 32:
        raise ValueError("SECRET_KEY must be set to a strong value in production.")

    if not settings.ALLOWED_HOSTS or settings.ALLOWED_HOSTS == DEFAULT_ALLOWED_HOSTS:
        raise ValueError("ALLOWED_HOSTS must be configured explicitly in production.")

    if settings.DATABASE_URL.startswith("sqlite"):
        raise ValueError("Use PostgreSQL in production; sqlite is only for local/dev.")

    if settings.IDENTITY_API_KEY.strip().lower() in STUB_KEYS:
        raise ValueError("IDENTITY_API_KEY cannot use the stub identity provider in production.")


settings = Settings()


_validate_security()
