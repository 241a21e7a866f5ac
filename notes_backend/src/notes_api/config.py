"""Application settings loaded from the environment (and a local .env file)."""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# PUBLIC_INTERFACE
class Settings(BaseSettings):
    """Runtime configuration for the API and the services it constructs.

    Environment variables take precedence over values in ``.env``. Empty
    variables count as unset.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    database_url: str
    app_env: str = "development"
    log_level: str = "INFO"
    log_json: bool = False

    jwt_secret: str = "temporary_dev_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_days: int = Field(default=7, ge=1)

    otp_ttl_minutes: int = Field(default=10, ge=1)
    otp_resend_cooldown_seconds: int = Field(default=60, ge=0)

    frontend_url: str = "http://localhost:3000"
    # Comma-separated; falls back to frontend_url when empty.
    cors_origins: str = ""

    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_callback_url: Optional[str] = None
    link_external_by_email: bool = True

    email_host: Optional[str] = None
    email_port: int = 587
    email_user: Optional[str] = None
    email_password: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("EMAIL_PASS", "email_password")
    )
    email_from: Optional[str] = None
    email_use_tls: bool = True

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_callback_url)

    @property
    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or [self.frontend_url]


# PUBLIC_INTERFACE
@lru_cache
def get_settings() -> Settings:
    """Cached settings for dependency injection."""
    return Settings()
