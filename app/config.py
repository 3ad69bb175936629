from __future__ import annotations

from urllib.parse import urlparse

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Backend
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    LOGIN_EMAIL_DOMAIN: str = "ienergy.local"
    PASSWORD_RESET_REDIRECT_URL: str = "http://localhost:5173/reset-password"

    # Session lifetime
    MAX_SESSION_MINUTES: float = Field(default=15, gt=0)
    SESSION_RECHECK_SECONDS: float = Field(default=15, ge=10, le=30)
    TOKEN_REFRESH_MARGIN_SECONDS: int = 60

    # Durable storage
    STORAGE_PATH: str = ""
    SESSION_START_KEY: str = "leave_manager_session_started_at"
    THEME_KEY: str = "leave_manager_theme"
    AUTH_STORAGE_PREFIX: str = "sb-"
    AUTH_STORAGE_SUFFIX: str = "-auth-token"

    # HTTP
    REQUEST_TIMEOUT: int = 30
    MAX_RETRIES: int = 3
    BACKOFF_FACTOR: float = 0.5

    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    @field_validator("SUPABASE_URL")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if urlparse(value).scheme not in ("http", "https"):
            raise ValueError(f"Invalid SUPABASE_URL: {value}")
        return value.rstrip("/")

    @property
    def max_session_ms(self) -> int:
        return int(self.MAX_SESSION_MINUTES * 60 * 1000)

    @property
    def project_ref(self) -> str:
        """First host label of SUPABASE_URL, used to name the provider's storage key."""
        host = urlparse(self.SUPABASE_URL).hostname or "local"
        return host.split(".")[0]

    @property
    def auth_storage_key(self) -> str:
        return f"{self.AUTH_STORAGE_PREFIX}{self.project_ref}{self.AUTH_STORAGE_SUFFIX}"
