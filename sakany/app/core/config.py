# sakany/app/core/config.py
"""
Application configuration using pydantic-settings.

Security considerations:
- Session cookies are marked Secure when SESSION_COOKIE_SECURE is set
  or ENVIRONMENT is "production"
- CORS_ORIGINS parsed from comma-separated env var, never defaults to "*"
- Database URLs normalized for async drivers automatically
- Admin rights at registration come only from the allow-list below
"""
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    if not value or not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Strictly typed application settings.

    Priority for loading:
    1. Environment variables (highest priority)
    2. .env file (via pydantic-settings)
    3. Default values (lowest priority, dev-safe only)
    """

    # ─────────────────────────────────────────────────────────────
    # Application metadata
    # ─────────────────────────────────────────────────────────────
    PROJECT_NAME: str = "Sakany"
    PROJECT_VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ─────────────────────────────────────────────────────────────
    # Sessions
    # The cookie only carries an opaque id; the record lives server-side
    # ─────────────────────────────────────────────────────────────
    SESSION_COOKIE_NAME: str = "sakany_session"
    SESSION_TTL_SECONDS: int = 24 * 60 * 60
    SESSION_COOKIE_SECURE: bool = False

    # ─────────────────────────────────────────────────────────────
    # Password reset and two-factor authentication
    # ─────────────────────────────────────────────────────────────
    PASSWORD_RESET_TTL_MINUTES: int = 60
    MFA_CHALLENGE_TTL_SECONDS: int = 300
    MFA_MAX_ATTEMPTS: int = 5
    TOTP_ISSUER: str = "Sakany"

    # ─────────────────────────────────────────────────────────────
    # Admin allow-list (comma-separated, case-insensitive)
    # ─────────────────────────────────────────────────────────────
    ADMIN_EMAIL_DOMAINS: str = "sakany.com"
    ADMIN_EMAILS: str = ""

    # ─────────────────────────────────────────────────────────────
    # Database Configuration
    # Priority: DATABASE_URL env var → SQLite fallback for local dev
    # ─────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./sakany.db"
    DATABASE_ECHO: bool = False
    SEED_SAMPLE_PROPERTIES: bool = True

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """
        Normalize database URLs for async SQLAlchemy compatibility.

        Conversions:
        - postgres://     → postgresql+asyncpg://  (Render.com style)
        - postgresql://   → postgresql+asyncpg://  (standard PostgreSQL)
        - sqlite:///      → sqlite+aiosqlite:///   (local development)
        """
        if v is None:
            return "sqlite+aiosqlite:///./sakany.db"

        url = v.strip()

        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)

        if url.startswith("postgresql://") and "+asyncpg" not in url:
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)

        if url.startswith("sqlite:///") and "+aiosqlite" not in url:
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)

        return url

    # ─────────────────────────────────────────────────────────────
    # CORS Configuration
    # Empty string → empty list (NOT "*")
    # ─────────────────────────────────────────────────────────────
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:5000"

    @property
    def BACKEND_CORS_ORIGINS(self) -> List[str]:
        """Allowed origins parsed from CORS_ORIGINS, whitespace trimmed."""
        return _split_csv(self.CORS_ORIGINS)

    @property
    def admin_email_domains(self) -> List[str]:
        return [d.lower().lstrip("@") for d in _split_csv(self.ADMIN_EMAIL_DOMAINS)]

    @property
    def admin_emails(self) -> List[str]:
        return [e.lower() for e in _split_csv(self.ADMIN_EMAILS)]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        # Extra fields in .env are ignored
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def session_cookie_secure(self) -> bool:
        """Secure flag for the session cookie; always on in production."""
        return self.SESSION_COOKIE_SECURE or self.is_production

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database (local development)."""
        return "sqlite" in self.DATABASE_URL.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.

    Settings are loaded once per process; tests build their own
    Settings objects and pass them to create_app() instead.
    """
    return Settings()
