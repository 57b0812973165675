"""
HackTeams – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "HackTeams"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./hackteams.db"

    # ── Identity provider tokens ──
    IDENTITY_JWT_SECRET: str = "change-me-to-the-provider-secret"
    IDENTITY_JWT_ALGORITHM: str = "HS256"
    IDENTITY_COOKIE_KEY: str = "__session"

    # ── Teams ──
    BASE_URL: str = "http://localhost:8000"
    MIN_TEAM_NAME_LENGTH: int = 3


settings = Settings()
