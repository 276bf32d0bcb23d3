"""
ThemeForge configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Database (empty = in-memory stores, for local development)
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Packaging
    THEMES_DIR: str = os.environ.get("THEMES_DIR", "themes")
    PACKAGING_TIMEOUT_SECONDS: float = float(os.environ.get("PACKAGING_TIMEOUT_SECONDS", "30"))

    # Auth
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRY_HOURS: int = 24

    # Editor
    EDITOR_HISTORY_LIMIT: int = int(os.environ.get("EDITOR_HISTORY_LIMIT", "50"))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()
    TESTING: bool = os.environ.get("TESTING", "").lower() == "true"


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
if not settings.TESTING:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET environment variable is required")
