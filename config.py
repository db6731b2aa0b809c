"""
Configuration management for the application.
"""

import os
from pathlib import Path


# Load .env file if it exists
try:
    from dotenv import load_dotenv

    # Load .env from project root
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        # Try loading from current directory as fallback
        load_dotenv(override=True)
except ImportError:
    # python-dotenv not installed, skip loading .env
    pass


class Config:
    """Application configuration."""

    # Principal store database (SQLite file by default, PostgreSQL in production)
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./session_auth.db")
    DB_ECHO: bool = os.getenv("DB_ECHO", "false").lower() in {"1", "true", "yes", "on"}

    # API configuration
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.DATABASE_URL:
            raise ValueError(
                "DATABASE_URL not set. Please set it in .env file or environment variable."
            )
        if "*" in cls.CORS_ORIGINS:
            raise ValueError("CORS_ORIGINS cannot contain '*' when credentials are allowed.")
