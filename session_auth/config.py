"""Auth configuration management."""

from __future__ import annotations

import logging
import os
import secrets
from dataclasses import dataclass
from pathlib import Path

# Load .env file before reading config
try:
    from dotenv import load_dotenv

    # Try loading from project root
    env_path = Path(__file__).parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    else:
        load_dotenv(override=True)
except ImportError:
    pass

logger = logging.getLogger(__name__)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AuthConfig:
    """Configuration values for session auth flows.

    Built once at startup and passed explicitly to the token codec and the
    session manager. Instances are immutable.
    """

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    REFRESH_COOKIE_NAME: str = "jid"
    COOKIE_SECURE: bool = True
    COOKIE_HTTP_ONLY: bool = True
    COOKIE_SAMESITE: str = "lax"
    COOKIE_DOMAIN: str | None = None

    MAX_SESSIONS_PER_PRINCIPAL: int = 5
    MAX_WRITE_RETRIES: int = 5

    FIXED_OTP: str | None = None
    LOGIN_RATE_LIMIT_PER_MINUTE: int = 5

    # Principal store: "sql" (production) or "memory" (testing)
    AUTH_STORE: str = "sql"
    AUTO_CREATE_SCHEMA: bool = False

    @property
    def refresh_ttl_seconds(self) -> int:
        return self.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600

    @property
    def access_ttl_seconds(self) -> int:
        return self.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @classmethod
    def from_env(cls) -> "AuthConfig":
        secret = os.getenv("AUTH_JWT_SECRET")
        if not secret:
            logger.warning("AUTH_JWT_SECRET not set, using a random per-process secret")
            secret = secrets.token_urlsafe(32)
        return cls(
            JWT_SECRET=secret,
            JWT_ALGORITHM=os.getenv("AUTH_JWT_ALGORITHM", "HS256"),
            ACCESS_TOKEN_EXPIRE_MINUTES=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")),
            REFRESH_TOKEN_EXPIRE_DAYS=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "30")),
            REFRESH_COOKIE_NAME=os.getenv("REFRESH_COOKIE_NAME", "jid"),
            COOKIE_SECURE=_parse_bool(os.getenv("COOKIE_SECURE"), True),
            COOKIE_HTTP_ONLY=_parse_bool(os.getenv("COOKIE_HTTP_ONLY"), True),
            COOKIE_SAMESITE=os.getenv("COOKIE_SAME_SITE", "lax"),
            COOKIE_DOMAIN=os.getenv("COOKIE_DOMAIN"),
            MAX_SESSIONS_PER_PRINCIPAL=int(os.getenv("MAX_SESSIONS_PER_PRINCIPAL", "5")),
            MAX_WRITE_RETRIES=int(os.getenv("MAX_WRITE_RETRIES", "5")),
            FIXED_OTP=os.getenv("FIXED_OTP"),
            LOGIN_RATE_LIMIT_PER_MINUTE=int(os.getenv("LOGIN_RATE_LIMIT_PER_MINUTE", "5")),
            AUTH_STORE=os.getenv("AUTH_STORE", "sql"),
            AUTO_CREATE_SCHEMA=_parse_bool(os.getenv("AUTO_CREATE_SCHEMA"), False),
        )
