"""Domain types shared across the session subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    STANDARD = "standard"
    PROVIDER = "provider"
    ADMINISTRATOR = "administrator"

    @classmethod
    def values(cls) -> set[str]:
        return {role.value for role in cls}


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of an access or refresh token."""

    principal_id: str
    token_type: TokenType
    issued_at: int
    expires_at: int
    role: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True)
class LoginResult:
    principal: dict[str, Any]
    session_id: str
    access_token: str
    access_expires_at: int
    refresh_token: str
    refresh_expires_at: int


@dataclass(frozen=True)
class RefreshResult:
    principal_id: str
    session_id: str
    access_token: str
    access_expires_at: int
    refresh_token: str
    refresh_expires_at: int
