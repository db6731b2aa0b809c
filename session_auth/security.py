"""Secret hashing utilities for auth."""

from __future__ import annotations

import hashlib
import secrets

import bcrypt

# Verified against on unknown-identity logins so both failure paths pay for a bcrypt check.
_DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"unused-dummy-password", bcrypt.gensalt()).decode("utf-8")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(password: str, hashed_password: str | None) -> bool:
    """Verify a password against a hash. Malformed or missing hashes never match."""
    if not hashed_password:
        return False
    try:
        password_bytes = password.encode("utf-8")
        hashed_bytes = hashed_password.encode("utf-8")
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except (ValueError, TypeError):
        return False


def burn_password_check(password: str) -> None:
    verify_password(password, _DUMMY_PASSWORD_HASH)


def new_correlation_id() -> str:
    return secrets.token_urlsafe(32)


def hash_refresh_id(correlation_id: str) -> str:
    """Lookup key stored for a refresh token's correlation id."""
    return hashlib.sha256(correlation_id.encode("utf-8")).hexdigest()
