"""Auth dependency helpers."""

from __future__ import annotations

import time

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from session_auth.config import AuthConfig
from session_auth.exceptions import AuthException
from session_auth.interfaces.principal_store import PrincipalStore
from session_auth.interfaces.rate_limiter import RateLimiter
from session_auth.models import Role, TokenClaims
from session_auth.services.passcode_service import FixedPasscodeVerifier
from session_auth.services.session_manager import SessionManager
from session_auth.stores.memory_store import MemoryPrincipalStore
from session_auth.stores.sql_store import SqlPrincipalStore

_bearer_scheme = HTTPBearer(auto_error=False)


def build_principal_store(config: AuthConfig) -> PrincipalStore:
    """Pick the principal store named by AUTH_STORE."""
    if config.AUTH_STORE == "sql":
        store = SqlPrincipalStore()
        if config.AUTO_CREATE_SCHEMA:
            store.ensure_schema()
        return store
    if config.AUTH_STORE == "memory":
        return MemoryPrincipalStore()
    raise ValueError(f"Unknown AUTH_STORE: {config.AUTH_STORE}")


def build_session_manager(config: AuthConfig, principal_store: PrincipalStore) -> SessionManager:
    return SessionManager(
        config=config,
        principal_store=principal_store,
        passcode_verifier=FixedPasscodeVerifier(config.FIXED_OTP),
    )


def get_auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def _client_key(request: Request) -> str:
    client_ip = request.client.host if request.client else "unknown"
    return f"login:{client_ip}"


async def enforce_login_rate_limit(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
    config: AuthConfig = Depends(get_auth_config),
) -> None:
    allowed = await limiter.allow(_client_key(request), config.LOGIN_RATE_LIMIT_PER_MINUTE, 60)
    if not allowed:
        raise HTTPException(status_code=429, detail="Too many login attempts")


async def reset_login_rate_limit(request: Request, limiter: RateLimiter) -> None:
    await limiter.reset(_client_key(request))


async def get_current_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    session_manager: SessionManager = Depends(get_session_manager),
) -> TokenClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return session_manager.authenticate_access(credentials.credentials)
    except AuthException as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


def require_role(*roles: Role):
    """Dependency allowing only access tokens that carry one of ``roles``."""
    allowed = {role.value for role in roles}

    async def _require_role(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if claims.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return claims

    return _require_role


def read_refresh_cookie(request: Request, config: AuthConfig) -> str | None:
    return request.cookies.get(config.REFRESH_COOKIE_NAME) or None


def set_refresh_cookie(response: Response, config: AuthConfig, token: str, expires_at: int) -> None:
    """Attach the refresh token; the cookie lives exactly as long as the token."""
    max_age = max(0, int(expires_at) - int(time.time()))
    response.set_cookie(
        key=config.REFRESH_COOKIE_NAME,
        value=token,
        max_age=max_age,
        path="/",
        httponly=config.COOKIE_HTTP_ONLY,
        secure=config.COOKIE_SECURE,
        samesite=config.COOKIE_SAMESITE,
        domain=config.COOKIE_DOMAIN,
    )


def clear_refresh_cookie(response: Response, config: AuthConfig) -> None:
    response.delete_cookie(
        key=config.REFRESH_COOKIE_NAME,
        path="/",
        domain=config.COOKIE_DOMAIN,
        secure=config.COOKIE_SECURE,
        httponly=config.COOKIE_HTTP_ONLY,
        samesite=config.COOKIE_SAMESITE,
    )
