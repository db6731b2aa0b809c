"""Session lifecycle: login, refresh rotation, logout and revocation."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable
from uuid import uuid4

from session_auth.config import AuthConfig
from session_auth.exceptions import (
    AuthenticationFailed,
    AuthException,
    DuplicatePrincipalError,
    InvalidAccessToken,
    InvalidRefreshToken,
    PrincipalNotFoundError,
    RefreshExpired,
    SessionExpired,
    SessionNotFound,
    StaleRecordError,
    TokenError,
    TokenExpired,
)
from session_auth.interfaces.passcode_verifier import PasscodeVerifier
from session_auth.interfaces.principal_store import PrincipalStore
from session_auth.models import LoginResult, RefreshResult, Role, TokenClaims, TokenType
from session_auth.security import (
    burn_password_check,
    hash_password,
    hash_refresh_id,
    new_correlation_id,
    verify_password,
)
from session_auth.session_list import SessionList, new_session
from session_auth.tokens import TokenCodec

logger = logging.getLogger(__name__)

PUBLIC_FIELDS = ("id", "email", "mobile", "role", "created_at", "last_login_at")


def public_profile(principal: dict[str, Any]) -> dict[str, Any]:
    """Principal fields safe to return to clients."""
    return {field: principal.get(field) for field in PUBLIC_FIELDS}


class SessionManager:
    """Orchestrates credentials and device sessions for principals.

    Every read-modify-write of a principal runs in a bounded optimistic
    retry loop: the store rejects a save whose version moved, and the next
    attempt re-reads fresh state. Two refreshes racing on one token thus
    resolve to one rotation and one SessionNotFound.
    """

    def __init__(
        self,
        config: AuthConfig,
        principal_store: PrincipalStore,
        passcode_verifier: PasscodeVerifier,
        token_codec: TokenCodec | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._principals = principal_store
        self._passcodes = passcode_verifier
        self._tokens = token_codec or TokenCodec(config, clock=clock)
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def _session_list(self, principal: dict[str, Any]) -> SessionList:
        return SessionList(
            principal.setdefault("sessions", []),
            cap=self._config.MAX_SESSIONS_PER_PRINCIPAL,
        )

    def _attempts(self) -> range:
        return range(1, self._config.MAX_WRITE_RETRIES + 1)

    def _gave_up(self, principal_id: str) -> StaleRecordError:
        logger.error("Giving up on principal %s after %d conflicting writes", principal_id, self._config.MAX_WRITE_RETRIES)
        return StaleRecordError(f"Principal {principal_id} kept changing")

    def _check_role(self, role: str) -> str:
        value = role.value if isinstance(role, Role) else role
        if value not in Role.values():
            raise AuthException("Unknown role", status_code=400)
        return value

    async def register(
        self,
        email: str,
        password: str,
        role: str = Role.STANDARD.value,
        mobile: str | None = None,
    ) -> dict[str, Any]:
        role = self._check_role(role)
        email = email.strip().lower()

        if await self._principals.get_by_unique_key("email", email):
            raise AuthException("Email already registered", status_code=409)
        if mobile and await self._principals.get_by_unique_key("mobile", mobile):
            raise AuthException("Mobile number already registered", status_code=409)

        principal = {
            "id": uuid4().hex,
            "email": email,
            "mobile": mobile,
            "hashed_password": hash_password(password),
            "role": role,
            "last_login_at": None,
            "sessions": [],
            "version": 0,
        }
        try:
            saved = await self._principals.save(principal)
        except DuplicatePrincipalError as exc:
            raise AuthException("Account already registered", status_code=409) from exc

        logger.info("Registered principal %s with role %s", saved["id"], role)
        return public_profile(saved)

    async def login_with_password(self, email: str, password: str, device_info: str = "") -> LoginResult:
        principal = await self._principals.get_by_unique_key("email", (email or "").strip().lower())
        if principal is None:
            burn_password_check(password)
            logger.info("Password login failed for unknown identity")
            raise AuthenticationFailed()
        if not verify_password(password, principal.get("hashed_password")):
            logger.info("Password login failed for principal %s", principal["id"])
            raise AuthenticationFailed()
        return await self._open_session(principal["id"], device_info)

    async def login_with_passcode(self, mobile: str, passcode: str, device_info: str = "") -> LoginResult:
        principal = await self._principals.get_by_unique_key("mobile", mobile)
        # Verify even for unknown numbers so both failures take the same path
        verified = await self._passcodes.verify(mobile, passcode)
        if principal is None or not verified:
            logger.info("Passcode login failed")
            raise AuthenticationFailed()
        return await self._open_session(principal["id"], device_info)

    async def _open_session(self, principal_id: str, device_info: str) -> LoginResult:
        for attempt in self._attempts():
            principal = await self._principals.get_by_id(principal_id)
            if principal is None:
                raise AuthenticationFailed()

            now = self._now()
            sessions = self._session_list(principal)
            expired = sessions.prune_expired(now)
            if expired:
                logger.info("Pruned %d expired sessions for principal %s", len(expired), principal_id)

            correlation_id = new_correlation_id()
            expires_at = now + self._config.refresh_ttl_seconds
            session = new_session(hash_refresh_id(correlation_id), device_info, now, expires_at)
            sessions.append(session)
            principal["last_login_at"] = now

            try:
                saved = await self._principals.save(principal)
            except StaleRecordError:
                logger.info("Login write conflict for principal %s (attempt %d)", principal_id, attempt)
                continue

            access_token, access_exp = self._tokens.issue_access(principal_id, saved["role"])
            refresh_token, refresh_exp = self._tokens.issue_refresh(
                principal_id, correlation_id, expires_at=expires_at
            )
            logger.info("Opened session %s for principal %s", session["id"], principal_id)
            return LoginResult(
                principal=public_profile(saved),
                session_id=session["id"],
                access_token=access_token,
                access_expires_at=access_exp,
                refresh_token=refresh_token,
                refresh_expires_at=refresh_exp,
            )
        raise self._gave_up(principal_id)

    def _decode_refresh(self, refresh_token: str) -> tuple[TokenClaims, bool]:
        """Verified refresh claims, plus whether the token is past its expiry."""
        try:
            return self._tokens.validate(refresh_token, TokenType.REFRESH), False
        except TokenExpired as exc:
            if exc.claims is None:
                raise RefreshExpired() from exc
            return exc.claims, True
        except TokenError as exc:
            raise InvalidRefreshToken() from exc

    async def refresh(self, refresh_token: str) -> RefreshResult:
        """Rotate the session behind ``refresh_token``.

        The old hash is replaced in the same save that issues the new one, so
        a rotated token can never be found again. Sibling sessions are left
        alone when a stale token shows up. A genuine but expired token still
        locates its session, which is removed.
        """
        claims, token_expired = self._decode_refresh(refresh_token)
        principal_id = claims.principal_id
        token_hash = hash_refresh_id(claims.correlation_id)

        for attempt in self._attempts():
            principal = await self._principals.get_by_id(principal_id)
            if principal is None:
                raise RefreshExpired() if token_expired else SessionNotFound()

            sessions = self._session_list(principal)
            session = sessions.find_by_hash(token_hash)
            if session is None:
                if token_expired:
                    raise RefreshExpired()
                logger.warning("Refresh token for principal %s matched no session", principal_id)
                raise SessionNotFound()

            now = self._now()
            if token_expired or int(session["expires_at"]) <= now:
                sessions.remove_by_hash(token_hash)
                try:
                    await self._principals.save(principal)
                except StaleRecordError:
                    continue
                logger.info("Removed expired session %s for principal %s", session["id"], principal_id)
                raise SessionExpired()

            new_id = new_correlation_id()
            sessions.replace_hash(session["id"], hash_refresh_id(new_id), now)
            try:
                saved = await self._principals.save(principal)
            except StaleRecordError:
                logger.info("Refresh write conflict for principal %s (attempt %d)", principal_id, attempt)
                continue

            access_token, access_exp = self._tokens.issue_access(principal_id, saved["role"])
            new_refresh, refresh_exp = self._tokens.issue_refresh(
                principal_id, new_id, expires_at=int(session["expires_at"])
            )
            return RefreshResult(
                principal_id=principal_id,
                session_id=session["id"],
                access_token=access_token,
                access_expires_at=access_exp,
                refresh_token=new_refresh,
                refresh_expires_at=refresh_exp,
            )
        raise self._gave_up(principal_id)

    async def logout(self, refresh_token: str | None) -> None:
        """Best-effort removal of the session behind ``refresh_token``.

        Never raises: the caller clears the client credential whatever
        happens here. Expired but genuine tokens still remove their session.
        """
        if not refresh_token:
            return
        try:
            claims, _ = self._decode_refresh(refresh_token)
        except AuthException:
            logger.info("Logout with unverifiable refresh token")
            return

        try:
            await self._remove_session_by_token(claims)
        except Exception:
            logger.exception("Logout could not remove session for principal %s", claims.principal_id)

    async def _remove_session_by_token(self, claims: TokenClaims) -> None:
        principal_id = claims.principal_id
        token_hash = hash_refresh_id(claims.correlation_id)
        for _ in self._attempts():
            principal = await self._principals.get_by_id(principal_id)
            if principal is None:
                return
            if not self._session_list(principal).remove_by_hash(token_hash):
                return
            try:
                await self._principals.save(principal)
            except StaleRecordError:
                continue
            logger.info("Logged out a session for principal %s", principal_id)
            return
        raise self._gave_up(principal_id)

    async def revoke(self, principal_id: str, session_id: str) -> None:
        """Remove one named session. Access tokens already issued stay valid until they expire."""
        for _ in self._attempts():
            principal = await self._principals.get_by_id(principal_id)
            if principal is None:
                raise SessionNotFound()
            if not self._session_list(principal).remove_by_id(session_id):
                raise SessionNotFound()
            try:
                await self._principals.save(principal)
            except StaleRecordError:
                continue
            logger.info("Revoked session %s for principal %s", session_id, principal_id)
            return
        raise self._gave_up(principal_id)

    async def list_sessions(self, principal_id: str) -> list[dict[str, Any]]:
        principal = await self._principals.get_by_id(principal_id)
        if principal is None:
            raise AuthException("Principal not found", status_code=404)
        return self._session_list(principal).redacted(now=self._now())

    async def get_principal(self, principal_id: str) -> dict[str, Any]:
        principal = await self._principals.get_by_id(principal_id)
        if principal is None:
            raise AuthException("Principal not found", status_code=404)
        return public_profile(principal)

    async def set_role(self, principal_id: str, role: str) -> dict[str, Any]:
        role = self._check_role(role)
        try:
            updated = await self._principals.update_fields(principal_id, {"role": role})
        except PrincipalNotFoundError as exc:
            raise AuthException("Principal not found", status_code=404) from exc
        logger.info("Principal %s role set to %s", principal_id, role)
        return public_profile(updated)

    def authenticate_access(self, access_token: str) -> TokenClaims:
        try:
            return self._tokens.validate(access_token, TokenType.ACCESS)
        except TokenError as exc:
            raise InvalidAccessToken() from exc
