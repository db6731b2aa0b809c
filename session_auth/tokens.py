"""Signed access and refresh tokens."""

from __future__ import annotations

import time
from typing import Any, Callable
from uuid import uuid4

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from session_auth.config import AuthConfig
from session_auth.exceptions import InvalidSignature, MalformedToken, TokenExpired
from session_auth.models import Role, TokenClaims, TokenType


class TokenCodec:
    """Issues and validates HS256 JWTs for one signing configuration."""

    def __init__(self, config: AuthConfig, clock: Callable[[], float] = time.time) -> None:
        self._config = config
        self._clock = clock

    def _encode(self, payload: dict[str, Any]) -> str:
        return jwt.encode(payload, self._config.JWT_SECRET, algorithm=self._config.JWT_ALGORITHM)

    def issue_access(self, principal_id: str, role: str) -> tuple[str, int]:
        now = int(self._clock())
        expire = now + self._config.access_ttl_seconds
        payload: dict[str, Any] = {
            "sub": principal_id,
            "role": role,
            "type": TokenType.ACCESS.value,
            "iat": now,
            "exp": expire,
            "jti": uuid4().hex,
        }
        return self._encode(payload), expire

    def issue_refresh(
        self,
        principal_id: str,
        correlation_id: str,
        expires_at: int | None = None,
    ) -> tuple[str, int]:
        """Mint a refresh token; it never outlives ``expires_at`` when given."""
        now = int(self._clock())
        expire = now + self._config.refresh_ttl_seconds
        if expires_at is not None:
            expire = min(expire, int(expires_at))
        payload: dict[str, Any] = {
            "sub": principal_id,
            "rid": correlation_id,
            "type": TokenType.REFRESH.value,
            "iat": now,
            "exp": expire,
        }
        return self._encode(payload), expire

    def validate(self, token: str, expected_type: TokenType) -> TokenClaims:
        """Verify signature, expiry and shape of ``token``.

        Raises MalformedToken, InvalidSignature or TokenExpired. Signature and
        shape are checked before expiry, so a forged expired token reports
        InvalidSignature and a genuine one carries its claims on TokenExpired.
        Expiry is judged against the codec clock, ``exp <= now`` is expired.
        """
        if not token or not isinstance(token, str):
            raise MalformedToken("Empty token")
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise MalformedToken("Token is not a decodable JWT") from exc

        try:
            payload = jwt.decode(
                token,
                self._config.JWT_SECRET,
                algorithms=[self._config.JWT_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTClaimsError as exc:
            raise MalformedToken("Invalid token claims") from exc
        except JWTError as exc:
            raise InvalidSignature("Token signature verification failed") from exc

        claims = self._claims_from_payload(payload, expected_type)
        if claims.expires_at <= int(self._clock()):
            raise TokenExpired("Token expired", claims=claims)
        return claims

    def _claims_from_payload(self, payload: dict[str, Any], expected_type: TokenType) -> TokenClaims:
        if payload.get("type") != expected_type.value:
            raise MalformedToken("Unexpected token type")

        principal_id = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not principal_id or not isinstance(principal_id, str):
            raise MalformedToken("Missing subject")
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise MalformedToken("Missing timestamps")

        if expected_type is TokenType.ACCESS:
            role = payload.get("role")
            if role not in Role.values():
                raise MalformedToken("Unknown role")
            return TokenClaims(
                principal_id=principal_id,
                token_type=expected_type,
                issued_at=issued_at,
                expires_at=expires_at,
                role=role,
            )

        correlation_id = payload.get("rid")
        if not correlation_id or not isinstance(correlation_id, str):
            raise MalformedToken("Missing correlation id")
        return TokenClaims(
            principal_id=principal_id,
            token_type=expected_type,
            issued_at=issued_at,
            expires_at=expires_at,
            correlation_id=correlation_id,
        )
