"""SQL principal store using SQLAlchemy."""

from __future__ import annotations

import copy
import time
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from db.engine import Base, get_session_factory
from db.models.principal import AuthSession, Principal
from session_auth.exceptions import DuplicatePrincipalError, PrincipalNotFoundError, StaleRecordError
from session_auth.interfaces.principal_store import UNIQUE_KEYS

_SCALAR_FIELDS = ("email", "mobile", "hashed_password", "role", "last_login_at")


class SqlPrincipalStore:
    """Principal store backed by a SQL database.

    Sessions live in their own table but are only ever written as part of
    the owning principal's save.
    """

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    def _get_session(self) -> Session:
        return self._session_factory()

    def ensure_schema(self) -> None:
        Base.metadata.create_all(self._session_factory.kw["bind"])

    async def get_by_id(self, principal_id: str) -> dict | None:
        with self._get_session() as db:
            principal = db.get(Principal, principal_id)
            if not principal:
                return None
            return self._to_dict(principal)

    async def get_by_unique_key(self, key: str, value: str) -> dict | None:
        if key not in UNIQUE_KEYS:
            raise ValueError(f"Unsupported lookup key: {key}")
        if not value:
            return None
        with self._get_session() as db:
            principal = db.execute(
                select(Principal).where(getattr(Principal, key) == value)
            ).scalar_one_or_none()
            if not principal:
                return None
            return self._to_dict(principal)

    async def save(self, principal: dict) -> dict:
        principal_id = principal["id"]
        expected_version = int(principal.get("version", 0))
        now = int(time.time())
        created_at = principal.get("created_at") or now

        with self._get_session() as db:
            try:
                if expected_version == 0:
                    if db.get(Principal, principal_id) is not None:
                        raise StaleRecordError(f"Principal {principal_id} already exists")
                    db.add(
                        Principal(
                            id=principal_id,
                            version=1,
                            created_at=created_at,
                            updated_at=now,
                            **{field: principal.get(field) for field in _SCALAR_FIELDS},
                        )
                    )
                    db.flush()
                else:
                    result = db.execute(
                        update(Principal)
                        .where(Principal.id == principal_id, Principal.version == expected_version)
                        .values(
                            version=expected_version + 1,
                            updated_at=now,
                            **{field: principal.get(field) for field in _SCALAR_FIELDS},
                        )
                    )
                    if result.rowcount != 1:
                        raise StaleRecordError(f"Principal {principal_id} changed concurrently")
                    db.execute(delete(AuthSession).where(AuthSession.principal_id == principal_id))

                db.add_all(
                    self._session_row(principal_id, position, session)
                    for position, session in enumerate(principal.get("sessions", []))
                )
                db.commit()
            except StaleRecordError:
                db.rollback()
                raise
            except IntegrityError as exc:
                db.rollback()
                raise DuplicatePrincipalError("Unique key already registered") from exc

        payload = copy.deepcopy(principal)
        payload["version"] = expected_version + 1
        payload["created_at"] = created_at
        payload["updated_at"] = now
        payload.setdefault("sessions", [])
        return payload

    async def update_fields(self, principal_id: str, updates: dict) -> dict:
        values = {key: value for key, value in updates.items() if key in _SCALAR_FIELDS}
        with self._get_session() as db:
            try:
                result = db.execute(
                    update(Principal)
                    .where(Principal.id == principal_id)
                    .values(version=Principal.version + 1, updated_at=int(time.time()), **values)
                )
                if result.rowcount != 1:
                    db.rollback()
                    raise PrincipalNotFoundError(f"Principal {principal_id} not found")
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise DuplicatePrincipalError("Unique key already registered") from exc

            principal = db.get(Principal, principal_id, populate_existing=True)
            return self._to_dict(principal)

    def _session_row(self, principal_id: str, position: int, session: dict[str, Any]) -> AuthSession:
        return AuthSession(
            id=session["id"],
            principal_id=principal_id,
            refresh_token_hash=session["refresh_token_hash"],
            device_info=session.get("device_info") or "",
            position=position,
            created_at=session["created_at"],
            last_used_at=session["last_used_at"],
            expires_at=session["expires_at"],
        )

    def _to_dict(self, principal: Principal) -> dict[str, Any]:
        return {
            "id": principal.id,
            "email": principal.email,
            "mobile": principal.mobile,
            "hashed_password": principal.hashed_password,
            "role": principal.role,
            "version": principal.version,
            "created_at": principal.created_at,
            "updated_at": principal.updated_at,
            "last_login_at": principal.last_login_at,
            "sessions": [
                {
                    "id": session.id,
                    "device_info": session.device_info,
                    "refresh_token_hash": session.refresh_token_hash,
                    "created_at": session.created_at,
                    "last_used_at": session.last_used_at,
                    "expires_at": session.expires_at,
                }
                for session in principal.sessions
            ],
        }
