"""Per-principal device session list.

A principal record owns an ordered list of session dicts, oldest-created
first. ``SessionList`` mutates that list in place; nothing here touches a
store, the caller persists the owning principal afterwards.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)

DEFAULT_SESSION_CAP = 5

REDACTED_FIELDS = ("id", "device_info", "created_at", "last_used_at", "expires_at")


def new_session(refresh_token_hash: str, device_info: str, now: int, expires_at: int) -> dict[str, Any]:
    return {
        "id": uuid4().hex,
        "device_info": device_info or "",
        "refresh_token_hash": refresh_token_hash,
        "created_at": now,
        "last_used_at": now,
        "expires_at": expires_at,
    }


class SessionList:
    def __init__(self, sessions: list[dict[str, Any]], cap: int = DEFAULT_SESSION_CAP) -> None:
        if cap < 1:
            raise ValueError("Session cap must be positive")
        self._sessions = sessions
        self._cap = cap

    def __len__(self) -> int:
        return len(self._sessions)

    def append(self, session: dict[str, Any]) -> list[dict[str, Any]]:
        """Add ``session`` and evict oldest-created entries beyond the cap.

        Returns the evicted sessions. Eviction is silent towards the owner of
        the evicted device.
        """
        self._sessions.append(session)
        evicted: list[dict[str, Any]] = []
        while len(self._sessions) > self._cap:
            oldest = min(
                range(len(self._sessions)),
                key=lambda index: (int(self._sessions[index].get("created_at", 0)), index),
            )
            evicted.append(self._sessions.pop(oldest))
        for dropped in evicted:
            logger.info("Evicted session %s over cap of %d", dropped.get("id"), self._cap)
        return evicted

    def find_by_hash(self, refresh_token_hash: str) -> dict[str, Any] | None:
        for session in self._sessions:
            if session.get("refresh_token_hash") == refresh_token_hash:
                return session
        return None

    def find_by_id(self, session_id: str) -> dict[str, Any] | None:
        for session in self._sessions:
            if session.get("id") == session_id:
                return session
        return None

    def remove_by_hash(self, refresh_token_hash: str) -> bool:
        return self._remove_where("refresh_token_hash", refresh_token_hash)

    def remove_by_id(self, session_id: str) -> bool:
        return self._remove_where("id", session_id)

    def replace_hash(self, session_id: str, new_hash: str, now: int) -> bool:
        """Install ``new_hash`` and bump ``last_used_at`` on one session."""
        session = self.find_by_id(session_id)
        if session is None:
            return False
        session["refresh_token_hash"] = new_hash
        session["last_used_at"] = now
        return True

    def prune_expired(self, now: int) -> list[dict[str, Any]]:
        expired = [session for session in self._sessions if int(session.get("expires_at", 0)) <= now]
        if expired:
            self._sessions[:] = [session for session in self._sessions if int(session.get("expires_at", 0)) > now]
        return expired

    def redacted(self, now: int | None = None) -> list[dict[str, Any]]:
        """Session metadata without secrets; expired entries hidden when ``now`` is given."""
        views = []
        for session in self._sessions:
            if now is not None and int(session.get("expires_at", 0)) <= now:
                continue
            views.append({field: session.get(field) for field in REDACTED_FIELDS})
        return views

    def _remove_where(self, field: str, value: str) -> bool:
        remaining = [session for session in self._sessions if session.get(field) != value]
        removed = len(remaining) != len(self._sessions)
        self._sessions[:] = remaining
        return removed
