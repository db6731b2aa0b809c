"""In-memory principal store and login limiter."""

from __future__ import annotations

import asyncio
import copy
import time
from typing import Any, Callable

from session_auth.exceptions import DuplicatePrincipalError, PrincipalNotFoundError, StaleRecordError
from session_auth.interfaces.principal_store import UNIQUE_KEYS


class MemoryPrincipalStore:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._principals: dict[str, dict[str, Any]] = {}

    async def get_by_id(self, principal_id: str) -> dict | None:
        async with self._lock:
            principal = self._principals.get(principal_id)
            return copy.deepcopy(principal) if principal else None

    async def get_by_unique_key(self, key: str, value: str) -> dict | None:
        if key not in UNIQUE_KEYS:
            raise ValueError(f"Unsupported lookup key: {key}")
        if not value:
            return None
        async with self._lock:
            for principal in self._principals.values():
                if principal.get(key) == value:
                    return copy.deepcopy(principal)
            return None

    async def save(self, principal: dict) -> dict:
        async with self._lock:
            principal_id = principal["id"]
            expected_version = int(principal.get("version", 0))
            current = self._principals.get(principal_id)
            current_version = int(current["version"]) if current else 0
            if current_version != expected_version:
                raise StaleRecordError(f"Principal {principal_id} changed concurrently")
            self._check_unique(principal)

            payload = copy.deepcopy(principal)
            now = int(time.time())
            payload["version"] = expected_version + 1
            payload["created_at"] = payload.get("created_at") or now
            payload["updated_at"] = now
            payload.setdefault("sessions", [])
            self._principals[principal_id] = payload
            return copy.deepcopy(payload)

    async def update_fields(self, principal_id: str, updates: dict) -> dict:
        async with self._lock:
            principal = self._principals.get(principal_id)
            if not principal:
                raise PrincipalNotFoundError(f"Principal {principal_id} not found")
            candidate = dict(principal)
            for key, value in updates.items():
                if key in {"id", "sessions", "version"}:
                    continue
                candidate[key] = value
            self._check_unique(candidate)
            candidate["version"] = int(principal["version"]) + 1
            candidate["updated_at"] = int(time.time())
            self._principals[principal_id] = candidate
            return copy.deepcopy(candidate)

    def _check_unique(self, principal: dict) -> None:
        for key in UNIQUE_KEYS:
            value = principal.get(key)
            if not value:
                continue
            for other_id, other in self._principals.items():
                if other_id != principal["id"] and other.get(key) == value:
                    raise DuplicatePrincipalError(f"{key} already registered")


class MemoryRateLimiter:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = asyncio.Lock()
        self._hits: dict[str, list[float]] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._hits)

    async def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        async with self._lock:
            self._evict_idle(now, window_seconds)
            hits = self._hits.get(key, [])
            if len(hits) >= limit:
                return False
            hits.append(now)
            self._hits[key] = hits
            return True

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._hits.pop(key, None)

    def _evict_idle(self, now: float, window_seconds: int) -> None:
        """Trim every key to the current window; keys left empty are dropped."""
        for key in list(self._hits):
            hits = [timestamp for timestamp in self._hits[key] if (now - timestamp) < window_seconds]
            if hits:
                self._hits[key] = hits
            else:
                del self._hits[key]
