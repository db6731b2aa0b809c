"""Principal store interface."""

from __future__ import annotations

from typing import Protocol

UNIQUE_KEYS = ("email", "mobile")


class PrincipalStore(Protocol):
    """Keyed principal records with document-level atomic save.

    ``save`` upserts the whole record including its nested session list and
    must fail with StaleRecordError when the stored ``version`` no longer
    matches the one the caller read.
    """

    async def get_by_id(self, principal_id: str) -> dict | None:
        ...

    async def get_by_unique_key(self, key: str, value: str) -> dict | None:
        ...

    async def save(self, principal: dict) -> dict:
        ...

    async def update_fields(self, principal_id: str, updates: dict) -> dict:
        ...
