"""Passcode verification backends."""

from __future__ import annotations

import hmac


class FixedPasscodeVerifier:
    """Accepts one configured passcode for every identifier.

    Stand-in for a real one-time-passcode service; with no passcode
    configured it rejects everything.
    """

    def __init__(self, expected: str | None) -> None:
        self._expected = expected

    async def verify(self, identifier: str, candidate: str) -> bool:
        if not self._expected or not identifier or not candidate:
            return False
        return hmac.compare_digest(self._expected.encode("utf-8"), candidate.encode("utf-8"))
