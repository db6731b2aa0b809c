"""One-time passcode verifier interface."""

from __future__ import annotations

from typing import Protocol


class PasscodeVerifier(Protocol):
    async def verify(self, identifier: str, candidate: str) -> bool:
        ...
