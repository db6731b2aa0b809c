"""Login attempt limiter interface."""

from __future__ import annotations

from typing import Protocol


class RateLimiter(Protocol):
    async def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record one hit for ``key``; False once ``limit`` hits fall inside the window."""
        ...

    async def reset(self, key: str) -> None:
        ...
