"""Transport interfaces."""

from __future__ import annotations

from typing import Any, Protocol

import httpx


class Transport(Protocol):
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """Send an authenticated request and return a 2xx response."""
