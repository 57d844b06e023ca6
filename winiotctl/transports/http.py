"""Authenticated HTTP transport for the device REST API using httpx."""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from winiotctl.core.errors import TransportConnectError, TransportError
from winiotctl.core.model import ClientConfig

LOGGER = logging.getLogger(__name__)


def basic_auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class HTTPTransport:
    """Opens one ``httpx.AsyncClient`` per request against a fixed device.

    ``transport`` is handed to httpx unchanged, which lets callers plug in
    ``httpx.MockTransport`` or a custom connection pool.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_uri = config.base_uri
        self.timeout_s = config.request_timeout_s
        self._authorization = basic_auth_header(config.username, config.password)
        self._transport = transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        files: dict[str, Any] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        url = self.base_uri + path
        headers = {"Authorization": self._authorization, "Accept": "application/json"}
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_s) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    files=files,
                    content=content,
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            raise TransportConnectError(f"{method} {url} timed out after {self.timeout_s}s") from exc
        except httpx.HTTPError as exc:
            raise TransportConnectError(f"{method} {url} failed: {exc}") from exc

        LOGGER.debug("%s %s -> %s", method, response.url, response.status_code)
        if not response.is_success:
            raise TransportError(
                f"{method} {path} returned {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
        return response
