"""Core data models used across client, service, and CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

DEVICE_PORT = 8080
DEFAULT_SIDELOAD_TIMEOUT_MS = 5 * 60 * 1000
DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_REQUEST_TIMEOUT_S = 120.0
LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageDescriptor:
    """An application package as reported by the device's package manager.

    ``full_name`` addresses the package for removal, ``relative_id`` is the
    only form accepted by the startup-app endpoint.
    """

    full_name: str
    name: str
    relative_id: str
    can_uninstall: bool


@dataclass(frozen=True)
class ClientConfig:
    """Connection parameters for one target device.

    Non-positive timing values are ignored rather than rejected: at
    construction they fall back to the defaults, and ``with_timing`` keeps the
    previous value.
    """

    address: str
    username: str
    password: str = field(repr=False)
    sideload_timeout_ms: int = DEFAULT_SIDELOAD_TIMEOUT_MS
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.sideload_timeout_ms <= 0:
            _log_ignored("sideload_timeout_ms", self.sideload_timeout_ms)
            object.__setattr__(self, "sideload_timeout_ms", DEFAULT_SIDELOAD_TIMEOUT_MS)
        if self.poll_interval_ms <= 0:
            _log_ignored("poll_interval_ms", self.poll_interval_ms)
            object.__setattr__(self, "poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)
        if self.request_timeout_s <= 0:
            _log_ignored("request_timeout_s", self.request_timeout_s)
            object.__setattr__(self, "request_timeout_s", DEFAULT_REQUEST_TIMEOUT_S)

    @property
    def base_uri(self) -> str:
        return f"http://{self.address}:{DEVICE_PORT}"

    def with_timing(
        self,
        *,
        sideload_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
    ) -> ClientConfig:
        timeout = self.sideload_timeout_ms
        if sideload_timeout_ms is not None:
            if sideload_timeout_ms > 0:
                timeout = sideload_timeout_ms
            else:
                _log_ignored("sideload_timeout_ms", sideload_timeout_ms)

        interval = self.poll_interval_ms
        if poll_interval_ms is not None:
            if poll_interval_ms > 0:
                interval = poll_interval_ms
            else:
                _log_ignored("poll_interval_ms", poll_interval_ms)

        return replace(self, sideload_timeout_ms=timeout, poll_interval_ms=interval)


class SideloadState(Enum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SideloadResult:
    file_name: str
    state: SideloadState
    polls: int
    elapsed_s: float


@dataclass(frozen=True)
class PackageFiles:
    dependencies: tuple[Path, ...]
    apps: tuple[Path, ...]


def _log_ignored(name: str, value: float) -> None:
    LOGGER.warning("Ignoring non-positive %s=%s; keeping previous value", name, value)
