"""Stable public API for building tooling on top of winiotctl.

This module is the supported integration surface for third-party callers.
Blocking callers use `Client`; async callers use `DeviceClient` directly.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from winiotctl.core.client import DeviceClient
from winiotctl.core.errors import (
    ConfigError,
    InstallError,
    PackageFileError,
    PolicyError,
    ProtocolError,
    SideloadCancelledError,
    SideloadTimeoutError,
    TransportConnectError,
    TransportError,
    VerificationError,
    WinIotCtlError,
    error_chain,
)
from winiotctl.core.model import (
    ClientConfig,
    PackageDescriptor,
    PackageFiles,
    SideloadResult,
    SideloadState,
)
from winiotctl.core.service import DeviceService
from winiotctl.core.settings import Settings, load_settings
from winiotctl.transports.base import Transport
from winiotctl.transports.http import HTTPTransport

__all__ = [
    "WinIotCtlError",
    "ConfigError",
    "InstallError",
    "PackageFileError",
    "PolicyError",
    "ProtocolError",
    "SideloadCancelledError",
    "SideloadTimeoutError",
    "TransportError",
    "TransportConnectError",
    "VerificationError",
    "error_chain",
    "ClientConfig",
    "PackageDescriptor",
    "PackageFiles",
    "SideloadResult",
    "SideloadState",
    "Settings",
    "load_settings",
    "DeviceClient",
    "HTTPTransport",
    "Client",
]


class Client:
    """Public blocking client for one Windows IoT Core device.

    A `Client` instance wraps the async `DeviceClient` and the deployment
    workflow behind a stable API intended for scripts and third-party tools.
    """

    def __init__(
        self,
        address: str,
        username: str,
        password: str,
        *,
        sideload_timeout_ms: int | None = None,
        poll_interval_ms: int | None = None,
        transport: Transport | None = None,
    ) -> None:
        config = ClientConfig(address=address, username=username, password=password).with_timing(
            sideload_timeout_ms=sideload_timeout_ms,
            poll_interval_ms=poll_interval_ms,
        )
        self._service = DeviceService(config, transport=transport)

    @property
    def config(self) -> ClientConfig:
        return self._service.config

    def list_installed_packages(self) -> list[PackageDescriptor]:
        return self._service.list_packages()

    def remove_package(self, package: PackageDescriptor) -> None:
        self._service.remove_package(package)

    def sideload_package(
        self,
        path: str | Path,
        *,
        progress: Callable[[int], None] | None = None,
    ) -> SideloadResult:
        return self._service.sideload_package(path, progress=progress)

    def set_default_startup_app(self, package: PackageDescriptor) -> None:
        self._service.set_default_startup_app(package)

    def reboot_device(self) -> None:
        self._service.reboot_device()

    def sideload_folder(self, folder: str | Path) -> list[SideloadResult]:
        return self._service.sideload_folder(Path(folder))
