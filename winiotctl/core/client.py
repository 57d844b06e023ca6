"""Async client for the Windows IoT Core device portal REST API."""

from __future__ import annotations

import asyncio
import base64
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from winiotctl.core.errors import (
    InstallError,
    PackageFileError,
    PolicyError,
    ProtocolError,
    VerificationError,
)
from winiotctl.core.model import ClientConfig, PackageDescriptor, SideloadResult, SideloadState
from winiotctl.core.payload import coerce_bool, coerce_str, json_object
from winiotctl.core.poller import Clock, SideloadPoller, Sleep
from winiotctl.transports.base import Transport
from winiotctl.transports.http import HTTPTransport

PACKAGES_PATH = "/api/appx/packagemanager/packages"
PACKAGE_PATH = "/api/appx/packagemanager/package"
SIDELOAD_PATH = "/api/app/packagemanager/package"
DEFAULT_APP_PATH = "/api/iot/appx/default"
RESTART_PATH = "/api/control/restart"
LOGGER = logging.getLogger(__name__)


class DeviceClient:
    """Device-management operations against one target.

    Every call issues fresh requests; nothing read from the device is cached
    because its state can change between calls.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Transport | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.config = config
        self._transport = transport or HTTPTransport(config)
        self._clock = clock
        self._sleep = sleep

    async def list_installed_packages(self) -> list[PackageDescriptor]:
        response = await self._transport.request("GET", PACKAGES_PATH)
        body = json_object(response)
        entries = body.get("InstalledPackages") if body is not None else None
        if not isinstance(entries, list):
            raise ProtocolError('Unable to query for "InstalledPackages" on the target')

        packages: list[PackageDescriptor] = []
        for index, entry in enumerate(entries):
            package = _package_from_entry(entry)
            if package is None:
                LOGGER.debug("Skipping malformed package entry %d: %r", index, entry)
                continue
            packages.append(package)
        return packages

    async def remove_package(self, package: PackageDescriptor) -> None:
        if not package.can_uninstall:
            raise PolicyError(
                f"Package {package.name} is marked as non-removable on the target"
            )
        await self._transport.request("DELETE", PACKAGE_PATH, params={"package": package.full_name})
        LOGGER.info("Removed %s", package.full_name)

    async def sideload_package(
        self,
        path: str | Path,
        *,
        progress: Callable[[int], None] | None = None,
        cancel: asyncio.Event | None = None,
    ) -> SideloadResult:
        """Upload a package file and wait until the device has installed it.

        Raises:
            PackageFileError: the file cannot be read.
            TransportError: any request answered with a non-2xx status.
            ProtocolError: the upload was not accepted by the package manager.
            InstallError: the package manager reported a failed install.
            SideloadTimeoutError: no install outcome within the configured timeout.
            SideloadCancelledError: ``cancel`` was set while waiting.
        """
        file_path = Path(path)
        file_name = file_path.name
        try:
            data = file_path.read_bytes()
        except OSError as exc:
            raise PackageFileError(f"Could not read package file {file_path}: {exc}") from exc

        response = await self._transport.request(
            "POST",
            SIDELOAD_PATH,
            params={"package": file_name},
            files={file_name: (file_name, data, "application/octet-stream")},
        )
        reason = coerce_str((json_object(response) or {}).get("Reason"))
        if reason is None or "accepted" not in reason:
            raise ProtocolError(
                f"Upload of {file_name} succeeded but the file was not accepted"
            )
        LOGGER.info("Sideload of %s accepted: %s", file_name, reason)

        poller = SideloadPoller(self._transport, self.config, clock=self._clock, sleep=self._sleep)
        state = await poller.run(progress=progress, cancel=cancel)
        if state is SideloadState.FAILED:
            raise InstallError(
                f"Uploaded file {file_name} could not be processed by the target's package manager"
            )
        LOGGER.info("Installed %s after %d polls", file_name, poller.polls)
        return SideloadResult(
            file_name=file_name,
            state=state,
            polls=poller.polls,
            elapsed_s=poller.elapsed_s,
        )

    async def set_default_startup_app(self, package: PackageDescriptor) -> None:
        app_id = base64.b64encode(package.relative_id.encode("utf-8")).decode("ascii")
        await self._transport.request("POST", DEFAULT_APP_PATH, params={"appid": app_id}, content=b"")

        response = await self._transport.request("GET", DEFAULT_APP_PATH)
        body = json_object(response)
        entries = body.get("AppPackages") if body is not None else None
        if not isinstance(entries, list):
            raise VerificationError(
                f"The target's response does not list startup apps; cannot verify {package.relative_id}"
            )

        match = _find_startup_entry(entries, package.relative_id)
        if match is None or coerce_bool(match.get("IsStartup")) is not True:
            raise VerificationError(
                f"Could not verify that {package.relative_id} was set as the target's startup app"
            )
        LOGGER.info("Startup app set to %s", package.relative_id)

    async def reboot_device(self) -> None:
        await self._transport.request("POST", RESTART_PATH, content=b"")


def _package_from_entry(entry: Any) -> PackageDescriptor | None:
    if not isinstance(entry, dict):
        return None
    full_name = coerce_str(entry.get("PackageFullName"))
    name = coerce_str(entry.get("Name"))
    relative_id = coerce_str(entry.get("PackageRelativeId"))
    can_uninstall = coerce_bool(entry.get("CanUninstall"))
    if full_name is None or name is None or relative_id is None or can_uninstall is None:
        return None
    return PackageDescriptor(
        full_name=full_name,
        name=name,
        relative_id=relative_id,
        can_uninstall=can_uninstall,
    )


def _find_startup_entry(entries: list[Any], relative_id: str) -> dict[str, Any] | None:
    # The default-app listing reports the relative id under "PackageFullName".
    # That is how the device portal answers, so match on that field.
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        identifier = coerce_str(entry.get("PackageFullName"))
        if identifier is not None and relative_id in identifier:
            return entry
    return None
