"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any, TypeVar

from winiotctl.core.client import DeviceClient
from winiotctl.core.model import ClientConfig, PackageDescriptor, SideloadResult
from winiotctl.core.package_match import app_name_from_file, discover_package_files, find_package_by_name
from winiotctl.transports.base import Transport

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)


class DeviceService:
    """Blocking device operations plus the folder deployment workflow.

    Each method runs the matching ``DeviceClient`` coroutine to completion.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self.client = DeviceClient(config, transport=transport)

    def list_packages(self) -> list[PackageDescriptor]:
        return _run(self.client.list_installed_packages())

    def remove_package(self, package: PackageDescriptor) -> None:
        _run(self.client.remove_package(package))

    def sideload_package(
        self,
        path: str | Path,
        *,
        progress: Callable[[int], None] | None = None,
    ) -> SideloadResult:
        return _run(self.client.sideload_package(path, progress=progress))

    def set_default_startup_app(self, package: PackageDescriptor) -> None:
        _run(self.client.set_default_startup_app(package))

    def reboot_device(self) -> None:
        _run(self.client.reboot_device())

    def remove_by_name(self, name: str) -> PackageDescriptor | None:
        package = find_package_by_name(self.list_packages(), name)
        if package is None:
            return None
        self.remove_package(package)
        return package

    def set_startup_by_name(self, name: str) -> PackageDescriptor | None:
        package = find_package_by_name(self.list_packages(), name)
        if package is None:
            return None
        self.set_default_startup_app(package)
        return package

    def sideload_folder(
        self,
        folder: Path,
        *,
        on_remove: Callable[[PackageDescriptor], None] | None = None,
        on_sideload: Callable[[Path], None] | None = None,
        on_installed: Callable[[SideloadResult], None] | None = None,
        progress: Callable[[int], None] | None = None,
    ) -> list[SideloadResult]:
        """Replace installed versions of the folder's apps and sideload everything.

        Dependencies (``Dependencies/**/*.appx``) are installed before the apps
        found directly in *folder*. The first error aborts the remaining files.
        """
        return _run(
            self._sideload_folder(
                folder,
                on_remove=on_remove,
                on_sideload=on_sideload,
                on_installed=on_installed,
                progress=progress,
            )
        )

    async def _sideload_folder(
        self,
        folder: Path,
        *,
        on_remove: Callable[[PackageDescriptor], None] | None,
        on_sideload: Callable[[Path], None] | None,
        on_installed: Callable[[SideloadResult], None] | None,
        progress: Callable[[int], None] | None,
    ) -> list[SideloadResult]:
        files = discover_package_files(folder)
        LOGGER.debug(
            "Found %d dependency and %d app package(s) in %s",
            len(files.dependencies),
            len(files.apps),
            folder,
        )
        app_names = [app_name_from_file(path) for path in files.apps]

        installed = await self.client.list_installed_packages()
        for app_name in app_names:
            previous = find_package_by_name(installed, app_name)
            if previous is None:
                continue
            if on_remove is not None:
                on_remove(previous)
            await self.client.remove_package(previous)

        results: list[SideloadResult] = []
        for path in (*files.dependencies, *files.apps):
            if on_sideload is not None:
                on_sideload(path)
            result = await self.client.sideload_package(path, progress=progress)
            if on_installed is not None:
                on_installed(result)
            results.append(result)
        return results


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)
