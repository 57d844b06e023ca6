"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

import typer

from winiotctl.core.errors import WinIotCtlError, error_chain
from winiotctl.core.model import PackageDescriptor, SideloadResult
from winiotctl.core.service import DeviceService
from winiotctl.core.settings import load_settings

app = typer.Typer(help="Remote package management for Windows IoT Core devices")


@dataclass
class Options:
    address: str | None
    username: str | None
    password: str | None
    timeout_minutes: int | None
    poll_interval_s: int | None
    config_path: Path | None


@app.callback()
def main(
    ctx: typer.Context,
    address: str | None = typer.Option(None, "--address", envvar="WINIOTCTL_ADDRESS", help="Target IPv4 address"),
    username: str | None = typer.Option(None, "--username", "-u", envvar="WINIOTCTL_USERNAME", help="API username"),
    password: str | None = typer.Option(None, "--password", "-p", envvar="WINIOTCTL_PASSWORD", help="API password"),
    timeout: int | None = typer.Option(
        None, "--timeout", "-t", help="Minutes to wait for each sideloaded package to install (default 5)"
    ),
    poll_interval: int | None = typer.Option(
        None, "--poll-interval", help="Seconds between install state polls (default 5)"
    ),
    config: Path | None = typer.Option(None, "--config", help="Settings file (YAML)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and poll results"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = Options(
        address=address,
        username=username,
        password=password,
        timeout_minutes=timeout,
        poll_interval_s=poll_interval,
        config_path=config,
    )


def _build_service(ctx: typer.Context) -> DeviceService:
    options: Options = ctx.obj
    settings = load_settings(options.config_path)
    config = settings.client_config(
        address=options.address,
        username=options.username,
        password=options.password,
        sideload_timeout_ms=options.timeout_minutes * 60 * 1000 if options.timeout_minutes is not None else None,
        poll_interval_ms=options.poll_interval_s * 1000 if options.poll_interval_s is not None else None,
    )
    return DeviceService(config)


def _fail(exc: BaseException) -> None:
    typer.echo("", err=True)
    chain = list(error_chain(exc))
    typer.echo(f"Error: {chain[0]}", err=True)
    for cause in chain[1:]:
        typer.echo(f"--> {cause}", err=True)
    raise typer.Exit(code=1)


def _print_packages(service: DeviceService) -> None:
    packages = service.list_packages()
    typer.echo("The following packages are installed on the target:")
    for package in packages:
        typer.echo(
            f'Uninstallable: {package.can_uninstall}\t Package Name: "{package.name}" => {package.full_name}'
        )


def _sideload(service: DeviceService, folder: Path) -> None:
    minutes = service.config.sideload_timeout_ms / 60000

    def _on_remove(package: PackageDescriptor) -> None:
        typer.echo(f"A previous version of {package.name} was found on the target. Removing {package.full_name}...")

    def _on_sideload(path: Path) -> None:
        typer.echo(f"Sideloading file {path.name} (times out after {minutes:.2f} minutes)...", nl=False)

    def _on_installed(result: SideloadResult) -> None:
        typer.echo(f" Done ({result.polls} polls, {result.elapsed_s:.1f}s).")

    def _progress(_: int) -> None:
        typer.echo(".", nl=False)

    results = service.sideload_folder(
        folder,
        on_remove=_on_remove,
        on_sideload=_on_sideload,
        on_installed=_on_installed,
        progress=_progress,
    )
    if not results:
        typer.echo(f"No .appx files found in {folder}")


def _startup(service: DeviceService, name: str) -> bool:
    typer.echo(f"Default startup app specified: {name}")
    package = service.set_startup_by_name(name)
    if package is None:
        typer.echo(f"App {name} could not be found on the target.", err=True)
        return False
    typer.echo(f"Registered {package.relative_id} as default startup app.")
    return True


def _reboot(service: DeviceService) -> None:
    typer.echo("Rebooting the target...")
    service.reboot_device()
    typer.echo("Reboot requested.")


@app.command("list")
def list_packages(ctx: typer.Context) -> None:
    """List packages installed on the target."""
    try:
        _print_packages(_build_service(ctx))
    except WinIotCtlError as exc:
        _fail(exc)


@app.command("remove")
def remove_package(ctx: typer.Context, name: str) -> None:
    """Remove the first installed package whose name contains NAME."""
    try:
        service = _build_service(ctx)
        package = service.remove_by_name(name)
        if package is None:
            typer.echo(f"App {name} could not be found on the target.", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"Removed {package.full_name}")
    except WinIotCtlError as exc:
        _fail(exc)


@app.command("sideload")
def sideload(
    ctx: typer.Context,
    folder: Path = typer.Argument(Path("."), help="Folder holding *.appx files and a Dependencies folder"),
) -> None:
    """Remove previous versions, then sideload dependencies and apps from FOLDER."""
    try:
        _sideload(_build_service(ctx), folder)
    except WinIotCtlError as exc:
        _fail(exc)


@app.command("startup")
def startup(ctx: typer.Context, name: str) -> None:
    """Set the first installed package whose name contains NAME as startup app."""
    try:
        if not _startup(_build_service(ctx), name):
            raise typer.Exit(code=1)
    except WinIotCtlError as exc:
        _fail(exc)


@app.command("reboot")
def reboot(ctx: typer.Context) -> None:
    """Reboot the target."""
    try:
        _reboot(_build_service(ctx))
    except WinIotCtlError as exc:
        _fail(exc)


@app.command("deploy")
def deploy(
    ctx: typer.Context,
    list_first: bool = typer.Option(False, "--list", "-n", help="List installed apps"),
    sideload_files: bool = typer.Option(False, "--sideload", "-l", help="Sideload *.appx files from --folder"),
    startup_name: str | None = typer.Option(None, "--startup", "-s", help="Set the default startup app"),
    reboot_after: bool = typer.Option(False, "--reboot", "-r", help="Reboot the device"),
    folder: Path = typer.Option(Path("."), "--folder", help="Folder to sideload from"),
) -> None:
    """Run list, sideload, startup and reboot in order, stopping at the first error."""
    started = time.monotonic()
    try:
        service = _build_service(ctx)
        if list_first:
            _print_packages(service)
        if sideload_files:
            _sideload(service, folder)
        if startup_name:
            _startup(service, startup_name)
        if reboot_after:
            _reboot(service)
    except WinIotCtlError as exc:
        _fail(exc)
    finally:
        typer.echo(f"Finished. The operation took {(time.monotonic() - started) / 60:.3f} minutes.")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
