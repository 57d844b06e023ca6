"""Name-based package lookup and package file discovery."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from winiotctl.core.errors import PackageFileError
from winiotctl.core.model import PackageDescriptor, PackageFiles

PACKAGE_SUFFIX = ".appx"
DEPENDENCIES_DIR = "Dependencies"


def app_name_from_file(path: str | Path) -> str:
    """Return ``AppName`` from a file named ``AppName_Version_Architecture.appx``."""
    file_name = Path(path).name
    if "_" not in file_name:
        raise PackageFileError(
            f"Cannot extract app name from {file_name}. "
            'Does it follow the syntax "AppName_Version_Architecture.appx"?'
        )
    return file_name.split("_", 1)[0]


def find_package_by_name(packages: Iterable[PackageDescriptor], name: str) -> PackageDescriptor | None:
    for package in packages:
        if name in package.name:
            return package
    return None


def discover_package_files(folder: Path) -> PackageFiles:
    dependency_root = folder / DEPENDENCIES_DIR
    dependencies: list[Path] = []
    if dependency_root.is_dir():
        dependencies = sorted(p for p in dependency_root.rglob(f"*{PACKAGE_SUFFIX}") if p.is_file())
    apps = sorted(p for p in folder.glob(f"*{PACKAGE_SUFFIX}") if p.is_file())
    return PackageFiles(dependencies=tuple(dependencies), apps=tuple(apps))
