from pathlib import Path

import pytest

from winiotctl.core.errors import PackageFileError
from winiotctl.core.model import PackageDescriptor
from winiotctl.core.package_match import app_name_from_file, discover_package_files, find_package_by_name


def _package(name: str) -> PackageDescriptor:
    return PackageDescriptor(
        full_name=f"{name}_1.0.0.0_arm__abc",
        name=name,
        relative_id=f"{name}_abc!App",
        can_uninstall=True,
    )


def test_app_name_from_file() -> None:
    assert app_name_from_file(Path("build") / "MyApp_1.0.0.0_ARM.appx") == "MyApp"
    assert app_name_from_file("Microsoft.VCLibs.ARM.14.00_14.0.0.0_arm.appx") == "Microsoft.VCLibs.ARM.14.00"


def test_app_name_requires_underscore() -> None:
    with pytest.raises(PackageFileError):
        app_name_from_file("MyApp.appx")


def test_find_package_by_name_returns_first_containing_match() -> None:
    packages = [_package("IoTCoreDefaultApp"), _package("MyAppHelper"), _package("MyApp")]
    picked = find_package_by_name(packages, "MyApp")
    assert picked is not None
    assert picked.name == "MyAppHelper"
    assert find_package_by_name(packages, "Missing") is None


def test_discover_package_files(tmp_path: Path) -> None:
    for relative in (
        "b_1.0_arm.appx",
        "a_1.0_arm.appx",
        "readme.txt",
        "Dependencies/ARM/Microsoft.VCLibs_14.0_arm.appx",
        "Dependencies/x86/Other_1.0_x86.appx",
        "nested/ignored_1.0_arm.appx",
    ):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"appx")

    files = discover_package_files(tmp_path)

    assert [p.name for p in files.apps] == ["a_1.0_arm.appx", "b_1.0_arm.appx"]
    assert [p.relative_to(tmp_path).as_posix() for p in files.dependencies] == [
        "Dependencies/ARM/Microsoft.VCLibs_14.0_arm.appx",
        "Dependencies/x86/Other_1.0_x86.appx",
    ]


def test_discover_without_dependencies_folder(tmp_path: Path) -> None:
    files = discover_package_files(tmp_path)
    assert files.dependencies == ()
    assert files.apps == ()
