"""Domain-specific errors for winiotctl."""

from __future__ import annotations

from collections.abc import Iterator


class WinIotCtlError(Exception):
    """Base error for winiotctl."""


class ConfigError(WinIotCtlError):
    """Raised when the settings file cannot be read or fails validation."""


class PackageFileError(WinIotCtlError):
    """Raised when a local package file is missing or badly named."""


class TransportError(WinIotCtlError):
    """Raised when the device answers with a non-2xx HTTP status."""

    def __init__(self, message: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class TransportConnectError(TransportError):
    """Raised when the device cannot be reached at all."""


class ProtocolError(WinIotCtlError):
    """Raised when a response body does not match the expected contract."""


class PolicyError(WinIotCtlError):
    """Raised when the device's own flags forbid an operation."""


class VerificationError(WinIotCtlError):
    """Raised when a write succeeded but reading it back did not confirm it."""


class InstallError(WinIotCtlError):
    """Raised when the package manager reports a failed installation."""


class SideloadTimeoutError(WinIotCtlError, TimeoutError):
    """Raised when the install state poll exceeds its deadline."""


class SideloadCancelledError(WinIotCtlError):
    """Raised when the install state poll is cancelled by the caller."""


def error_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* followed by its causes, outermost first."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__
