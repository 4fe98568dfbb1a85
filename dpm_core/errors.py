"""Typed errors raised while resolving packages."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .reference import PackageReference


class PackageError(RuntimeError):
    """Base package resolution error."""

    def __init__(self, message: str, *, reference: "PackageReference | None" = None) -> None:
        super().__init__(message)
        self.reference = reference

    def __str__(self) -> str:
        message = super().__str__()
        if self.reference is None:
            return message
        return f"{self.reference}: {message}"


class InvalidReferenceError(PackageError):
    """Namespace, name or version is malformed."""


class PackageNotFoundError(PackageError):
    """No local copy exists and the registry does not know the package."""


class NetworkError(PackageError):
    """Connectivity, TLS, timeout or unexpected HTTP status."""


class MalformedPackageError(PackageError):
    """The downloaded archive could not be decompressed or parsed."""


class UnsafePathError(MalformedPackageError):
    """An archive entry would be written outside the destination."""


class UnsupportedEntryError(MalformedPackageError):
    """An archive entry is neither a regular file nor a directory."""


class PackageIoError(PackageError):
    """Local filesystem failure (permissions, disk full, path too long)."""
