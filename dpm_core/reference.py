"""Package references and exact versions."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import InvalidReferenceError

__all__ = ["PackageReference", "PackageVersion", "is_identifier", "validate_identifier"]

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")
_VERSION_RE = re.compile(r"(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)")
_REFERENCE_RE = re.compile(r"@(?P<namespace>[^/]*)/(?P<name>[^:]*):(?P<version>.*)")


def is_identifier(value: str) -> bool:
    return isinstance(value, str) and bool(_IDENT_RE.fullmatch(value))


def validate_identifier(label: str, value: str) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidReferenceError(f"{label} cannot be empty")
    if not _IDENT_RE.fullmatch(value):
        raise InvalidReferenceError(f"{label} {value!r} is not a valid identifier")
    return value


@dataclass(frozen=True, order=True)
class PackageVersion:
    """Exact ``major.minor.patch`` version."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> "PackageVersion":
        match = _VERSION_RE.fullmatch(text or "")
        if not match:
            raise InvalidReferenceError(
                f"invalid version {text!r}: expected major.minor.patch"
            )
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major, minor, patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class PackageReference:
    """Immutable ``(namespace, name, version)`` triple used as cache key."""

    namespace: str
    name: str
    version: str

    def __post_init__(self) -> None:
        validate_identifier("namespace", self.namespace)
        validate_identifier("name", self.name)
        if isinstance(self.version, PackageVersion):
            object.__setattr__(self, "version", str(self.version))
        elif isinstance(self.version, str):
            PackageVersion.parse(self.version)
        else:
            raise InvalidReferenceError(f"version must be a string, got {type(self.version).__name__}")

    @classmethod
    def parse(cls, value: str) -> "PackageReference":
        """Parse the ``@namespace/name:version`` form."""

        text = (value or "").strip()
        match = _REFERENCE_RE.fullmatch(text)
        if not match:
            raise InvalidReferenceError(
                f"invalid package reference {value!r}: expected @namespace/name:version"
            )
        return cls(match.group("namespace"), match.group("name"), match.group("version"))

    @property
    def parsed_version(self) -> PackageVersion:
        return PackageVersion.parse(self.version)

    def __str__(self) -> str:
        return f"@{self.namespace}/{self.name}:{self.version}"
