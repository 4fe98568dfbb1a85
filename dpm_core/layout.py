"""Layout helpers for package roots and the package cache."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .reference import PackageReference

__all__ = [
    "PackageRoot",
    "STAGING_PREFIX",
    "is_staging_name",
    "name_dir",
    "namespace_dir",
    "package_dir",
    "staging_prefix",
]

STAGING_PREFIX = ".staging-"


def namespace_dir(root: Path, namespace: str) -> Path:
    return root / namespace


def name_dir(root: Path, namespace: str, name: str) -> Path:
    return namespace_dir(root, namespace) / name


def package_dir(root: Path, reference: PackageReference) -> Path:
    """Return ``<root>/<namespace>/<name>/<version>``."""

    return name_dir(root, reference.namespace, reference.name) / reference.version


def staging_prefix(reference: PackageReference) -> str:
    return f"{STAGING_PREFIX}{reference.version}-"


def is_staging_name(name: str) -> bool:
    return name.startswith(STAGING_PREFIX)


@dataclass(frozen=True)
class PackageRoot:
    """Local directory searched before the cache.

    An empty ``namespaces`` tuple means the root serves every namespace.
    """

    path: Path
    namespaces: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path).expanduser().resolve())
        object.__setattr__(self, "namespaces", tuple(self.namespaces))

    def serves(self, namespace: str) -> bool:
        return not self.namespaces or namespace in self.namespaces

    def candidate(self, reference: PackageReference) -> Path:
        return package_dir(self.path, reference)
