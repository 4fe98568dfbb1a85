"""Registry index documents listing the published packages of a namespace."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from .errors import InvalidReferenceError, NetworkError, PackageNotFoundError
from .reference import PackageVersion, is_identifier

__all__ = ["IndexEntry", "PackageIndex"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEntry:
    name: str
    version: PackageVersion
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexEntry":
        name = str(data.get("name", "")).strip()
        if not is_identifier(name):
            raise InvalidReferenceError(f"index entry has invalid name {name!r}")
        description = data.get("description")
        return cls(
            name=name,
            version=PackageVersion.parse(str(data.get("version", ""))),
            description=str(description) if description is not None else None,
        )


class PackageIndex:
    """Published packages of one namespace."""

    def __init__(self, namespace: str, entries: Iterable[IndexEntry]) -> None:
        self.namespace = namespace
        self._by_name: dict[str, list[IndexEntry]] = {}
        for entry in entries:
            self._by_name.setdefault(entry.name, []).append(entry)

    @classmethod
    def from_payload(cls, namespace: str, payload: Any) -> "PackageIndex":
        """Build an index from the decoded JSON document; bad rows are skipped."""

        if isinstance(payload, Mapping):
            payload = payload.get("packages")
        if not isinstance(payload, list):
            raise NetworkError(f"index for namespace {namespace!r} is not a list of packages")
        entries: list[IndexEntry] = []
        for raw in payload:
            if not isinstance(raw, Mapping):
                continue
            try:
                entries.append(IndexEntry.from_dict(raw))
            except InvalidReferenceError as exc:
                logger.debug("skipping index entry %r: %s", raw, exc)
        return cls(namespace, entries)

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name))

    def versions(self, name: str) -> tuple[PackageVersion, ...]:
        return tuple(sorted({entry.version for entry in self._by_name.get(name, [])}))

    def latest_version(self, name: str) -> PackageVersion:
        versions = self.versions(name)
        if not versions:
            raise PackageNotFoundError(f"@{self.namespace}/{name} is not in the package index")
        return versions[-1]

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_name.values())
