"""Package cache with stage-then-rename commits.

Committed entries live at ``<cache_root>/<namespace>/<name>/<version>``.
Fetches extract into a uniquely named sibling staging directory and publish
it with a single rename, so an entry is either complete or absent. Concurrent
fetches of the same package are not serialized: the first rename wins and
later committers discard their staging copy.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .errors import InvalidReferenceError, PackageIoError
from .layout import is_staging_name, name_dir, package_dir, staging_prefix
from .reference import PackageReference, is_identifier

__all__ = ["CacheEntry", "CacheStore", "DEFAULT_STAGING_MAX_AGE", "MIN_STAGING_MAX_AGE"]

logger = logging.getLogger(__name__)

DEFAULT_STAGING_MAX_AGE = 24 * 60 * 60.0
# Lower bound for automatic sweeps; a live download must never look abandoned.
MIN_STAGING_MAX_AGE = 60 * 60.0


@dataclass(frozen=True)
class CacheEntry:
    reference: PackageReference
    path: Path


class CacheStore:
    def __init__(self, cache_root: Path | str) -> None:
        self.cache_root = Path(cache_root).expanduser().resolve()

    def entry_path(self, reference: PackageReference) -> Path:
        return package_dir(self.cache_root, reference)

    def lookup(self, reference: PackageReference) -> Path | None:
        path = self.entry_path(reference)
        return path if path.is_dir() else None

    # -------------------- staging / commit --------------------

    def create_staging(self, reference: PackageReference) -> Path:
        parent = name_dir(self.cache_root, reference.namespace, reference.name)
        try:
            parent.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=staging_prefix(reference), dir=parent))
        except OSError as exc:
            raise PackageIoError(
                f"cannot create staging directory in {parent}: {exc}", reference=reference
            ) from exc

    def commit(self, staging: Path, reference: PackageReference) -> Path:
        """Publish ``staging`` as the entry for ``reference`` and return its path.

        Losing the race to a concurrent committer is a success: the staging
        copy is discarded and the already committed path is returned.
        """

        final = self.entry_path(reference)
        try:
            final.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PackageIoError(f"cannot create {final.parent}: {exc}", reference=reference) from exc
        try:
            os.rename(staging, final)
        except OSError as exc:
            if final.is_dir():
                logger.debug("lost commit race for %s, keeping %s", reference, final)
                self.discard(staging)
                return final
            raise PackageIoError(f"cannot commit {staging} to {final}: {exc}", reference=reference) from exc
        logger.info("cached %s at %s", reference, final)
        return final

    def refresh_staging(self, staging: Path, reference: PackageReference) -> None:
        """Mark ``staging`` as live so concurrent sweeps leave it alone."""

        try:
            os.utime(staging)
        except OSError as exc:
            raise PackageIoError(f"staging directory {staging} is gone: {exc}", reference=reference) from exc

    def discard(self, staging: Path) -> None:
        shutil.rmtree(staging, ignore_errors=True)

    def sweep_staging(
        self,
        reference: PackageReference | None = None,
        *,
        max_age: float = DEFAULT_STAGING_MAX_AGE,
    ) -> list[Path]:
        """Delete staging directories older than ``max_age`` seconds.

        With ``reference`` only that package's directory is scanned.
        """

        if reference is not None:
            parents = [name_dir(self.cache_root, reference.namespace, reference.name)]
        else:
            parents = list(self._name_dirs())
        cutoff = time.time() - max_age
        removed: list[Path] = []
        for parent in parents:
            try:
                children = list(parent.iterdir())
            except OSError:
                continue
            for child in children:
                if not is_staging_name(child.name):
                    continue
                try:
                    if child.stat().st_mtime > cutoff:
                        continue
                except OSError:
                    continue
                logger.warning("removing abandoned staging directory %s", child)
                self.discard(child)
                removed.append(child)
        return removed

    # -------------------- administration --------------------

    def entries(self) -> list[CacheEntry]:
        found: list[CacheEntry] = []
        for parent in self._name_dirs():
            namespace = parent.parent.name
            for child in sorted(parent.iterdir()):
                if is_staging_name(child.name) or not child.is_dir():
                    continue
                try:
                    reference = PackageReference(namespace, parent.name, child.name)
                except InvalidReferenceError:
                    continue
                found.append(CacheEntry(reference=reference, path=child))
        return found

    def remove(self, reference: PackageReference) -> bool:
        """Remove a committed entry; returns ``False`` when it was not cached.

        The entry is first renamed to a staging name so it disappears atomically.
        """

        final = self.entry_path(reference)
        if not final.is_dir():
            return False
        graveyard = self.create_staging(reference)
        try:
            os.rename(final, graveyard / reference.version)
        except FileNotFoundError:
            self.discard(graveyard)
            return False
        except OSError as exc:
            self.discard(graveyard)
            raise PackageIoError(f"cannot remove {final}: {exc}", reference=reference) from exc
        self.discard(graveyard)
        logger.info("removed %s from cache", reference)
        return True

    def _name_dirs(self) -> Iterator[Path]:
        if not self.cache_root.is_dir():
            return
        for namespace in sorted(self.cache_root.iterdir()):
            if not namespace.is_dir() or not is_identifier(namespace.name):
                continue
            for name in sorted(namespace.iterdir()):
                if name.is_dir() and is_identifier(name.name):
                    yield name
