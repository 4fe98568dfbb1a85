"""Resolve package references to directories: local roots, then cache, then network."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import BinaryIO, Protocol, Sequence

from .archive import ArchiveUnpacker
from .cache import DEFAULT_STAGING_MAX_AGE, MIN_STAGING_MAX_AGE, CacheStore
from .config import ResolverSettings
from .errors import PackageError, PackageNotFoundError
from .fetcher import PackageFetcher
from .index import PackageIndex
from .layout import PackageRoot
from .progress import NullProgress, Progress
from .reference import PackageReference, PackageVersion, validate_identifier

__all__ = ["Fetcher", "PackageResolver"]

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    def package_url(self, reference: PackageReference) -> str: ...

    def index_url(self, namespace: str) -> str: ...

    def fetch(self, url: str) -> BinaryIO: ...

    def fetch_json(self, url: str) -> object: ...


class PackageResolver:
    """Answer "which directory holds this package?" for exact references.

    The resolver keeps no per-reference state and may be shared between
    threads; concurrent fetches of one reference are reconciled by
    :meth:`CacheStore.commit`.
    """

    def __init__(
        self,
        cache: CacheStore,
        fetcher: Fetcher,
        *,
        roots: Sequence[PackageRoot] = (),
        unpacker: ArchiveUnpacker | None = None,
        remote_namespaces: Sequence[str] | None = None,
        staging_max_age: float = DEFAULT_STAGING_MAX_AGE,
    ) -> None:
        self.cache = cache
        self.fetcher = fetcher
        self.roots = tuple(roots)
        self.unpacker = unpacker or ArchiveUnpacker()
        self.remote_namespaces = None if remote_namespaces is None else frozenset(remote_namespaces)
        if staging_max_age <= 0:
            raise ValueError(f"staging_max_age must be positive, got {staging_max_age!r}")
        self.staging_max_age = max(float(staging_max_age), MIN_STAGING_MAX_AGE)
        self._indexes: dict[str, PackageIndex] = {}
        self._index_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: ResolverSettings,
        *,
        progress: Progress | None = None,
    ) -> "PackageResolver":
        fetcher = PackageFetcher(
            package_template=settings.package_template,
            index_template=settings.index_template,
            timeout=settings.timeout_seconds,
            ca_bundle=settings.ca_bundle,
            progress=progress or NullProgress(),
        )
        return cls(
            CacheStore(settings.cache_root),
            fetcher,
            roots=settings.package_roots,
            remote_namespaces=settings.remote_namespaces,
            staging_max_age=settings.staging_max_age_seconds,
        )

    # -------------------- resolution -----------------------

    def resolve(self, reference: PackageReference | str) -> Path:
        if isinstance(reference, str):
            reference = PackageReference.parse(reference)

        local = self.find_local(reference)
        if local is not None:
            logger.debug("resolved %s from local root %s", reference, local)
            return local

        cached = self.cache.lookup(reference)
        if cached is not None:
            logger.debug("resolved %s from cache %s", reference, cached)
            return cached

        if not self.is_remote(reference.namespace):
            raise PackageNotFoundError(
                f"namespace {reference.namespace!r} is not available for download",
                reference=reference,
            )
        try:
            return self._fetch_into_cache(reference)
        except PackageError as exc:
            if exc.reference is None:
                exc.reference = reference
            raise

    def find_local(self, reference: PackageReference) -> Path | None:
        for root in self.roots:
            if not root.serves(reference.namespace):
                continue
            candidate = root.candidate(reference)
            if candidate.is_dir():
                return candidate
        return None

    def is_remote(self, namespace: str) -> bool:
        return self.remote_namespaces is None or namespace in self.remote_namespaces

    def _fetch_into_cache(self, reference: PackageReference) -> Path:
        self.cache.sweep_staging(reference, max_age=self.staging_max_age)
        url = self.fetcher.package_url(reference)
        staging = self.cache.create_staging(reference)
        try:
            logger.info("fetching %s from %s", reference, url)
            with self.fetcher.fetch(url) as stream:
                self.cache.refresh_staging(staging, reference)
                self.unpacker.extract(stream, staging)
            return self.cache.commit(staging, reference)
        except BaseException:
            self.cache.discard(staging)
            raise

    # -------------------- index lookups --------------------

    def index(self, namespace: str) -> PackageIndex:
        """Fetch the registry index of ``namespace`` once per resolver."""

        with self._index_lock:
            cached = self._indexes.get(namespace)
            if cached is not None:
                return cached
        if not self.is_remote(namespace):
            raise PackageNotFoundError(f"namespace {namespace!r} has no remote index")
        payload = self.fetcher.fetch_json(self.fetcher.index_url(namespace))
        index = PackageIndex.from_payload(namespace, payload)
        logger.debug("loaded index for %s with %s entries", namespace, len(index))
        with self._index_lock:
            return self._indexes.setdefault(namespace, index)

    def latest_version(self, namespace: str, name: str) -> PackageVersion:
        validate_identifier("namespace", namespace)
        validate_identifier("name", name)
        return self.index(namespace).latest_version(name)

    def resolve_latest(self, namespace: str, name: str) -> tuple[PackageReference, Path]:
        reference = PackageReference(namespace, name, str(self.latest_version(namespace, name)))
        return reference, self.resolve(reference)
