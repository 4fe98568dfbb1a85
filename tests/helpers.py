"""In-memory archives and a scriptable fetcher used across the test suite."""

from __future__ import annotations

import gzip
import io
import tarfile
import threading
from typing import Any, Callable, Mapping

import pytest

from dpm_core.reference import PackageReference

EXAMPLE_FILES: dict[str, bytes] = {
    "typst.toml": b'[package]\nname = "example"\nversion = "1.0.0"\nentrypoint = "src/lib.typ"\n',
    "src/lib.typ": b"#let hello = [Hello from example]\n",
}


def build_tar_gz(
    files: Mapping[str, bytes],
    *,
    extra: Callable[[tarfile.TarFile], None] | None = None,
) -> bytes:
    raw = io.BytesIO()
    with tarfile.open(fileobj=raw, mode="w", format=tarfile.GNU_FORMAT) as archive:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
        if extra is not None:
            extra(archive)
    return gzip.compress(raw.getvalue())


class StubFetcher:
    """Fetcher double that records calls and serves canned payloads."""

    def __init__(
        self,
        payload: bytes | None = None,
        *,
        error: BaseException | None = None,
        fail_if_called: bool = False,
        index: Any = None,
        before_fetch: Callable[[], None] | None = None,
    ) -> None:
        self.payload = payload
        self.error = error
        self.fail_if_called = fail_if_called
        self.index = index
        self.before_fetch = before_fetch
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def package_url(self, reference: PackageReference) -> str:
        return f"https://registry.test/{reference.namespace}/{reference.name}-{reference.version}.tar.gz"

    def index_url(self, namespace: str) -> str:
        return f"https://registry.test/{namespace}/index.json"

    def fetch(self, url: str) -> io.BytesIO:
        with self._lock:
            self.calls.append(url)
        if self.fail_if_called:
            pytest.fail(f"unexpected network fetch of {url}")
        if self.before_fetch is not None:
            self.before_fetch()
        if self.error is not None:
            raise self.error
        assert self.payload is not None
        return io.BytesIO(self.payload)

    def fetch_json(self, url: str) -> Any:
        with self._lock:
            self.calls.append(url)
        if self.fail_if_called:
            pytest.fail(f"unexpected index fetch of {url}")
        if self.error is not None:
            raise self.error
        return self.index
