"""Shared fixtures for the dpm_core test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from dpm_core.cache import CacheStore
from dpm_core.reference import PackageReference

from tests.helpers import EXAMPLE_FILES, build_tar_gz

_PROXY_VARS = (
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "NO_PROXY",
    "http_proxy",
    "https_proxy",
    "all_proxy",
    "no_proxy",
)


@pytest.fixture(autouse=True)
def _no_proxy_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _PROXY_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def example_ref() -> PackageReference:
    return PackageReference("registry", "example", "1.0.0")


@pytest.fixture
def example_archive() -> bytes:
    return build_tar_gz(EXAMPLE_FILES)


@pytest.fixture
def cache_store(tmp_path: Path) -> CacheStore:
    return CacheStore(tmp_path / "cache")
