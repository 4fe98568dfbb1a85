"""Tests for layered resolver settings."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from dpm_core.cache import DEFAULT_STAGING_MAX_AGE, MIN_STAGING_MAX_AGE
from dpm_core.config import load_settings
from dpm_core.fetcher import DEFAULT_PACKAGE_TEMPLATE
from dpm_core.layout import PackageRoot
from dpm_core.paths import UserDirs


def _user_dirs(tmp_path: Path) -> UserDirs:
    return UserDirs(
        config_dir_override=tmp_path / "config",
        cache_dir_override=tmp_path / "cache",
        data_dir_override=tmp_path / "data",
    )


def test_defaults_follow_user_dirs(tmp_path: Path) -> None:
    settings = load_settings(env={}, user_dirs=_user_dirs(tmp_path))

    assert settings.package_roots == (PackageRoot(tmp_path / "data" / "packages"),)
    assert settings.cache_root == tmp_path / "cache" / "packages"
    assert settings.package_template == DEFAULT_PACKAGE_TEMPLATE
    assert settings.remote_namespaces is None
    assert settings.ca_bundle is None


def test_config_file_overrides_defaults(tmp_path: Path) -> None:
    dirs = _user_dirs(tmp_path)
    dirs.config_dir().mkdir(parents=True)
    dirs.config_file().write_text(
        "\n".join(
            [
                "[packages]",
                f'roots = ["{(tmp_path / "a").as_posix()}", {{ path = "{(tmp_path / "b").as_posix()}", namespaces = ["local"] }}]',
                f'cache_dir = "{(tmp_path / "pkg-cache").as_posix()}"',
                'registry = "https://mirror.test/{namespace}/{name}-{version}.tar.gz"',
                'remote_namespaces = ["preview"]',
                "timeout_seconds = 12.5",
                "staging_max_age_seconds = 7200",
            ]
        ),
        encoding="utf-8",
    )

    settings = load_settings(env={}, user_dirs=dirs)

    assert settings.package_roots == (
        PackageRoot(tmp_path / "a"),
        PackageRoot(tmp_path / "b", namespaces=("local",)),
    )
    assert settings.cache_root == tmp_path / "pkg-cache"
    assert settings.package_template.startswith("https://mirror.test/")
    assert settings.remote_namespaces == ("preview",)
    assert settings.timeout_seconds == 12.5
    assert settings.staging_max_age_seconds == 7200.0


def test_environment_overrides_config_file(tmp_path: Path) -> None:
    dirs = _user_dirs(tmp_path)
    config = tmp_path / "custom.toml"
    config.write_text(
        '[packages]\ncache_dir = "ignored"\ntimeout_seconds = 3\nca_bundle = "/from/file.pem"\n',
        encoding="utf-8",
    )
    env = {
        "DPM_CONFIG": str(config),
        "DPM_PACKAGE_PATH": os.pathsep.join([str(tmp_path / "x"), str(tmp_path / "y")]),
        "DPM_CACHE_DIR": str(tmp_path / "env-cache"),
        "DPM_REGISTRY": "http://localhost:9000/{namespace}/{name}-{version}.tar.gz",
        "DPM_CERT": str(tmp_path / "ca.pem"),
        "DPM_TIMEOUT": "7",
    }

    settings = load_settings(env=env, user_dirs=dirs)

    assert settings.package_roots == (PackageRoot(tmp_path / "x"), PackageRoot(tmp_path / "y"))
    assert settings.cache_root == tmp_path / "env-cache"
    assert settings.package_template.startswith("http://localhost:9000/")
    assert settings.ca_bundle == tmp_path / "ca.pem"
    assert settings.timeout_seconds == 7.0


def test_invalid_config_falls_back_to_defaults(tmp_path: Path) -> None:
    dirs = _user_dirs(tmp_path)
    dirs.config_dir().mkdir(parents=True)
    dirs.config_file().write_text("[packages\nbroken", encoding="utf-8")

    settings = load_settings(env={"DPM_TIMEOUT": "soon"}, user_dirs=dirs)

    assert settings.cache_root == tmp_path / "cache" / "packages"
    assert settings.timeout_seconds == 30.0


def test_explicit_config_path_wins_over_env(tmp_path: Path) -> None:
    explicit = tmp_path / "explicit.toml"
    explicit.write_text('[packages]\nremote_namespaces = ["preview", "community"]\n', encoding="utf-8")
    other = tmp_path / "other.toml"
    other.write_text('[packages]\nremote_namespaces = []\n', encoding="utf-8")

    settings = load_settings(explicit, env={"DPM_CONFIG": str(other)}, user_dirs=_user_dirs(tmp_path))

    assert settings.remote_namespaces == ("preview", "community")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("60", MIN_STAGING_MAX_AGE), ("0", DEFAULT_STAGING_MAX_AGE), ("-5", DEFAULT_STAGING_MAX_AGE)],
)
def test_staging_max_age_is_bounded(tmp_path: Path, raw: str, expected: float) -> None:
    config = tmp_path / "config.toml"
    config.write_text(f"[packages]\nstaging_max_age_seconds = {raw}\n", encoding="utf-8")

    settings = load_settings(config, env={}, user_dirs=_user_dirs(tmp_path))

    assert settings.staging_max_age_seconds == expected


def test_unknown_keys_are_reported(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    config = tmp_path / "config.toml"
    config.write_text('[packages]\nmirror_note = "kept"\n', encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="dpm_core.config"):
        settings = load_settings(config, env={}, user_dirs=_user_dirs(tmp_path))

    assert settings.cache_root == tmp_path / "cache" / "packages"
    assert "ignoring unknown key 'mirror_note'" in caplog.text
