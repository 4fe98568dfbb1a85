"""Layered resolver configuration: defaults < config.toml < environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import tomllib

from .cache import DEFAULT_STAGING_MAX_AGE, MIN_STAGING_MAX_AGE
from .fetcher import DEFAULT_INDEX_TEMPLATE, DEFAULT_PACKAGE_TEMPLATE
from .layout import PackageRoot
from .paths import UserDirs

__all__ = ["ENV_KEY_MAP", "ResolverSettings", "load_settings"]

logger = logging.getLogger(__name__)

CONFIG_TABLE = "packages"

ENV_KEY_MAP: dict[str, str] = {
    "config_file": "DPM_CONFIG",
    "package_path": "DPM_PACKAGE_PATH",
    "cache_dir": "DPM_CACHE_DIR",
    "registry": "DPM_REGISTRY",
    "index": "DPM_INDEX",
    "ca_bundle": "DPM_CERT",
    "timeout_seconds": "DPM_TIMEOUT",
}


@dataclass(frozen=True)
class ResolverSettings:
    package_roots: tuple[PackageRoot, ...]
    cache_root: Path
    package_template: str = DEFAULT_PACKAGE_TEMPLATE
    index_template: str = DEFAULT_INDEX_TEMPLATE
    remote_namespaces: tuple[str, ...] | None = None
    timeout_seconds: float = 30.0
    ca_bundle: Path | None = None
    staging_max_age_seconds: float = DEFAULT_STAGING_MAX_AGE

    @classmethod
    def defaults(cls, user_dirs: UserDirs | None = None) -> "ResolverSettings":
        dirs = user_dirs or UserDirs()
        return cls(
            package_roots=(PackageRoot(dirs.local_packages_dir()),),
            cache_root=dirs.package_cache_dir(),
        )


_KNOWN_KEYS = frozenset(
    {
        "roots",
        "cache_dir",
        "registry",
        "index",
        "remote_namespaces",
        "timeout_seconds",
        "ca_bundle",
        "staging_max_age_seconds",
    }
)


def _load_table(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("ignoring unreadable config %s: %s", path, exc)
        return {}
    table = data.get(CONFIG_TABLE)
    if not isinstance(table, dict):
        return {}
    return table


def _parse_root(raw: Any) -> PackageRoot | None:
    if isinstance(raw, str) and raw.strip():
        return PackageRoot(Path(raw.strip()))
    if isinstance(raw, dict) and str(raw.get("path") or "").strip():
        namespaces = raw.get("namespaces") or ()
        if isinstance(namespaces, str):
            namespaces = (namespaces,)
        return PackageRoot(Path(str(raw["path"]).strip()), tuple(str(ns) for ns in namespaces))
    logger.warning("ignoring invalid package root entry %r", raw)
    return None


def _float_or(value: Any, default: float, label: str) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("ignoring invalid %s value %r", label, value)
        return default


def _str_or(value: Any, default: str) -> str:
    text = str(value or "").strip()
    return text or default


def load_settings(
    config_path: Path | None = None,
    *,
    env: Mapping[str, str] | None = None,
    user_dirs: UserDirs | None = None,
) -> ResolverSettings:
    """Resolve settings from defaults, ``[packages]`` in config.toml and ``DPM_*`` variables."""

    env = os.environ if env is None else env
    dirs = user_dirs or UserDirs()
    base = ResolverSettings.defaults(dirs)

    if config_path is None:
        override = env.get(ENV_KEY_MAP["config_file"], "").strip()
        config_path = Path(override).expanduser() if override else dirs.config_file()
    table = _load_table(config_path)

    roots = base.package_roots
    if isinstance(table.get("roots"), list):
        roots = tuple(root for root in map(_parse_root, table["roots"]) if root is not None)
    env_path = env.get(ENV_KEY_MAP["package_path"], "")
    if env_path.strip():
        roots = tuple(PackageRoot(Path(item)) for item in env_path.split(os.pathsep) if item.strip())

    cache_root = Path(_str_or(table.get("cache_dir"), str(base.cache_root)))
    if env.get(ENV_KEY_MAP["cache_dir"], "").strip():
        cache_root = Path(env[ENV_KEY_MAP["cache_dir"]].strip())

    remote = table.get("remote_namespaces")
    remote_namespaces = tuple(str(ns) for ns in remote) if isinstance(remote, list) else None

    ca_bundle_raw = _str_or(env.get(ENV_KEY_MAP["ca_bundle"]), _str_or(table.get("ca_bundle"), ""))
    timeout = _float_or(table.get("timeout_seconds"), base.timeout_seconds, "timeout_seconds")
    timeout = _float_or(env.get(ENV_KEY_MAP["timeout_seconds"]), timeout, ENV_KEY_MAP["timeout_seconds"])

    staging_max_age = _float_or(
        table.get("staging_max_age_seconds"),
        base.staging_max_age_seconds,
        "staging_max_age_seconds",
    )
    if staging_max_age <= 0:
        logger.warning("ignoring non-positive staging_max_age_seconds %r", staging_max_age)
        staging_max_age = base.staging_max_age_seconds

    for key in sorted(set(table) - _KNOWN_KEYS):
        logger.warning("ignoring unknown key %r in [%s] of %s", key, CONFIG_TABLE, config_path)

    return ResolverSettings(
        package_roots=roots,
        cache_root=cache_root.expanduser(),
        package_template=_str_or(
            env.get(ENV_KEY_MAP["registry"]),
            _str_or(table.get("registry"), base.package_template),
        ),
        index_template=_str_or(
            env.get(ENV_KEY_MAP["index"]),
            _str_or(table.get("index"), base.index_template),
        ),
        remote_namespaces=remote_namespaces,
        timeout_seconds=max(timeout, 1.0),
        ca_bundle=Path(ca_bundle_raw).expanduser() if ca_bundle_raw else None,
        staging_max_age_seconds=max(staging_max_age, MIN_STAGING_MAX_AGE),
    )
