"""Platform-independent default locations for DPM package trees."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir, user_data_dir

_DEFAULT_APP_NAME = "dpm"
PACKAGES_SUBDIR = "packages"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class UserDirs:
    """Expose the platform-configured locations for config/cache/data trees."""

    app_name: str = _DEFAULT_APP_NAME
    config_dir_override: Path | None = None
    cache_dir_override: Path | None = None
    data_dir_override: Path | None = None

    def config_dir(self) -> Path:
        return (
            self.config_dir_override
            if self.config_dir_override
            else Path(user_config_dir(self.app_name, appauthor=False))
        )

    def cache_dir(self) -> Path:
        return (
            self.cache_dir_override
            if self.cache_dir_override
            else Path(user_cache_dir(self.app_name, appauthor=False))
        )

    def data_dir(self) -> Path:
        return (
            self.data_dir_override
            if self.data_dir_override
            else Path(user_data_dir(self.app_name, appauthor=False))
        )

    def config_file(self) -> Path:
        return self.config_dir() / CONFIG_FILE_NAME

    def local_packages_dir(self) -> Path:
        """Root for packages the user installs by hand."""

        return self.data_dir() / PACKAGES_SUBDIR

    def package_cache_dir(self) -> Path:
        return self.cache_dir() / PACKAGES_SUBDIR
