"""Package resolution and caching engine for the DPM document toolchain."""

__version__ = "0.1.0"

from .archive import ArchiveUnpacker
from .cache import CacheEntry, CacheStore
from .config import ResolverSettings, load_settings
from .errors import (
    InvalidReferenceError,
    MalformedPackageError,
    NetworkError,
    PackageError,
    PackageIoError,
    PackageNotFoundError,
    UnsafePathError,
    UnsupportedEntryError,
)
from .fetcher import PackageFetcher
from .index import IndexEntry, PackageIndex
from .layout import PackageRoot
from .paths import UserDirs
from .progress import DownloadState, LoggingProgress, NullProgress, Progress
from .reference import PackageReference, PackageVersion
from .resolver import PackageResolver

__all__ = [
    "__version__",
    "ArchiveUnpacker",
    "CacheEntry",
    "CacheStore",
    "DownloadState",
    "IndexEntry",
    "InvalidReferenceError",
    "LoggingProgress",
    "MalformedPackageError",
    "NetworkError",
    "NullProgress",
    "PackageError",
    "PackageFetcher",
    "PackageIndex",
    "PackageIoError",
    "PackageNotFoundError",
    "PackageReference",
    "PackageResolver",
    "PackageRoot",
    "PackageVersion",
    "Progress",
    "ResolverSettings",
    "UnsafePathError",
    "UnsupportedEntryError",
    "UserDirs",
    "load_settings",
]
