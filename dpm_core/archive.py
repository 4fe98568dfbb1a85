"""Gzip/tar extraction that refuses to write outside its destination."""

from __future__ import annotations

import gzip
import logging
import posixpath
import re
import shutil
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO

from .errors import (
    MalformedPackageError,
    PackageIoError,
    UnsafePathError,
    UnsupportedEntryError,
)

__all__ = ["ArchiveUnpacker", "safe_output_path"]

logger = logging.getLogger(__name__)

_DRIVE_RE = re.compile(r"^[A-Za-z]:")
_CHUNK_SIZE = 64 * 1024
_MALFORMED = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)
# An earlier entry already occupies the path as the other kind.
_CONFLICT = (FileExistsError, NotADirectoryError, IsADirectoryError)


def _normalize_member_name(raw: str) -> str:
    name = raw.replace("\\", "/")
    if name.startswith("/") or _DRIVE_RE.match(name):
        raise UnsafePathError(f"absolute path in archive: {raw!r}")
    normalized = posixpath.normpath(name)
    if normalized == ".." or normalized.startswith("../"):
        raise UnsafePathError(f"path traversal blocked for archive entry: {raw!r}")
    return normalized


def safe_output_path(base_dir: Path, relative_path: str) -> Path:
    target = (base_dir / relative_path).resolve()
    root = base_dir.resolve()
    if target == root:
        return target
    if root not in target.parents:
        raise UnsafePathError(f"path traversal blocked for archive entry: {relative_path!r}")
    return target


class ArchiveUnpacker:
    """Extract ``.tar.gz`` streams entry by entry."""

    def __init__(self, chunk_size: int = _CHUNK_SIZE) -> None:
        self.chunk_size = chunk_size

    def extract(self, stream: BinaryIO, destination: Path) -> None:
        destination = Path(destination)
        try:
            destination.mkdir(parents=True, exist_ok=True)
            with gzip.GzipFile(fileobj=stream, mode="rb") as decompressed:
                count = self._extract_tar(decompressed, destination)
                # The tar reader stops at the end-of-archive marker; read the
                # rest so a truncated stream or bad CRC still surfaces.
                while decompressed.read(self.chunk_size):
                    pass
        except _MALFORMED as exc:
            raise MalformedPackageError(f"archive is corrupt: {exc}") from exc
        except OSError as exc:
            raise PackageIoError(f"failed to write {destination}: {exc}") from exc
        logger.debug("extracted %s entries into %s", count, destination)

    def _extract_tar(self, decompressed: BinaryIO, destination: Path) -> int:
        count = 0
        with tarfile.open(fileobj=decompressed, mode="r|") as archive:
            for member in archive:
                name = _normalize_member_name(member.name)
                if not (member.isfile() or member.isdir()):
                    raise UnsupportedEntryError(
                        f"unsupported archive entry {member.name!r} (type {member.type!r})"
                    )
                if name == ".":
                    if member.isdir():
                        continue
                    raise UnsafePathError(f"file entry targets the archive root: {member.name!r}")
                target = safe_output_path(destination, name)
                try:
                    if member.isdir():
                        target.mkdir(parents=True, exist_ok=True)
                    else:
                        self._write_file(archive, member, target)
                except _CONFLICT as exc:
                    raise MalformedPackageError(f"conflicting archive entry {member.name!r}") from exc
                count += 1
        return count

    def _write_file(self, archive: tarfile.TarFile, member: tarfile.TarInfo, target: Path) -> None:
        source = archive.extractfile(member)
        if source is None:
            raise MalformedPackageError(f"cannot read archive entry {member.name!r}")
        target.parent.mkdir(parents=True, exist_ok=True)
        with source, target.open("wb") as handle:
            shutil.copyfileobj(source, handle, self.chunk_size)
        if member.mode & 0o111:
            target.chmod(0o755)
