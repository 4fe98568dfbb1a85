"""Download progress reporting."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

__all__ = ["DownloadState", "LoggingProgress", "NullProgress", "Progress"]

logger = logging.getLogger(__name__)


@dataclass
class DownloadState:
    """Mutable counters for one download."""

    url: str
    content_length: int | None = None
    downloaded: int = 0
    started_at: float = field(default_factory=time.monotonic)

    def elapsed(self) -> float:
        return max(time.monotonic() - self.started_at, 0.0)

    def bytes_per_second(self) -> float:
        elapsed = self.elapsed()
        if elapsed <= 0:
            return 0.0
        return self.downloaded / elapsed


class Progress(Protocol):
    def start(self, state: DownloadState) -> None: ...

    def update(self, state: DownloadState) -> None: ...

    def finish(self, state: DownloadState) -> None: ...


class NullProgress:
    def start(self, state: DownloadState) -> None:
        del state

    def update(self, state: DownloadState) -> None:
        del state

    def finish(self, state: DownloadState) -> None:
        del state


class LoggingProgress:
    """Report downloads through :mod:`logging`, throttled to ``interval`` seconds."""

    def __init__(self, interval: float = 1.0) -> None:
        self.interval = interval
        self._last_report = 0.0

    def start(self, state: DownloadState) -> None:
        self._last_report = time.monotonic()
        logger.info("downloading %s", state.url)

    def update(self, state: DownloadState) -> None:
        now = time.monotonic()
        if now - self._last_report < self.interval:
            return
        self._last_report = now
        if state.content_length:
            percent = 100.0 * state.downloaded / state.content_length
            logger.info(
                "downloaded %s/%s bytes (%.1f%%, %.0f B/s)",
                state.downloaded,
                state.content_length,
                percent,
                state.bytes_per_second(),
            )
        else:
            logger.info("downloaded %s bytes (%.0f B/s)", state.downloaded, state.bytes_per_second())

    def finish(self, state: DownloadState) -> None:
        logger.info(
            "downloaded %s (%s bytes in %.2fs)",
            state.url,
            state.downloaded,
            state.elapsed(),
        )
