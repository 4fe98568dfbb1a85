"""HTTP(S) fetcher for registry archives and index documents."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from http.cookiejar import DefaultCookiePolicy
from pathlib import Path
from typing import Any, BinaryIO, Tuple

import requests
from requests import RequestException, Response

from . import __version__
from .errors import NetworkError, PackageIoError, PackageNotFoundError
from .progress import DownloadState, NullProgress, Progress
from .reference import PackageReference

__all__ = [
    "DEFAULT_INDEX_TEMPLATE",
    "DEFAULT_PACKAGE_TEMPLATE",
    "DEFAULT_USER_AGENT",
    "PackageFetcher",
]

log = logging.getLogger(__name__)

DEFAULT_PACKAGE_TEMPLATE = "https://packages.typst.org/{namespace}/{name}-{version}.tar.gz"
DEFAULT_INDEX_TEMPLATE = "https://packages.typst.org/{namespace}/index.json"
DEFAULT_USER_AGENT = f"dpm/{__version__}"

_SPOOL_MAX_BYTES = 8 * 1024 * 1024


@dataclass
class PackageFetcher:
    """Single-shot GET client; proxies come from the environment.

    ``ca_bundle`` selects the trust store: ``None`` keeps the bundled
    certificates, a path points requests at a custom bundle.

    One fetcher may serve many threads. The shared session is used for its
    connection pool only: it rejects every cookie, so responses leave no
    state behind that a later request could pick up.
    """

    package_template: str = DEFAULT_PACKAGE_TEMPLATE
    index_template: str = DEFAULT_INDEX_TEMPLATE
    timeout: float | Tuple[float, float] = 30.0
    ca_bundle: Path | str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    progress: Progress = field(default_factory=NullProgress)
    chunk_size: int = 64 * 1024
    session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.session = requests.Session()
        self.session.trust_env = True
        self.session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        self.session.headers["User-Agent"] = self.user_agent
        if self.ca_bundle is not None:
            self.session.verify = str(self.ca_bundle)

    def package_url(self, reference: PackageReference) -> str:
        return self.package_template.format(
            namespace=reference.namespace,
            name=reference.name,
            version=reference.version,
        )

    def index_url(self, namespace: str) -> str:
        return self.index_template.format(namespace=namespace)

    def fetch(self, url: str) -> BinaryIO:
        """GET ``url`` and return the body as a stream positioned at 0."""

        resp = self._get(url, stream=True)
        state = DownloadState(url=url, content_length=_content_length(resp))
        body = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
        try:
            self.progress.start(state)
            with resp:
                for chunk in resp.iter_content(chunk_size=self.chunk_size):
                    if not chunk:
                        continue
                    body.write(chunk)
                    state.downloaded += len(chunk)
                    self.progress.update(state)
            self.progress.finish(state)
            body.seek(0)
        except RequestException as exc:
            body.close()
            raise NetworkError(f"download of {url} interrupted: {exc}") from exc
        except OSError as exc:
            body.close()
            raise PackageIoError(f"failed to buffer download of {url}: {exc}") from exc
        except BaseException:
            body.close()
            raise
        log.debug("fetched %s (%s bytes)", url, state.downloaded)
        return body

    def fetch_json(self, url: str) -> Any:
        resp = self._get(url)
        try:
            return resp.json()
        except (ValueError, RequestException) as exc:
            raise NetworkError(f"GET {url} returned an invalid JSON document") from exc
        finally:
            resp.close()

    def close(self) -> None:
        self.session.close()

    def _get(self, url: str, *, stream: bool = False) -> Response:
        try:
            resp = self.session.get(url, stream=stream, timeout=self.timeout)
        except requests.exceptions.SSLError as exc:
            raise NetworkError(f"TLS handshake with {url} failed: {exc}") from exc
        except requests.exceptions.Timeout as exc:
            raise NetworkError(f"GET {url} timed out: {exc}") from exc
        except RequestException as exc:
            raise NetworkError(f"GET {url} failed: {exc}") from exc

        if resp.status_code == 404:
            resp.close()
            raise PackageNotFoundError(f"GET {url} returned 404")
        if not 200 <= resp.status_code < 300:
            status = resp.status_code
            resp.close()
            raise NetworkError(f"GET {url} returned {status}")
        return resp


def _content_length(resp: Response) -> int | None:
    raw = resp.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
