"""Resource retrieval for project files and comparison tables.

Resources are either http(s) URLs, fetched with a retrying
``requests.Session``, or local filesystem paths. Retrieval never raises
for a missing resource: callers receive a ``FetchResult`` with
``ok=False`` and decide what absence means.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from dredge.config import EngineConfig

logger = logging.getLogger(__name__)

USER_AGENT = "dredge/0.1"
RETRY_BACKOFF = 0.5
RETRY_STATUSES = (500, 502, 503, 504)

_PLACEHOLDER = re.compile(r"%[AB]")


@dataclass
class FetchResult:
    """Outcome of retrieving one resource."""

    location: str
    ok: bool
    text: str = ""
    status: Optional[int] = None
    error: str = ""


def is_url(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def resolve_location(base: str, relative: str) -> str:
    """Resolve ``relative`` against a project base, as a browser would.

    Absolute URLs and absolute paths are returned unchanged.
    """
    if is_url(relative):
        return relative
    if is_url(base):
        return urljoin(base.rstrip("/") + "/", relative)
    path = Path(relative)
    if path.is_absolute():
        return str(path)
    return str((Path(base) / path).resolve())


def fill_template(template: str, key_a: str, key_b: str) -> str:
    """Substitute treatment keys for the ``%A``/``%B`` placeholders."""
    return _PLACEHOLDER.sub(lambda m: key_a if m.group(0) == "%A" else key_b, template)


class ResourceFetcher:
    """Asynchronous facade over blocking HTTP and file reads.

    Each ``fetch`` runs in a worker thread so that two candidate
    resources can be awaited together.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._session = session
        self.fetch_count = 0

    @property
    def session(self) -> requests.Session:
        """HTTP session, opened on first use."""
        if self._session is None:
            self._session = self._open_session()
        return self._session

    def _open_session(self) -> requests.Session:
        # 5xx answers on GET are retried with backoff; the final answer is
        # returned as-is so a 404 becomes an ordinary missing resource
        retry = Retry(
            total=self.config.max_retries,
            backoff_factor=RETRY_BACKOFF,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=retry)
        for scheme in ("http://", "https://"):
            session.mount(scheme, adapter)
        session.headers["User-Agent"] = USER_AGENT
        return session

    async def fetch(self, location: str) -> FetchResult:
        """Retrieve ``location``; never raises for absence or HTTP errors."""
        self.fetch_count += 1
        if is_url(location):
            result = await asyncio.to_thread(self._fetch_url, location)
        else:
            result = await asyncio.to_thread(self._read_file, location)
        logger.debug(
            "Fetched %s: ok=%s status=%s", location, result.ok, result.status
        )
        return result

    def _fetch_url(self, url: str) -> FetchResult:
        try:
            response = self.session.get(
                url,
                timeout=self.config.request_timeout,
                headers={"Cache-Control": "no-cache"},
            )
        except requests.RequestException as exc:
            return FetchResult(location=url, ok=False, error=str(exc))

        if not response.ok:
            return FetchResult(
                location=url,
                ok=False,
                status=response.status_code,
                error=response.reason or "",
            )
        return FetchResult(
            location=url, ok=True, text=response.text, status=response.status_code
        )

    def _read_file(self, location: str) -> FetchResult:
        path = Path(location)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return FetchResult(location=location, ok=False, error=str(exc))
        return FetchResult(location=location, ok=True, text=text)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
