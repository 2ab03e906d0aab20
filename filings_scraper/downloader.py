"""HTTP fetch layer with browser-like headers, timeouts and a size cap.

No retries: a failed fetch is reported once to the caller.
"""

import asyncio
import logging
from typing import Iterable, Optional

import httpx

from .classifier import DOCUMENT_EXTENSIONS, looks_like_document
from .config import DownloadConfig

logger = logging.getLogger("filings_scraper")

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9"


class FetchError(Exception):
    """A fetch failed: network error, timeout, non-2xx status or bad payload."""

    def __init__(self, url: str, detail: str):
        super().__init__(f"Failed to fetch {url}: {detail}")
        self.url = url
        self.detail = detail


class Downloader:
    def __init__(self, config: DownloadConfig, transport: Optional[httpx.AsyncBaseTransport] = None,
                 extensions: Iterable[str] = DOCUMENT_EXTENSIONS):
        self.config = config
        self.extensions = tuple(extensions)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
                follow_redirects=True,
                headers={"User-Agent": self.config.user_agent},
                transport=self._transport,
            )
        return self._client

    async def aclose(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def fetch_text(self, url: str) -> str:
        """Fetch an HTML page."""
        return await self._bounded(url, self._get_text(url))

    async def fetch_bytes(self, url: str) -> bytes:
        """Fetch a document body into memory, enforcing max_file_size."""
        return await self._bounded(url, self._get_bytes(url))

    async def _bounded(self, url: str, fetch):
        # httpx timeouts are per read; a trickling server needs an overall cap
        try:
            return await asyncio.wait_for(fetch, self.config.total_timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self.config.total_timeout}s total") from e

    async def _get_text(self, url: str) -> str:
        try:
            resp = await self.client.get(url, headers={"Accept": HTML_ACCEPT})
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"{e.response.status_code} {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, _describe(e)) from e
        except (httpx.InvalidURL, ValueError) as e:
            raise FetchError(url, f"invalid URL: {e}") from e
        return resp.text

    async def _get_bytes(self, url: str) -> bytes:
        limit = self.config.max_file_size
        body = bytearray()
        try:
            async with self.client.stream("GET", url) as resp:
                resp.raise_for_status()

                # Error pages and login walls come back as HTML
                ct = resp.headers.get("content-type", "")
                if "text/html" in ct and looks_like_document(url, self.extensions):
                    raise FetchError(url, f"Expected binary but got HTML (content-type: {ct})")

                content_length = resp.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > limit:
                    raise FetchError(url, f"File too large: {content_length} bytes")

                async for chunk in resp.aiter_bytes(chunk_size=65536):
                    body.extend(chunk)
                    if len(body) > limit:
                        raise FetchError(url, f"File exceeded max size during download: {len(body)} bytes")
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"{e.response.status_code} {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, _describe(e)) from e
        except (httpx.InvalidURL, ValueError) as e:
            raise FetchError(url, f"invalid URL: {e}") from e

        return bytes(body)


def _describe(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"timed out ({type(exc).__name__})"
    return str(exc) or type(exc).__name__
