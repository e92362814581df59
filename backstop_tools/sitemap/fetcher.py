"""Downloads sitemaps and sitemap indexes over plain HTTP.

Bodies are scanned with regular expressions rather than an XML parser so that
namespaced or slightly malformed documents still yield their entries.
"""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

import httpx

from backstop_tools.errors import HtmlInsteadOfXmlError, NetworkError
from backstop_tools.models.sitemap import SitemapDocument, UrlEntry

logger = logging.getLogger(__name__)

HEAD_TIMEOUT_SECONDS = 5.0
MAX_INDEX_DEPTH = 5

_NS = r"(?:[\w.-]+:)?"


def _entry_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(
        rf"<{_NS}{tag}\b[^>]*>\s*"
        rf"<{_NS}loc>\s*([^<]+?)\s*</{_NS}loc>"
        rf"(?:\s*<{_NS}lastmod>\s*([^<]+?)\s*</{_NS}lastmod>)?",
        re.IGNORECASE,
    )


_URL_ENTRY = _entry_pattern("url")
_SITEMAP_ENTRY = _entry_pattern("sitemap")
_INDEX_MARKER = re.compile(rf"</?{_NS}sitemapindex\b", re.IGNORECASE)


def parse_sitemap(body: str) -> SitemapDocument:
    """Extract ``(loc, lastmod)`` pairs from a sitemap or sitemap-index body."""
    is_index = bool(_INDEX_MARKER.search(body))
    pattern = _SITEMAP_ENTRY if is_index else _URL_ENTRY
    entries = [
        UrlEntry(url=html.unescape(loc), lastmod=lastmod or None)
        for loc, lastmod in pattern.findall(body)
    ]
    return SitemapDocument(is_index=is_index, entries=entries)


def log_html_guidance(url: str) -> None:
    logger.error("The sitemap at %s returned HTML instead of XML.", url)
    logger.error(
        "This usually means the sitemap needs authentication, redirects to a login "
        "page, has the wrong URL, or the server blocks the request."
    )
    logger.error(
        "Check the URL in a browser, try a specific sub-sitemap (e.g. post-sitemap.xml), "
        "or pass credentials: REQUEST_HEADERS='{\"Cookie\":\"session=xxx\"}'"
    )


class SitemapFetcher:
    """Fetches sitemap documents one at a time with a shared httpx client."""

    def __init__(
        self,
        headers: Optional[dict[str, str]] = None,
        timeout_ms: int = 30000,
        verify: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.headers = headers or {}
        self.timeout = timeout_ms / 1000
        self.verify = verify
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "SitemapFetcher":
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=self.timeout,
                verify=self.verify,
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, *exc) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("SitemapFetcher must be used as an async context manager")
        return self._client

    async def is_html_response(self, url: str) -> bool:
        """HEAD the URL and report whether it serves text/html. Errors count as 'not HTML'."""
        try:
            resp = await self.client.head(url, headers=self.headers, timeout=HEAD_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            logger.debug("HEAD %s failed: %s", url, e)
            return False
        return "text/html" in resp.headers.get("content-type", "")

    async def ensure_xml(self, url: str) -> None:
        if await self.is_html_response(url):
            raise HtmlInsteadOfXmlError(url)

    async def fetch_document(self, url: str) -> SitemapDocument:
        """GET and parse a single sitemap document."""
        logger.debug("GET %s", url)
        try:
            resp = await self.client.get(url, headers=self.headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise NetworkError(url, f"timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(url, str(e) or type(e).__name__) from e
        if resp.status_code >= 400:
            raise NetworkError(url, f"HTTP {resp.status_code}")
        return parse_sitemap(resp.text)

    async def walk(self, url: str) -> list[UrlEntry]:
        """Page entries under ``url``, descending into sitemap indexes sequentially."""
        return await self._walk(url, depth=0, seen=set())

    async def _walk(self, url: str, depth: int, seen: set[str]) -> list[UrlEntry]:
        seen.add(url)
        document = await self.fetch_document(url)
        if not document.is_index:
            return document.entries

        logger.info("Sitemap index with %d sub-sitemaps: %s", len(document.entries), url)
        entries: list[UrlEntry] = []
        for sub in document.entries:
            if sub.url in seen:
                continue
            if depth + 1 > MAX_INDEX_DEPTH:
                logger.warning("Sitemap index nesting too deep, skipping %s", sub.url)
                continue
            try:
                sub_entries = await self._walk(sub.url, depth + 1, seen)
            except NetworkError as e:
                logger.warning("Skipping sub-sitemap %s: %s", sub.url, e.reason)
                continue
            logger.info("  %s: %d URLs", sub.url, len(sub_entries))
            entries.extend(sub_entries)
        return entries

    async def fetch_sitemap(self, url: str) -> list[UrlEntry]:
        """All page entries reachable from ``url``.

        An HTML answer yields an empty list (after logging guidance). When
        ``url`` points at ``sitemap_index.xml`` and the walk fails or finds
        nothing, the sibling ``sitemap.xml`` is tried once.
        """
        try:
            await self.ensure_xml(url)
        except HtmlInsteadOfXmlError as e:
            log_html_guidance(e.url)
            return []

        error: Optional[NetworkError] = None
        try:
            entries = await self.walk(url)
        except NetworkError as e:
            logger.error("Error fetching sitemap %s: %s", url, e.reason)
            error = e
            entries = []

        if entries or "sitemap_index.xml" not in url:
            if error is not None:
                raise error
            return entries

        fallback_url = url.replace("sitemap_index.xml", "sitemap.xml")
        logger.info("Retrying with %s", fallback_url)
        if await self.is_html_response(fallback_url):
            logger.error("%s also returned HTML", fallback_url)
            return []
        return await self.walk(fallback_url)
