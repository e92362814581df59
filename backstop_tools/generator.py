"""Generation pipeline from recordings and URL sources to backstop.json."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from backstop_tools.errors import NetworkError, UrlListNotFound
from backstop_tools.models.config import BackstopConfig, GeneratorSettings, ScenarioRecord
from backstop_tools.models.recording import RecordingInfo
from backstop_tools.recordings.collector import collect_recordings
from backstop_tools.scenarios.assembler import assemble
from backstop_tools.scenarios.config_writer import write_config
from backstop_tools.sitemap.collector import collect_sitemap_urls
from backstop_tools.sitemap.fetcher import SitemapFetcher
from backstop_tools.sources.url_list import read_urls, resolve_list_path

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    config: BackstopConfig
    scenarios: list[ScenarioRecord]
    recordings: list[RecordingInfo] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)

    @property
    def recording_count(self) -> int:
        return len(self.recordings)

    @property
    def url_count(self) -> int:
        return len(self.scenarios) - len(self.recordings)


class ScenarioGenerator:
    """Builds backstop.json from recordings plus either a sitemap or a URL list."""

    def __init__(self, settings: GeneratorSettings, fetcher: SitemapFetcher | None = None):
        self.settings = settings
        self._fetcher = fetcher

    def from_sitemap(self) -> GenerationResult:
        return asyncio.run(self.from_sitemap_async())

    async def from_sitemap_async(self) -> GenerationResult:
        settings = self.settings
        logger.info("Site URL: %s", settings.site_url)
        if settings.use_sitemap:
            logger.info("Sitemap URL: %s", settings.resolved_sitemap_url)
        if not settings.verify_tls:
            logger.info("TLS certificate verification disabled for %s", settings.resolved_sitemap_url)

        recordings = self._recordings()

        # Recordings still make a valid configuration when the sitemap is unreachable.
        try:
            urls = await self._sitemap_urls()
        except NetworkError as e:
            logger.warning("Error fetching the sitemap: %s", e)
            logger.warning("Continuing with the recordings only")
            urls = []

        return self._write(recordings, urls)

    def from_list(self) -> GenerationResult:
        """Generate from the URL_LIST file. Recordings are not included."""
        settings = self.settings
        if not settings.url_list:
            raise UrlListNotFound("URL_LIST is not set (e.g. URL_LIST=urls.txt or URL_LIST=urls.json)")

        path = resolve_list_path(settings.url_list, settings.lists_dir)
        logger.info("Reading URLs from %s", path)
        urls = read_urls(path)
        for i, url in enumerate(urls, 1):
            logger.debug("  %d. %s", i, url)

        return self._write([], urls)

    def _recordings(self) -> list[RecordingInfo]:
        if not self.settings.use_recordings:
            logger.info("Recordings disabled (PUPPET=0)")
            return []
        logger.info("Looking for recordings in %s", self.settings.recordings_dir)
        recordings = collect_recordings(self.settings.recordings_dir, self.settings.adapters_dir)
        logger.info("Found %d recording(s)", len(recordings))
        return recordings

    async def _sitemap_urls(self) -> list[str]:
        settings = self.settings
        if not settings.use_sitemap:
            logger.info("Sitemap disabled (SITEMAP=0); using the site root only")
            return [settings.site_url]
        if self._fetcher is not None:
            return await collect_sitemap_urls(settings, self._fetcher)
        async with SitemapFetcher(
            headers=settings.request_headers,
            timeout_ms=settings.timeout_ms,
            verify=settings.verify_tls,
        ) as fetcher:
            return await collect_sitemap_urls(settings, fetcher)

    def _write(self, recordings: list[RecordingInfo], urls: list[str]) -> GenerationResult:
        scenarios = assemble(recordings, urls, self.settings.cookie_path)
        config = write_config(scenarios, self.settings)
        return GenerationResult(config=config, scenarios=scenarios, recordings=recordings, urls=urls)
