"""Turns a sitemap into the list of page URLs that become scenarios."""

from __future__ import annotations

import logging
from typing import Iterable

from backstop_tools.errors import HtmlInsteadOfXmlError, NetworkError
from backstop_tools.models.config import GeneratorSettings
from backstop_tools.models.sitemap import UrlEntry
from backstop_tools.sitemap.fetcher import SitemapFetcher, log_html_guidance
from backstop_tools.sitemap.sampler import ensure_homepage, sample

logger = logging.getLogger(__name__)


def unique_urls(entries: Iterable[UrlEntry]) -> list[str]:
    seen: set[str] = set()
    urls = []
    for entry in entries:
        if entry.url not in seen:
            seen.add(entry.url)
            urls.append(entry.url)
    return urls


async def collect_all(fetcher: SitemapFetcher, sitemap_url: str) -> list[str]:
    entries = await fetcher.fetch_sitemap(sitemap_url)
    urls = unique_urls(entries)
    if urls:
        logger.info("Found %d URLs in the sitemap", len(urls))
    else:
        logger.warning("No URLs found in the sitemap")
    return urls


async def collect_sampled(
    fetcher: SitemapFetcher, sitemap_url: str, site_url: str, sample_size: int
) -> list[str]:
    """``sample_size`` most recent URLs per sub-sitemap, homepage always included."""
    try:
        await fetcher.ensure_xml(sitemap_url)
    except HtmlInsteadOfXmlError as e:
        log_html_guidance(e.url)
        return []

    logger.info("Sampling mode: %d URLs per sub-sitemap", sample_size)
    document = await fetcher.fetch_document(sitemap_url)
    selected: list[str] = []

    if document.is_index and document.entries:
        logger.info("Sitemap index with %d sub-sitemaps", len(document.entries))
        for sub in document.entries:
            try:
                entries = await fetcher.walk(sub.url)
            except NetworkError as e:
                logger.warning("  %s: %s", sub.url, e.reason)
                continue
            if not entries:
                logger.warning("  %s: no URLs", sub.url)
                continue
            picked = sample(entries, sample_size)
            logger.info("  %s: %d/%d URLs selected (most recent)", sub.url, len(picked), len(entries))
            selected.extend(picked)
    elif document.entries:
        picked = sample(document.entries, sample_size)
        logger.info("Single sitemap: %d/%d URLs selected (most recent)", len(picked), len(document.entries))
        selected.extend(picked)

    selected = ensure_homepage(list(dict.fromkeys(selected)), site_url)
    logger.info("Sampled %d URLs", len(selected))
    return selected


async def collect_sitemap_urls(settings: GeneratorSettings, fetcher: SitemapFetcher) -> list[str]:
    """Sitemap URLs according to the settings, capped by ``max_urls``.

    Raises NetworkError when the sitemap cannot be fetched at all.
    """
    sitemap_url = settings.resolved_sitemap_url
    logger.info("Downloading sitemap: %s", sitemap_url)

    if settings.sample_mode:
        try:
            urls = await collect_sampled(
                fetcher, sitemap_url, settings.site_url, settings.sample_size
            )
        except NetworkError as e:
            logger.error("Sampling failed (%s), falling back to the full sitemap", e.reason)
            urls = (await collect_all(fetcher, sitemap_url))[: settings.sample_size]
    else:
        urls = await collect_all(fetcher, sitemap_url)

    if settings.max_urls and len(urls) > settings.max_urls:
        logger.warning("Limiting to %d URLs (found %d)", settings.max_urls, len(urls))
        urls = urls[: settings.max_urls]
    return urls
