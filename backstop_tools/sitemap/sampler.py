"""Recency sampling: pick the most recently modified URLs of a sitemap."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from backstop_tools.models.sitemap import UrlEntry
from backstop_tools.url_utils import is_homepage

logger = logging.getLogger(__name__)


def parse_lastmod(value: Optional[str]) -> Optional[datetime]:
    """Parse a W3C datetime; naive values are taken as UTC. Returns None if unparseable."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sample(entries: Sequence[UrlEntry], limit: int) -> list[str]:
    """Return up to ``limit`` URLs, newest first.

    Dated entries come first, sorted by lastmod descending (stable, so ties keep
    document order). Undated entries follow in reverse document order, on the
    assumption that entries listed last were added most recently.
    """
    if limit <= 0 or not entries:
        return []

    dated: list[tuple[datetime, UrlEntry]] = []
    undated: list[UrlEntry] = []
    for entry in entries:
        when = parse_lastmod(entry.lastmod)
        if when is None:
            if entry.lastmod:
                logger.debug("Unparseable lastmod %r for %s", entry.lastmod, entry.url)
            undated.append(entry)
        else:
            dated.append((when, entry))

    dated.sort(key=lambda pair: pair[0], reverse=True)
    ordered = [entry for _, entry in dated] + list(reversed(undated))
    return [entry.url for entry in ordered[:limit]]


def ensure_homepage(urls: list[str], site_url: str) -> list[str]:
    """Put ``site_url`` first unless one of its homepage variants is already present."""
    if any(is_homepage(url, site_url) for url in urls):
        return urls
    logger.info("Adding homepage: %s", site_url)
    return [site_url, *urls]
