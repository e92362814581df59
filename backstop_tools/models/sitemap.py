"""Sitemap data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UrlEntry(BaseModel):
    """A <loc>/<lastmod> pair from a sitemap. ``lastmod`` is None when undated."""

    model_config = ConfigDict(frozen=True)

    url: str
    lastmod: Optional[str] = None


class SitemapDocument(BaseModel):
    """Parsed sitemap body: either page entries or, for an index, sub-sitemap entries."""

    is_index: bool = False
    entries: list[UrlEntry] = Field(default_factory=list)
