"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable

import httpx
import pytest

from backstop_tools.models.config import BackstopConfig, GeneratorSettings
from backstop_tools.models.recording import RecordingInfo
from backstop_tools.sitemap.fetcher import SitemapFetcher


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> GeneratorSettings:
    """Generator settings rooted in a temporary project directory."""
    return GeneratorSettings.from_env(
        {"SITE_URL": "https://example.com", "PROJECT_ID": "acme"},
        root_dir=tmp_path,
    )


@pytest.fixture
def backstop_config() -> BackstopConfig:
    """A two-viewport configuration with three scenarios."""
    return BackstopConfig.model_validate({
        "id": "acme",
        "viewports": [
            {"label": "phone", "width": 320, "height": 480},
            {"label": "tablet", "width": 1024, "height": 768},
        ],
        "paths": {
            "bitmaps_reference": "backstop_data/bitmaps_reference",
            "bitmaps_test": "backstop_data/bitmaps_test",
            "engine_scripts": "backstop_data/engine_scripts",
            "html_report": "backstop_data/html_report",
            "ci_report": "backstop_data/ci_report",
        },
        "scenarios": [
            {"label": "Homepage [aaaaaaaa]", "url": "https://example.com/"},
            {"label": "About [bbbbbbbb]", "url": "https://example.com/about"},
            {"label": "Blog - First Post [cccccccc]", "url": "https://example.com/blog/first-post"},
        ],
    })


@pytest.fixture
def backstop_config_file(backstop_config: BackstopConfig, tmp_path: Path) -> Path:
    path = tmp_path / "backstop.json"
    backstop_config.save(path)
    return path


@pytest.fixture
def recording_info() -> RecordingInfo:
    return RecordingInfo(
        label="Recording: checkout",
        url="https://example.com/cart",
        script_file="Recording checkout.js",
        wrapper_path="puppet/wrapper_Recording checkout.js",
        original_path="puppet/Recording checkout.js",
    )


# ============================================================================
# Sitemap Fixtures
# ============================================================================


URLSET_XML = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>https://example.com/</loc>
    <lastmod>2023-01-01</lastmod>
  </url>
  <url>
    <loc>https://example.com/about</loc>
    <lastmod>2023-06-01T10:00:00+00:00</lastmod>
  </url>
  <url>
    <loc>https://example.com/contact</loc>
  </url>
</urlset>
"""

INDEX_XML = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap>
    <loc>https://example.com/post-sitemap.xml</loc>
    <lastmod>2023-07-01</lastmod>
  </sitemap>
  <sitemap>
    <loc>https://example.com/page-sitemap.xml</loc>
  </sitemap>
</sitemapindex>
"""

POSTS_XML = """<urlset>
  <url><loc>https://example.com/blog/old</loc><lastmod>2022-01-01</lastmod></url>
  <url><loc>https://example.com/blog/new</loc><lastmod>2023-05-01</lastmod></url>
  <url><loc>https://example.com/blog/newest</loc><lastmod>2023-09-01</lastmod></url>
</urlset>
"""

PAGES_XML = """<urlset>
  <url><loc>https://example.com/team</loc></url>
  <url><loc>https://example.com/pricing</loc></url>
</urlset>
"""


@pytest.fixture
def make_fetcher() -> Callable[[dict], SitemapFetcher]:
    """Build a SitemapFetcher whose requests are answered from a {url: body} map.

    A value may be a string (served as XML), a ``(status, body, content_type)``
    tuple, or an exception instance to raise.
    """

    def factory(routes: dict) -> SitemapFetcher:
        def handler(request: httpx.Request) -> httpx.Response:
            route = routes.get(str(request.url))
            if route is None:
                return httpx.Response(404, text="not found", headers={"content-type": "text/plain"})
            if isinstance(route, Exception):
                raise route
            if isinstance(route, tuple):
                status, body, content_type = route
            else:
                status, body, content_type = 200, route, "application/xml"
            return httpx.Response(status, text=body, headers={"content-type": content_type})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SitemapFetcher(headers={"User-Agent": "test"}, client=client)

    return factory


@pytest.fixture
def sitemap_xml() -> dict[str, str]:
    """Sitemap bodies: a leaf urlset, an index and the two sub-sitemaps it lists."""
    return {
        "urlset": URLSET_XML,
        "index": INDEX_XML,
        "posts": POSTS_XML,
        "pages": PAGES_XML,
    }
