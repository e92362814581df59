"""URL helpers for scenario labels, stable hashes and locality checks."""

from __future__ import annotations

import hashlib
import re
from urllib.parse import urljoin, urlparse

MAX_LABEL_LENGTH = 60

# Characters Windows refuses in path components; BackstopJS uses labels in filenames.
_ILLEGAL_LABEL_CHARS = re.compile(r'[<>:"/\\|?*]')


def url_hash(value: str) -> str:
    """Short stable hash used as the uniqueness suffix of a label."""
    return hashlib.md5(value.encode()).hexdigest()[:8]


def generate_label(url: str) -> str:
    """Turn the URL path into a readable title, e.g. /blog/my-post -> Blog - My Post."""
    try:
        path = urlparse(url).path
    except ValueError:
        return url
    path = path.strip("/")
    if not path:
        return "Homepage"
    return " - ".join(
        " ".join(word[:1].upper() + word[1:] for word in part.split("-"))
        for part in path.split("/")
    )


def sanitize_label(label: str, max_length: int = MAX_LABEL_LENGTH) -> str:
    safe = _ILLEGAL_LABEL_CHARS.sub("", label).strip()
    if len(safe) > max_length:
        safe = safe[:max_length].strip()
    return safe


def unique_label(readable: str, hash_source: str) -> str:
    """Sanitized, length-capped label with an 8-hex suffix of ``hash_source``."""
    return f"{sanitize_label(readable)} [{url_hash(hash_source)}]"


def scenario_label(url: str) -> str:
    return unique_label(generate_label(url), url)


def is_local_domain(url: str) -> bool:
    """Whether the URL targets a development host that usually has a self-signed cert."""
    try:
        hostname = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return (
        hostname == "localhost"
        or hostname.endswith(".test")
        or hostname.endswith(".local")
        or hostname.startswith("127.")
        or hostname.startswith("192.168.")
        or hostname.startswith("10.")
        or hostname == "0.0.0.0"
    )


def resolve_sitemap_url(site_url: str, sitemap_url: str | None) -> str:
    """Absolute sitemap URLs pass through; paths are joined to the site root."""
    base = site_url.rstrip("/")
    if not sitemap_url:
        return f"{base}/sitemap.xml"
    if urlparse(sitemap_url).scheme in ("http", "https"):
        return sitemap_url
    return urljoin(base + "/", sitemap_url.lstrip("/"))


def homepage_variants(site_url: str) -> set[str]:
    base = site_url.rstrip("/")
    return {base, base + "/", base + "/index.html", base + "/index.php"}


def is_homepage(url: str, site_url: str) -> bool:
    variants = homepage_variants(site_url)
    stripped = url.rstrip("/")
    return stripped in variants or stripped + "/" in variants
