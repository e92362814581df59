"""URL list readers for the list-based generator (.txt and .json)."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from backstop_tools.errors import (
    ConfigParseError,
    EmptyUrlList,
    UnsupportedListFormat,
    UrlListNotFound,
)

logger = logging.getLogger(__name__)


def parse_txt(content: str) -> list[str]:
    """One URL per line; blank lines, ``#`` lines and trailing ``# comments`` are dropped."""
    urls = []
    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        comment_at = line.find("#")
        if comment_at > 0:
            line = line[:comment_at].strip()
        if line:
            urls.append(line)
    return urls


def parse_json(content: str) -> list[str]:
    """An array of strings, or of objects with a ``url`` key."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigParseError(f"Invalid JSON in URL list: {e}") from e

    if not isinstance(data, list):
        raise UnsupportedListFormat("The JSON file must contain an array")

    urls = []
    for item in data:
        if isinstance(item, str):
            urls.append(item)
        elif isinstance(item, dict) and item.get("url"):
            urls.append(str(item["url"]))
        else:
            raise UnsupportedListFormat(
                'Invalid JSON item: expected a string or an object with a "url" key'
            )
    return urls


def read_urls(path: str | Path) -> list[str]:
    """Read URLs from a .txt or .json list. Raises EmptyUrlList if none are found."""
    path = Path(path)
    ext = path.suffix.lower()
    if ext == ".txt":
        parser = parse_txt
    elif ext == ".json":
        parser = parse_json
    else:
        raise UnsupportedListFormat(f"Unsupported file format: {ext or '(none)'}. Use .txt or .json")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigParseError(f"URL list {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise UrlListNotFound(f"Could not read URL list {path}: {e}") from e

    urls = parser(content)
    if not urls:
        raise EmptyUrlList(f"No URLs found in {path}")
    logger.info("Read %d URL(s) from %s", len(urls), path)
    return urls


def resolve_list_path(value: str, lists_dir: Path) -> Path:
    """Absolute paths as-is, paths with a directory from the CWD, bare names from ``lists_dir``."""
    candidate = Path(value)
    if candidate.is_absolute():
        resolved = candidate
    elif "/" in value or "\\" in value:
        resolved = candidate.resolve()
    else:
        resolved = lists_dir / value

    if not resolved.exists():
        hint = ""
        if resolved.parent == lists_dir:
            hint = f" (bare file names are looked up in {lists_dir}; pass a path otherwise)"
        raise UrlListNotFound(f"URL list not found: {resolved}{hint}")
    return resolved
