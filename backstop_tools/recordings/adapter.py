"""Rewrites standalone Puppeteer recordings into BackstopJS onBefore scripts.

A recording exported from Chrome DevTools launches its own browser inside an
async IIFE. BackstopJS instead hands an ``onBeforeScript`` an existing page,
so the browser lifecycle is stripped and the IIFE becomes ``module.exports``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from backstop_tools.errors import RecordingAdaptationFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5000
ADAPTER_SIGNATURE = "module.exports = async (page, scenario, viewport) => {"

_PREAMBLE = re.compile(
    r"const\s+browser\s*=\s*await\s+puppeteer\.launch\([^)]*\);\s*"
    r"const\s+page\s*=\s*await\s+browser\.newPage\(\);\s*"
    r"(?:const\s+timeout\s*=\s*\d+\s*;\s*)?"
    r"(?:page\.setDefaultTimeout\(\s*timeout\s*\);\s*)?"
)
_BROWSER_CLOSE = re.compile(r"[ \t]*await\s+browser\.close\(\);[ \t]*\n?")
_IIFE_OPEN = re.compile(r"\(\s*async\s*\(\s*\)\s*=>\s*\{")
_IIFE_TAIL = re.compile(
    r"\}\s*\)\s*\(\s*\)\s*"
    r"(?:\.catch\(\s*\(?\s*\w+\s*\)?\s*=>\s*\{[\s\S]*?\}\s*\)\s*)?"
    r";?\s*$"
)
_TIMEOUT_DECL = re.compile(r"const\s+timeout\s*=\s*(\d+)\s*;")
_GOTO = re.compile(r"""\.goto\(\s*['"]([^'"]+)['"]""")


@dataclass
class AdaptedScript:
    source: str
    adapted: bool
    start_url: Optional[str] = None


def find_start_url(source: str) -> Optional[str]:
    """First literal URL passed to ``.goto(...)``."""
    match = _GOTO.search(source)
    return match.group(1) if match else None


def adapt(source: str) -> str:
    """Rewrite a recording into an adapter body taking ``(page, scenario, viewport)``.

    Raises RecordingAdaptationFailure if the recording does not have the
    launch / newPage / IIFE structure this rewrite depends on.
    """
    timeout_match = _TIMEOUT_DECL.search(source)
    timeout = timeout_match.group(1) if timeout_match else str(DEFAULT_TIMEOUT_MS)

    rewritten, removed = _PREAMBLE.subn("", source, count=1)
    if not removed:
        raise RecordingAdaptationFailure("browser launch/newPage preamble not found")

    rewritten = _BROWSER_CLOSE.sub("", rewritten)

    if not _IIFE_TAIL.search(rewritten):
        raise RecordingAdaptationFailure("closing '})()' of the async block not found")
    rewritten = _IIFE_TAIL.sub("};\n", rewritten, count=1)

    opening = ADAPTER_SIGNATURE
    if not _TIMEOUT_DECL.search(rewritten):
        # Recorded locators call .setTimeout(timeout); keep the recorded value in scope.
        opening += f"\n    const timeout = {timeout};"
    rewritten, replaced = _IIFE_OPEN.subn(lambda _: opening, rewritten, count=1)
    if not replaced:
        raise RecordingAdaptationFailure("async IIFE '(async () => {' not found")

    if ADAPTER_SIGNATURE not in rewritten:
        raise RecordingAdaptationFailure("rewritten script has no exported adapter")
    return rewritten


def build_fallback_adapter(script_file: str, start_url: Optional[str]) -> str:
    """Adapter that only repeats the recording's first navigation.

    Every other recorded action is dropped; the original recording is copied
    next to the adapter so it can be ported by hand.
    """
    lines = [
        f"// Fallback adapter for {script_file}: only the first navigation is replayed.",
        f"// The original recording is kept alongside as {script_file}.",
        ADAPTER_SIGNATURE,
        f"  console.log({json.dumps('Running recording (fallback): ' + script_file)});",
    ]
    if start_url:
        lines.append(f"  await page.goto({json.dumps(start_url)}, {{ waitUntil: 'networkidle0' }});")
    lines.append("};")
    return "\n".join(lines) + "\n"


def adapt_or_fallback(source: str, script_file: str) -> AdaptedScript:
    start_url = find_start_url(source)
    try:
        return AdaptedScript(source=adapt(source), adapted=True, start_url=start_url)
    except RecordingAdaptationFailure as e:
        logger.warning("Could not adapt %s (%s); writing a navigation-only adapter", script_file, e)
        return AdaptedScript(
            source=build_fallback_adapter(script_file, start_url),
            adapted=False,
            start_url=start_url,
        )
