"""Collects Puppeteer recordings from puppet/ and installs their adapters."""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from backstop_tools.models.recording import RecordingInfo

from .adapter import adapt_or_fallback

logger = logging.getLogger(__name__)

ADAPTER_SUBDIR = "puppet"


def recording_label(file_name: str) -> str:
    """'Recording_checkout_flow.js' -> 'Recording: checkout flow'."""
    label = re.sub(r"\.js$", "", file_name, flags=re.IGNORECASE).replace("_", " ")
    return re.sub(r"Recording:?\s+", "Recording: ", label, count=1, flags=re.IGNORECASE)


def collect_recordings(recordings_dir: Path, adapters_dir: Path) -> list[RecordingInfo]:
    """Copy every ``*.js`` recording into ``adapters_dir`` and write its adapter.

    The copy keeps its name; the adapter is written as ``wrapper_<name>``.
    Unreadable recordings are skipped with a warning.
    """
    if not recordings_dir.is_dir():
        logger.info("No recordings directory at %s", recordings_dir)
        return []

    scripts = sorted(p for p in recordings_dir.iterdir() if p.is_file() and p.suffix == ".js")
    if not scripts:
        logger.info("No .js recordings found in %s", recordings_dir)
        return []

    adapters_dir.mkdir(parents=True, exist_ok=True)
    recordings = []
    for script in scripts:
        try:
            source = script.read_text(encoding="utf-8")
            shutil.copy2(script, adapters_dir / script.name)
            result = adapt_or_fallback(source, script.name)
            wrapper_name = f"wrapper_{script.name}"
            (adapters_dir / wrapper_name).write_text(result.source, encoding="utf-8")
        except OSError as e:
            logger.warning("Error processing recording %s: %s", script.name, e)
            continue

        info = RecordingInfo(
            label=recording_label(script.name),
            url=result.start_url or "about:blank",
            script_file=script.name,
            wrapper_path=f"{ADAPTER_SUBDIR}/{wrapper_name}",
            original_path=f"{ADAPTER_SUBDIR}/{script.name}",
            adapted=result.adapted,
        )
        logger.info(
            "Recording %s -> %s (%s)",
            info.label, info.url, "adapted" if info.adapted else "fallback",
        )
        recordings.append(info)
    return recordings
