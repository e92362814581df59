"""Scenario assembly. Recordings come first, then URLs, each with a unique label."""

from __future__ import annotations

import logging
from typing import Sequence

from backstop_tools.models.config import ScenarioRecord
from backstop_tools.models.recording import RecordingInfo
from backstop_tools.url_utils import scenario_label, unique_label

logger = logging.getLogger(__name__)

URL_DELAY_MS = 5000
DEFAULT_MISMATCH_THRESHOLD = 0.1


def url_scenario(url: str, cookie_path: str) -> ScenarioRecord:
    return ScenarioRecord(
        label=scenario_label(url),
        cookie_path=cookie_path,
        url=url,
        reference_url="",
        ready_selector="body",
        delay=URL_DELAY_MS,
        selectors=[],
        mismatch_threshold=DEFAULT_MISMATCH_THRESHOLD,
        require_same_dimensions=True,
    )


def recording_scenario(recording: RecordingInfo, cookie_path: str) -> ScenarioRecord:
    # The adapter navigates; the scenario URL is only a blank starting page.
    return ScenarioRecord(
        label=unique_label(recording.label, recording.script_file),
        cookie_path=cookie_path,
        url="about:blank",
        reference_url="",
        ready_event="",
        ready_selector="",
        delay=0,
        post_interaction_wait=0,
        hide_selectors=[],
        remove_selectors=[],
        hover_selector="",
        click_selector="",
        selectors=[],
        selector_expansion=True,
        expect=0,
        mismatch_threshold=DEFAULT_MISMATCH_THRESHOLD,
        require_same_dimensions=True,
        on_before_script=recording.wrapper_path,
    )


def assemble(
    recordings: Sequence[RecordingInfo],
    urls: Sequence[str],
    cookie_path: str,
) -> list[ScenarioRecord]:
    """Build the ordered scenario list. Repeated URLs are skipped so labels stay unique."""
    scenarios = [recording_scenario(r, cookie_path) for r in recordings]
    labels = {s.label for s in scenarios}

    for url in urls:
        scenario = url_scenario(url, cookie_path)
        if scenario.label in labels:
            logger.warning("Skipping duplicate URL %s", url)
            continue
        labels.add(scenario.label)
        scenarios.append(scenario)

    logger.info(
        "Assembled %d scenarios (%d recordings + %d URLs)",
        len(scenarios), len(recordings), len(scenarios) - len(recordings),
    )
    return scenarios
