"""Classifies BackstopJS console lines into progress events.

The rules are heuristics over another tool's log format, so they live behind
the small :class:`OutputClassifier` interface and can be swapped without
touching the monitor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Protocol

_ANSI = re.compile(r"[\u001b\u009b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]")


def strip_ansi(text: str) -> str:
    return _ANSI.sub("", text)


@dataclass
class LineEvent:
    """What a single output line told us. All fields default to 'nothing'."""

    step_completed: bool = False
    passed: bool = False
    failed: bool = False
    scenario: Optional[str] = None
    viewport: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.step_completed or self.passed or self.failed or self.scenario or self.viewport)


class OutputClassifier(Protocol):
    def classify(self, line: str) -> LineEvent:
        """Classify one ANSI-stripped, whitespace-trimmed, non-empty line."""
        ...


@dataclass(frozen=True)
class BackstopRules:
    scenario_start: re.Pattern[str] = re.compile(r"SCENARIO\s*[:|]\s*(.+)", re.IGNORECASE)
    viewport: re.Pattern[str] = re.compile(r"\[(\d+x\d+|\w+)\]", re.IGNORECASE)
    capture_step: re.Pattern[str] = re.compile(
        r"Close Browser|BackstopTools have been installed", re.IGNORECASE
    )
    compare_step: re.Pattern[str] = re.compile(r"compare|bitmap|captured", re.IGNORECASE)
    passed: re.Pattern[str] = re.compile(r"passed|✓|PASS", re.IGNORECASE)
    failed: re.Pattern[str] = re.compile(r"failed|✗|FAIL|mismatch", re.IGNORECASE)


class BackstopOutputClassifier:
    """Default rule set for BackstopJS' puppeteer engine output."""

    def __init__(self, rules: Optional[BackstopRules] = None):
        self.rules = rules or BackstopRules()

    def classify(self, line: str) -> LineEvent:
        rules = self.rules
        event = LineEvent()
        lower = line.lower()

        scenario = rules.scenario_start.search(line)
        if scenario:
            event.scenario = scenario.group(1).strip()

        viewport = rules.viewport.search(line)
        if viewport:
            event.viewport = viewport.group(1)

        # One line counts as at most one step, whichever phase it signals.
        if rules.capture_step.search(line) or rules.compare_step.search(line):
            event.step_completed = True

        is_failure = bool(rules.failed.search(line))
        if is_failure and ("scenario" in lower or "✗" in line or "mismatch" in lower):
            event.failed = True
        elif not is_failure and rules.passed.search(line):
            if "scenario" in lower or "✓" in line:
                event.passed = True
        return event
