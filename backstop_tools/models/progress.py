"""Progress state tracked while BackstopJS runs."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class RunSize:
    scenarios: int
    viewports: int
    scenario_labels: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        # Every scenario/viewport pair is captured and then compared.
        return self.scenarios * self.viewports * 2


@dataclass
class ProgressState:
    total: int
    completed: int = 0
    passed: int = 0
    failed: int = 0
    elapsed_time: float = 0.0
    start_time: float = field(default_factory=time.monotonic)
    status: RunStatus = RunStatus.NOT_STARTED
    exit_code: Optional[int] = None
    current_scenario: str = ""
    current_viewport: str = ""

    def advance(self) -> bool:
        """Count one completed step. Returns False once ``total`` is reached."""
        if self.completed >= self.total:
            return False
        self.completed += 1
        return True

    def tick(self, now: Optional[float] = None) -> None:
        now = time.monotonic() if now is None else now
        self.elapsed_time = max(0.0, now - self.start_time)

    def start(self) -> None:
        self.start_time = time.monotonic()
        self.status = RunStatus.RUNNING

    def finish(self, exit_code: int) -> None:
        self.exit_code = exit_code
        if exit_code == 0:
            self.completed = self.total
            self.status = RunStatus.SUCCEEDED
        else:
            self.status = RunStatus.FAILED
        self.tick()

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def eta_seconds(self) -> Optional[float]:
        if self.completed <= 0 or self.completed >= self.total:
            return None
        return (self.total - self.completed) * (self.elapsed_time / self.completed)
