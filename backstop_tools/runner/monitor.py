"""Runs BackstopJS and turns its output into a live progress bar."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import re
from pathlib import Path
from typing import IO, Optional, Sequence

from backstop_tools.errors import (
    ConfigParseError,
    EmptyScenarioSet,
    SubprocessRuntimeError,
    SubprocessSpawnError,
)
from backstop_tools.models.config import BackstopConfig
from backstop_tools.models.progress import ProgressState, RunSize, RunStatus

from .classifier import BackstopOutputClassifier, LineEvent, OutputClassifier, strip_ansi
from .display import ProgressDisplay

logger = logging.getLogger(__name__)

COMMANDS = ("test", "reference", "approve")
TICK_SECONDS = 1.0
READ_CHUNK = 4096
DEBUG_LOG = "backstop-debug.log"


def default_runner() -> list[str]:
    return ["npx.cmd" if os.name == "nt" else "npx", "backstop"]


def count_tests(config: BackstopConfig, filter_pattern: Optional[str] = None) -> RunSize:
    """Scenario and viewport counts, honouring ``--filter`` the way BackstopJS does."""
    scenarios = config.scenarios
    if filter_pattern:
        try:
            matcher = re.compile(filter_pattern, re.IGNORECASE)
        except re.error as e:
            raise ConfigParseError(f"Invalid --filter pattern {filter_pattern!r}: {e}") from e
        scenarios = [s for s in scenarios if matcher.search(str(s.get("label", "")))]
    return RunSize(
        scenarios=len(scenarios),
        viewports=len(config.viewports),
        scenario_labels=[str(s.get("label", "")) for s in scenarios],
    )


class LineBuffer:
    """Splits a stream into complete lines, holding back a trailing partial line."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        *lines, self._pending = (self._pending + text).split("\n")
        return lines

    def flush(self) -> list[str]:
        """Release the held-back partial line, if any, once the stream has ended."""
        rest, self._pending = self._pending, ""
        return [rest] if rest else []


class ProgressMonitor:
    """Spawns ``backstop <command>`` and tracks progress from its stdout/stderr.

    States: NOT_STARTED -> RUNNING -> SUCCEEDED | FAILED. A 1-second ticker
    redraws the elapsed time; output lines drive the counters.
    """

    def __init__(
        self,
        config: BackstopConfig,
        command: str = "test",
        filter_pattern: Optional[str] = None,
        extra_args: Sequence[str] = (),
        debug_log: Optional[Path] = None,
        classifier: Optional[OutputClassifier] = None,
        display: Optional[ProgressDisplay] = None,
        runner: Optional[Sequence[str]] = None,
        cwd: Optional[Path] = None,
        tick_seconds: float = TICK_SECONDS,
    ):
        if command not in COMMANDS:
            raise ValueError(f"Unknown command {command!r}; expected one of {', '.join(COMMANDS)}")
        self.config = config
        self.command = command
        self.filter_pattern = filter_pattern
        self.extra_args = list(extra_args)
        self.debug_log = debug_log
        self.classifier: OutputClassifier = classifier or BackstopOutputClassifier()
        self.display = display or ProgressDisplay()
        self.runner = list(runner) if runner is not None else default_runner()
        self.cwd = cwd
        self.tick_seconds = tick_seconds

        self.size = count_tests(config, filter_pattern)
        self.state = ProgressState(total=self.size.total)
        self._buffers = {"stdout": LineBuffer(), "stderr": LineBuffer()}
        self._decoders = {
            name: codecs.getincrementaldecoder("utf-8")(errors="replace")
            for name in self._buffers
        }
        self._log_file: Optional[IO[bytes]] = None

    def command_line(self) -> list[str]:
        args = [*self.runner, self.command]
        if self.filter_pattern:
            args.append(f"--filter={self.filter_pattern}")
        return args + self.extra_args

    # ------------------------------------------------------------------
    # Output handling
    # ------------------------------------------------------------------

    def handle_chunk(self, stream: str, data: bytes) -> None:
        """Process one chunk read from ``stream`` ('stdout' or 'stderr')."""
        self._tee(stream, data)
        text = self._decoders[stream].decode(data)
        for raw in self._buffers[stream].feed(text):
            self.handle_line(stream, raw)

    def finish_stream(self, stream: str) -> None:
        """Process whatever partial line remains after ``stream`` hit EOF."""
        tail = self._buffers[stream].feed(self._decoders[stream].decode(b"", final=True))
        for raw in tail + self._buffers[stream].flush():
            self.handle_line(stream, raw)

    def handle_line(self, stream: str, raw: str) -> None:
        line = strip_ansi(raw).strip()
        if not line:
            return
        if stream == "stderr":
            lower = line.lower()
            if "error" in lower and "mismatch" not in lower:
                self.display.runner_error(line)
        self.apply(self.classifier.classify(line))

    def apply(self, event: LineEvent) -> None:
        state = self.state
        if event.viewport:
            state.current_viewport = event.viewport
        if event.scenario and event.scenario != state.current_scenario:
            state.current_scenario = event.scenario
            self.display.scenario(event.scenario, state.current_viewport)
        if event.step_completed and state.advance():
            state.tick()
            self.display.refresh(state)
        if event.passed:
            state.passed += 1
        if event.failed:
            state.failed += 1

    def _tee(self, stream: str, data: bytes) -> None:
        if self._log_file is None:
            return
        try:
            if stream == "stderr":
                self._log_file.write(b"[STDERR] ")
            self._log_file.write(data)
        except OSError as e:
            logger.warning("Stopped writing %s: %s", self.debug_log, e)
            self._close_log()

    def _open_log(self) -> None:
        if self.debug_log is None:
            return
        try:
            self._log_file = open(self.debug_log, "wb")
        except OSError as e:
            logger.warning("Could not create debug log %s: %s", self.debug_log, e)
            return
        logger.info("Debug mode: raw output is saved to %s", self.debug_log)

    def _close_log(self) -> None:
        if self._log_file is not None:
            with contextlib.suppress(OSError):
                self._log_file.close()
            self._log_file = None

    # ------------------------------------------------------------------
    # Process lifecycle
    # ------------------------------------------------------------------

    async def run(self, check: bool = False) -> int:
        """Run BackstopJS to completion and return its exit code.

        With ``check``, a non-zero exit raises SubprocessRuntimeError instead.
        """
        if self.size.total == 0:
            raise EmptyScenarioSet("No scenarios to run (check backstop.json and --filter)")

        self._open_log()
        self.display.header(self.command, self.size)
        cmd = self.command_line()
        logger.debug("Spawning %s", " ".join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
            )
        except OSError as e:
            self.state.status = RunStatus.FAILED
            self._close_log()
            raise SubprocessSpawnError(f"Could not start {cmd[0]}: {e}") from e

        self.state.start()
        self.display.start(self.state)
        ticker = asyncio.create_task(self._tick())
        try:
            await asyncio.gather(
                self._pump("stdout", proc.stdout),
                self._pump("stderr", proc.stderr),
            )
            exit_code = await proc.wait()
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            self._close_log()

        self.state.finish(exit_code)
        self.display.stop(self.state)
        self.display.summary(self.state)
        if check and exit_code != 0:
            raise SubprocessRuntimeError(exit_code)
        return exit_code

    async def _pump(self, name: str, stream: Optional[asyncio.StreamReader]) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(READ_CHUNK)
            if not chunk:
                break
            self.handle_chunk(name, chunk)
        self.finish_stream(name)

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.state.tick()
            self.display.refresh(self.state)


def report_path(config: BackstopConfig, root: Optional[Path] = None) -> Path:
    report_dir = config.paths.html_report if config.paths else "backstop_data/html_report"
    return (root or Path.cwd()) / report_dir / "index.html"
