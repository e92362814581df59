"""CLI entry point for the BackstopJS helper scripts."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from backstop_tools.errors import (
    BackstopToolsError,
    ConfigNotFound,
    ConfigParseError,
    SubprocessRuntimeError,
    SubprocessSpawnError,
)
from backstop_tools.generator import GenerationResult, ScenarioGenerator
from backstop_tools.models.config import BackstopConfig, GeneratorSettings, env_flag
from backstop_tools.reset import reset as reset_artifacts
from backstop_tools.runner.display import ProgressDisplay
from backstop_tools.runner.monitor import COMMANDS, DEBUG_LOG, ProgressMonitor, report_path

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _fail(message: str, *hints: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/red]")
    for hint in hints:
        console.print(f"  {escape(hint)}")
    sys.exit(1)


def _load_settings() -> GeneratorSettings:
    try:
        return GeneratorSettings.from_env()
    except ConfigParseError as e:
        _fail(str(e))


def _print_generation_summary(result: GenerationResult, settings: GeneratorSettings) -> None:
    console.print("\n[bold green]Configuration generated[/bold green]")
    table = Table(title="Scenarios")
    table.add_column("Source", style="bold")
    table.add_column("Count")
    if result.recording_count:
        table.add_row("Puppeteer recordings", str(result.recording_count))
    table.add_row("URLs", str(result.url_count))
    table.add_row("Total", f"[green]{len(result.scenarios)}[/green]")
    console.print(table)
    console.print(f"  File: [blue]{settings.config_path}[/blue]")
    console.print("\nNext steps:")
    console.print("  [blue]backstop-tools progress reference[/blue]  # first run: create references")
    console.print("  [blue]backstop-tools progress test[/blue]       # compare against references")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """BackstopJS scenario generation and progress monitoring."""
    load_dotenv()
    setup_logging(verbose or env_flag(os.environ.get("DEBUG"), False))


@cli.command("generate-sitemap")
def generate_sitemap() -> None:
    """Generate backstop.json from the sitemap and the puppet/ recordings."""
    settings = _load_settings()
    try:
        result = ScenarioGenerator(settings).from_sitemap()
    except BackstopToolsError as e:
        _fail(str(e), "Set SITE_URL/SITEMAP_URL, or add recordings to puppet/.")
    except OSError as e:
        _fail(f"Could not write {settings.config_path}: {e}")
    _print_generation_summary(result, settings)
    console.print("\nTips:")
    console.print("  MAX_URLS=50                      limit the number of URLs")
    console.print("  SITEMAP_SAMPLE_MODE=1 SAMPLE_SIZE=10  sample recent URLs per sub-sitemap")
    console.print("  REQUEST_HEADERS='{\"Cookie\":\"session=xxx\"}'  authenticate sitemap requests")


@cli.command("generate-list")
def generate_list() -> None:
    """Generate backstop.json from the URL list named by URL_LIST (.txt or .json)."""
    settings = _load_settings()
    try:
        result = ScenarioGenerator(settings).from_list()
    except BackstopToolsError as e:
        _fail(
            str(e),
            "Usage: URL_LIST=urls.txt backstop-tools generate-list",
            ".txt: one URL per line, '#' starts a comment",
            '.json: an array of strings or of objects with a "url" key',
            f"Bare file names are looked up in {settings.lists_dir}",
        )
    except OSError as e:
        _fail(f"Could not process the URL list: {e}")
    _print_generation_summary(result, settings)


@cli.command(
    "progress",
    context_settings={"ignore_unknown_options": True},
)
@click.argument("mode", type=click.Choice(COMMANDS))
@click.option("--filter", "filter_pattern", default=None, help="Only run scenarios whose label matches")
@click.option("--debug", is_flag=True, help=f"Save raw BackstopJS output to {DEBUG_LOG}")
@click.option("--no-open", is_flag=True, help="Do not open the HTML report after 'test'")
@click.argument("extra_args", nargs=-1, type=click.UNPROCESSED)
def progress(
    mode: str, filter_pattern: str | None, debug: bool, no_open: bool, extra_args: tuple[str, ...]
) -> None:
    """Run 'backstop MODE' with a live progress bar."""
    config_path = Path.cwd() / "backstop.json"
    try:
        config = BackstopConfig.load(config_path)
    except ConfigNotFound:
        _fail(f"backstop.json not found in {config_path.parent}", "Run 'backstop-tools generate-sitemap' first.")
    except ConfigParseError as e:
        _fail(str(e))

    exit_code = 0
    try:
        monitor = ProgressMonitor(
            config,
            command=mode,
            filter_pattern=filter_pattern,
            extra_args=extra_args,
            debug_log=Path(DEBUG_LOG) if debug else None,
            display=ProgressDisplay(console),
        )
        asyncio.run(monitor.run(check=True))
    except SubprocessRuntimeError as e:
        # the report is opened after failed runs too
        exit_code = e.exit_code
    except SubprocessSpawnError as e:
        _fail(f"Could not run BackstopJS: {e}")
    except BackstopToolsError as e:
        _fail(str(e))

    if mode == "test" and not no_open:
        report = report_path(config)
        console.print(f"[cyan]Opening report: {report}[/cyan]")
        if click.launch(str(report)) != 0:
            logger.warning("Could not open the report automatically; open it manually: %s", report.resolve())

    sys.exit(exit_code)


@cli.command()
def reset() -> None:
    """Delete generated bitmaps, reports, adapters and backstop.json."""
    settings = _load_settings()
    console.print("[bold]Resetting BackstopJS / Puppeteer artifacts[/bold]")
    removed = reset_artifacts(settings)
    console.print(f"[green]Done.[/green] {len(removed)} path(s) removed.")


def _run_subcommand(name: str) -> None:
    cli.main(args=[name, *sys.argv[1:]], prog_name=f"backstop-{name}")


def generate_sitemap_main() -> None:
    _run_subcommand("generate-sitemap")


def generate_list_main() -> None:
    _run_subcommand("generate-list")


def progress_main() -> None:
    _run_subcommand("progress")


def reset_main() -> None:
    _run_subcommand("reset")


if __name__ == "__main__":
    cli()
