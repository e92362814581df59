"""Writes backstop.json from defaults, the previous file and the new scenarios."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from backstop_tools.errors import ConfigParseError, EmptyScenarioSet
from backstop_tools.models.config import BackstopConfig, GeneratorSettings, ScenarioRecord

logger = logging.getLogger(__name__)


def default_config() -> dict[str, Any]:
    return {
        "viewports": [
            {"label": "phone", "width": 320, "height": 480},
            {"label": "tablet", "width": 1024, "height": 768},
        ],
        "report": ["browser"],
        "engine": "puppeteer",
        "engineOptions": {"args": ["--no-sandbox"]},
        "asyncCaptureLimit": 5,
        "asyncCompareLimit": 50,
        "debug": False,
        "debugWindow": False,
    }


def read_existing(path: Path) -> Optional[dict[str, Any]]:
    """The previous backstop.json as a dict, or None if absent or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read existing %s (%s); using defaults", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Existing %s is not a JSON object; using defaults", path)
        return None
    return data


def build_config(
    existing: Optional[dict[str, Any]],
    scenarios: Sequence[ScenarioRecord],
    settings: GeneratorSettings,
) -> BackstopConfig:
    """Defaults < previous file (minus scenarios) < environment-derived id and paths."""
    if not scenarios:
        raise EmptyScenarioSet("No scenarios were generated (no recordings and no URLs)")

    merged = default_config()
    if existing:
        merged.update({k: v for k, v in existing.items() if k != "scenarios"})

    merged["id"] = settings.project_id
    merged["paths"] = settings.paths.model_dump()
    merged["scenarios"] = [s.to_backstop() for s in scenarios]
    try:
        return BackstopConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigParseError(f"Existing configuration is invalid: {e}") from e


def write_config(
    scenarios: Sequence[ScenarioRecord],
    settings: GeneratorSettings,
    path: Optional[Path] = None,
) -> BackstopConfig:
    """Merge and persist the configuration. OSError propagates if ``path`` is not writable."""
    path = path or settings.config_path
    config = build_config(read_existing(path), scenarios, settings)
    config.save(path)
    logger.info("Wrote %s with %d scenarios", path, len(config.scenarios))
    return config
