"""Removes generated BackstopJS artifacts so a project can start over."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from backstop_tools.models.config import DEFAULT_DATA_ROOT, GeneratorSettings

logger = logging.getLogger(__name__)

_DATA_SUBDIRS = ("bitmaps_reference", "bitmaps_test", "html_report", "ci_report")


def reset_targets(settings: GeneratorSettings) -> list[str]:
    """Project-relative paths removed by :func:`reset`, in order, without duplicates."""
    targets = [f"{settings.data_dir}/{sub}" for sub in _DATA_SUBDIRS]
    targets += [f"{DEFAULT_DATA_ROOT}/{sub}" for sub in _DATA_SUBDIRS]
    targets += [
        f"{settings.scripts_dir}/puppet",
        "backstop.json",
        # copied recordings
        "puppet",
    ]
    return list(dict.fromkeys(targets))


def reset(settings: GeneratorSettings) -> list[Path]:
    """Delete every reset target under ``settings.root_dir``. Missing targets are fine."""
    removed = []
    for target in reset_targets(settings):
        path = settings.root_dir / target
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        else:
            logger.info("Not present: %s", target)
            continue
        logger.info("Removed: %s", target)
        removed.append(path)
    return removed
