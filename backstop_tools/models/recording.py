"""Recording data structures."""

from __future__ import annotations

from pydantic import BaseModel


class RecordingInfo(BaseModel):
    label: str
    url: str  # first navigation target, informational only
    script_file: str
    wrapper_path: str  # relative to the engine scripts directory
    original_path: str
    adapted: bool = True  # False when the single-navigation fallback was written
