"""Configuration models: generator settings and the BackstopJS config file."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from backstop_tools.errors import ConfigNotFound, ConfigParseError
from backstop_tools.url_utils import is_local_domain, resolve_sitemap_url

DEFAULT_SITE_URL = "https://wordpress.org"
DEFAULT_PROJECT_ID = "backstop_default"
DEFAULT_DATA_ROOT = "backstop_data"
DEFAULT_SCRIPTS_DIR = "backstop_data/engine_scripts"
DEFAULT_REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; BackstopJS-SitemapParser/1.0)",
    "Accept": "application/xml, text/xml, */*",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


def env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(environ: Mapping[str, str], name: str) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigParseError(f"{name} must be an integer, got {raw!r}") from None


class Viewport(BaseModel):
    label: str
    width: int
    height: int


class BackstopPaths(BaseModel):
    bitmaps_reference: str
    bitmaps_test: str
    engine_scripts: str
    html_report: str
    ci_report: str


class ScenarioRecord(BaseModel):
    """One BackstopJS scenario. Serialized with the camelCase keys BackstopJS expects."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str
    cookie_path: str = Field(alias="cookiePath")
    url: str
    reference_url: str = Field(default="", alias="referenceUrl")
    ready_event: Optional[str] = Field(default=None, alias="readyEvent")
    ready_selector: Optional[str] = Field(default=None, alias="readySelector")
    delay: int = 0
    post_interaction_wait: Optional[int] = Field(default=None, alias="postInteractionWait")
    hide_selectors: Optional[list[str]] = Field(default=None, alias="hideSelectors")
    remove_selectors: Optional[list[str]] = Field(default=None, alias="removeSelectors")
    hover_selector: Optional[str] = Field(default=None, alias="hoverSelector")
    click_selector: Optional[str] = Field(default=None, alias="clickSelector")
    selectors: list[str] = Field(default_factory=list)
    selector_expansion: Optional[bool] = Field(default=None, alias="selectorExpansion")
    expect: Optional[int] = None
    mismatch_threshold: float = Field(default=0.1, ge=0, le=1, alias="misMatchThreshold")
    require_same_dimensions: bool = Field(default=True, alias="requireSameDimensions")
    on_before_script: Optional[str] = Field(default=None, alias="onBeforeScript")

    def to_backstop(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class BackstopConfig(BaseModel):
    """The backstop.json document. Unknown top-level keys are preserved."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = DEFAULT_PROJECT_ID
    viewports: list[Viewport] = Field(default_factory=list)
    paths: Optional[BackstopPaths] = None
    scenarios: list[dict[str, Any]] = Field(default_factory=list)
    engine: str = "puppeteer"
    engine_options: dict[str, Any] = Field(default_factory=dict, alias="engineOptions")
    async_capture_limit: int = Field(default=5, alias="asyncCaptureLimit")
    async_compare_limit: int = Field(default=50, alias="asyncCompareLimit")
    report: list[str] = Field(default_factory=lambda: ["browser"])
    debug: bool = False
    debug_window: bool = Field(default=False, alias="debugWindow")

    @classmethod
    def load(cls, path: str | Path) -> "BackstopConfig":
        """Load backstop.json, raising ConfigNotFound or ConfigParseError."""
        path = Path(path)
        if not path.exists():
            raise ConfigNotFound(f"Config file not found: {path}")
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigParseError(f"Could not read {path}: {e}") from e

    def to_backstop(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def save(self, path: str | Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_backstop(), f, indent=2, ensure_ascii=False)


class GeneratorSettings(BaseModel):
    """Everything the generators and the reset command read from the environment.

    Built once by :meth:`from_env` and passed explicitly to each component.
    """

    root_dir: Path = Field(default_factory=Path.cwd)

    site_url: str = DEFAULT_SITE_URL
    sitemap_url: Optional[str] = None
    url_list: Optional[str] = None

    project_id: str = DEFAULT_PROJECT_ID
    data_dir: str = DEFAULT_DATA_ROOT
    scripts_dir: str = DEFAULT_SCRIPTS_DIR

    max_urls: Optional[int] = None
    timeout_ms: int = 30000
    use_sitemap: bool = True
    use_recordings: bool = True
    sample_mode: bool = False
    sample_size: int = Field(default=5, ge=0)

    request_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REQUEST_HEADERS)
    )
    reject_unauthorized: Optional[bool] = None
    debug: bool = False

    @field_validator("site_url")
    @classmethod
    def strip_site_url(cls, v: str) -> str:
        return v.strip()

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        root_dir: str | Path | None = None,
    ) -> "GeneratorSettings":
        env = os.environ if environ is None else environ

        custom_data_dir = env.get("BACKSTOP_DATA_DIR")
        data_dir = (
            f"{DEFAULT_DATA_ROOT}/{custom_data_dir}" if custom_data_dir else DEFAULT_DATA_ROOT
        )

        headers = dict(DEFAULT_REQUEST_HEADERS)
        raw_headers = env.get("REQUEST_HEADERS")
        if raw_headers:
            try:
                headers = json.loads(raw_headers)
            except json.JSONDecodeError as e:
                raise ConfigParseError(f"REQUEST_HEADERS is not valid JSON: {e}") from e
            if not isinstance(headers, dict):
                raise ConfigParseError("REQUEST_HEADERS must be a JSON object")

        reject = env.get("REJECT_UNAUTHORIZED")
        sample_size = _env_int(env, "SAMPLE_SIZE")

        values: dict[str, Any] = {
            "site_url": env.get("SITE_URL") or DEFAULT_SITE_URL,
            "sitemap_url": env.get("SITEMAP_URL") or None,
            "url_list": env.get("URL_LIST") or None,
            "project_id": env.get("PROJECT_ID") or DEFAULT_PROJECT_ID,
            "data_dir": data_dir,
            "scripts_dir": env.get("BACKSTOP_SCRIPTS_DIR") or DEFAULT_SCRIPTS_DIR,
            "max_urls": _env_int(env, "MAX_URLS"),
            "timeout_ms": _env_int(env, "TIMEOUT") or 30000,
            "use_sitemap": env.get("SITEMAP") != "0",
            "use_recordings": env.get("PUPPET") != "0",
            "sample_mode": env_flag(env.get("SITEMAP_SAMPLE_MODE"), False),
            "sample_size": max(0, sample_size) if sample_size is not None else 5,
            "request_headers": {str(k): str(v) for k, v in headers.items()},
            "reject_unauthorized": None if reject is None else env_flag(reject, False),
            "debug": env_flag(env.get("DEBUG"), False),
        }
        if root_dir is not None:
            values["root_dir"] = Path(root_dir)
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigParseError(str(e)) from e

    # -- derived values ---------------------------------------------------

    @property
    def resolved_sitemap_url(self) -> str:
        return resolve_sitemap_url(self.site_url, self.sitemap_url)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def verify_tls_for(self, url: str) -> bool:
        """Explicit REJECT_UNAUTHORIZED wins; otherwise verify unless the host is local."""
        if self.reject_unauthorized is not None:
            return self.reject_unauthorized
        return not is_local_domain(url)

    @property
    def verify_tls(self) -> bool:
        return self.verify_tls_for(self.resolved_sitemap_url)

    @property
    def paths(self) -> BackstopPaths:
        return BackstopPaths(
            bitmaps_reference=f"{self.data_dir}/bitmaps_reference",
            bitmaps_test=f"{self.data_dir}/bitmaps_test",
            engine_scripts=self.scripts_dir,
            html_report=f"{self.data_dir}/html_report",
            ci_report=f"{self.data_dir}/ci_report",
        )

    @property
    def cookie_path(self) -> str:
        return f"{self.scripts_dir}/cookies.json"

    @property
    def config_path(self) -> Path:
        return self.root_dir / "backstop.json"

    @property
    def lists_dir(self) -> Path:
        return self.root_dir / "url-lists"

    @property
    def recordings_dir(self) -> Path:
        return self.root_dir / "puppet"

    @property
    def adapters_dir(self) -> Path:
        return self.root_dir / self.scripts_dir / "puppet"
