"""Error taxonomy shared by the generators, the sitemap fetcher and the runner."""

from __future__ import annotations


class BackstopToolsError(Exception):
    """Base class for every error raised by backstop_tools."""


class ConfigNotFound(BackstopToolsError, FileNotFoundError):
    """The BackstopJS configuration file does not exist."""


class ConfigParseError(BackstopToolsError, ValueError):
    """A configuration file or environment value could not be parsed."""


class UrlListNotFound(BackstopToolsError, FileNotFoundError):
    """The URL list referenced by URL_LIST does not exist."""


class UnsupportedListFormat(BackstopToolsError, ValueError):
    """The URL list has an extension other than .txt or .json, or bad JSON items."""


class EmptyUrlList(BackstopToolsError, ValueError):
    """The URL list contained no usable URLs."""


class EmptyScenarioSet(BackstopToolsError, ValueError):
    """Nothing to write: neither recordings nor URLs produced a scenario."""


class NetworkError(BackstopToolsError):
    """Connection failure or timeout while fetching a sitemap."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class HtmlInsteadOfXmlError(BackstopToolsError):
    """The sitemap endpoint answered with an HTML page."""

    def __init__(self, url: str):
        super().__init__(f"Sitemap returned HTML instead of XML: {url}")
        self.url = url


class RecordingAdaptationFailure(BackstopToolsError):
    """A recording could not be rewritten into an onBefore adapter."""


class SubprocessSpawnError(BackstopToolsError):
    """The BackstopJS runner could not be started."""


class SubprocessRuntimeError(BackstopToolsError):
    """The BackstopJS runner exited with a non-zero status."""

    def __init__(self, exit_code: int):
        super().__init__(f"BackstopJS exited with code {exit_code}")
        self.exit_code = exit_code
