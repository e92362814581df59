"""End-to-end tests for the command line interface."""

import json
import sys

import pytest
from click.testing import CliRunner

from backstop_tools.cli import cli, reset_main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Run every command from an empty project directory."""
    monkeypatch.chdir(tmp_path)
    for name in ("SITE_URL", "SITEMAP_URL", "URL_LIST", "PROJECT_ID", "BACKSTOP_DATA_DIR", "PUPPET", "SITEMAP"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestGenerateList:
    """Tests for the generate-list command."""

    def test_writes_config(self, runner, project):
        (project / "urls.txt").write_text("https://example.com/\n#comment\nhttps://example.com/about\n")
        result = runner.invoke(
            cli,
            ["generate-list"],
            env={"URL_LIST": str(project / "urls.txt"), "PROJECT_ID": "acme"},
        )
        assert result.exit_code == 0, result.output
        data = json.loads((project / "backstop.json").read_text())
        assert data["id"] == "acme"
        assert [s["url"] for s in data["scenarios"]] == [
            "https://example.com/",
            "https://example.com/about",
        ]
        labels = [s["label"] for s in data["scenarios"]]
        assert labels[0].startswith("Homepage [")
        assert labels[1].startswith("About [")
        assert "Configuration generated" in result.output

    def test_missing_url_list(self, runner, project):
        result = runner.invoke(cli, ["generate-list"])
        assert result.exit_code == 1
        assert "URL_LIST is not set" in result.output
        assert not (project / "backstop.json").exists()

    def test_unsupported_format(self, runner, project):
        (project / "urls.csv").write_text("https://example.com/")
        result = runner.invoke(cli, ["generate-list"], env={"URL_LIST": str(project / "urls.csv")})
        assert result.exit_code == 1
        assert "Unsupported file format" in result.output

    def test_list_not_utf8(self, runner, project):
        (project / "urls.txt").write_bytes(b"https://example.com/\xff\xfe\n")
        result = runner.invoke(cli, ["generate-list"], env={"URL_LIST": str(project / "urls.txt")})
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "not valid UTF-8" in result.output
        assert not (project / "backstop.json").exists()

    def test_bad_environment_value(self, runner, project):
        (project / "urls.txt").write_text("https://example.com/\n")
        result = runner.invoke(
            cli,
            ["generate-list"],
            env={"URL_LIST": str(project / "urls.txt"), "MAX_URLS": "many"},
        )
        assert result.exit_code == 1
        assert "MAX_URLS" in result.output


class TestGenerateSitemap:
    """Tests for the generate-sitemap command."""

    def test_site_root_only(self, runner, project):
        result = runner.invoke(
            cli,
            ["generate-sitemap"],
            env={"SITE_URL": "https://example.com", "SITEMAP": "0"},
        )
        assert result.exit_code == 0, result.output
        data = json.loads((project / "backstop.json").read_text())
        assert [s["url"] for s in data["scenarios"]] == ["https://example.com"]


class TestProgress:
    """Tests for the progress command."""

    def test_missing_config(self, runner, project):
        result = runner.invoke(cli, ["progress", "test", "--no-open"])
        assert result.exit_code == 1
        assert "backstop.json not found" in result.output

    def test_invalid_config(self, runner, project):
        (project / "backstop.json").write_text("{nope")
        result = runner.invoke(cli, ["progress", "reference"])
        assert result.exit_code == 1
        assert "Could not read" in result.output

    def test_unknown_mode(self, runner, project):
        result = runner.invoke(cli, ["progress", "deploy"])
        assert result.exit_code == 2

    def test_filter_matching_nothing(self, runner, project, backstop_config):
        backstop_config.save(project / "backstop.json")
        result = runner.invoke(cli, ["progress", "test", "--filter", "nothing", "--no-open"])
        assert result.exit_code == 1
        assert "No scenarios to run" in result.output

    def test_invalid_filter_pattern(self, runner, project, backstop_config):
        backstop_config.save(project / "backstop.json")
        result = runner.invoke(cli, ["progress", "test", "--filter=[", "--no-open"])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Invalid --filter pattern" in result.output


class TestReset:
    """Tests for the reset command."""

    def test_removes_artifacts(self, runner, project):
        (project / "backstop.json").write_text("{}")
        (project / "backstop_data" / "bitmaps_test").mkdir(parents=True)
        result = runner.invoke(cli, ["reset"])
        assert result.exit_code == 0, result.output
        assert not (project / "backstop.json").exists()
        assert not (project / "backstop_data" / "bitmaps_test").exists()
        assert "2 path(s) removed" in result.output

    def test_standalone_script(self, project, monkeypatch):
        (project / "backstop.json").write_text("{}")
        monkeypatch.setattr(sys, "argv", ["backstop-reset"])
        with pytest.raises(SystemExit) as exc_info:
            reset_main()
        assert exc_info.value.code == 0
        assert not (project / "backstop.json").exists()


class TestDebugEnvironment:
    """Tests for the DEBUG switch read by the command group."""

    @pytest.mark.parametrize("value, expected", [("yes", True), ("on", True), ("1", True), ("0", False)])
    def test_debug_values(self, runner, project, monkeypatch, value, expected):
        calls = []
        monkeypatch.setattr("backstop_tools.cli.setup_logging", lambda verbose=False: calls.append(verbose))
        result = runner.invoke(cli, ["reset"], env={"DEBUG": value})
        assert result.exit_code == 0, result.output
        assert calls == [expected]
