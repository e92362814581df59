"""Tests for the generation pipeline."""

import json

import pytest

from backstop_tools.errors import EmptyScenarioSet, UrlListNotFound
from backstop_tools.generator import ScenarioGenerator
from backstop_tools.models.config import GeneratorSettings

RECORDING_JS = """(async () => {
  const browser = await puppeteer.launch();
  const page = await browser.newPage();
  await page.goto('https://example.com/cart');
  await browser.close();
})();
"""


def _settings(tmp_path, **env) -> GeneratorSettings:
    base = {"SITE_URL": "https://example.com", "PROJECT_ID": "acme"}
    base.update(env)
    return GeneratorSettings.from_env(base, root_dir=tmp_path)


def _add_recording(root, name="Recording_cart.js"):
    puppet = root / "puppet"
    puppet.mkdir(exist_ok=True)
    (puppet / name).write_text(RECORDING_JS)


class TestFromSitemap:
    """Tests for ScenarioGenerator.from_sitemap_async."""

    @pytest.mark.asyncio
    async def test_recordings_then_urls(self, tmp_path, make_fetcher, sitemap_xml):
        _add_recording(tmp_path)
        fetcher = make_fetcher({"https://example.com/sitemap.xml": sitemap_xml["urlset"]})
        result = await ScenarioGenerator(_settings(tmp_path), fetcher).from_sitemap_async()

        assert result.recording_count == 1
        assert result.url_count == 3
        assert result.scenarios[0].on_before_script == "puppet/wrapper_Recording_cart.js"
        assert [s.url for s in result.scenarios[1:]] == [
            "https://example.com/",
            "https://example.com/about",
            "https://example.com/contact",
        ]

        data = json.loads((tmp_path / "backstop.json").read_text())
        assert data["id"] == "acme"
        assert len(data["scenarios"]) == 4
        wrapper = tmp_path / "backstop_data" / "engine_scripts" / "puppet" / "wrapper_Recording_cart.js"
        assert wrapper.exists()

    @pytest.mark.asyncio
    async def test_unreachable_sitemap_keeps_recordings(self, tmp_path, make_fetcher):
        _add_recording(tmp_path)
        result = await ScenarioGenerator(_settings(tmp_path), make_fetcher({})).from_sitemap_async()
        assert result.recording_count == 1
        assert result.url_count == 0
        assert len(result.config.scenarios) == 1

    @pytest.mark.asyncio
    async def test_nothing_to_write(self, tmp_path, make_fetcher):
        with pytest.raises(EmptyScenarioSet):
            await ScenarioGenerator(_settings(tmp_path), make_fetcher({})).from_sitemap_async()
        assert not (tmp_path / "backstop.json").exists()

    @pytest.mark.asyncio
    async def test_sitemap_disabled_uses_site_root(self, tmp_path, make_fetcher):
        settings = _settings(tmp_path, SITEMAP="0")
        result = await ScenarioGenerator(settings, make_fetcher({})).from_sitemap_async()
        assert result.urls == ["https://example.com"]

    @pytest.mark.asyncio
    async def test_recordings_disabled(self, tmp_path, make_fetcher, sitemap_xml):
        _add_recording(tmp_path)
        fetcher = make_fetcher({"https://example.com/sitemap.xml": sitemap_xml["urlset"]})
        result = await ScenarioGenerator(_settings(tmp_path, PUPPET="0"), fetcher).from_sitemap_async()
        assert result.recording_count == 0
        assert result.url_count == 3

    @pytest.mark.asyncio
    async def test_sampled_index(self, tmp_path, make_fetcher, sitemap_xml):
        fetcher = make_fetcher({
            "https://example.com/sitemap.xml": sitemap_xml["index"],
            "https://example.com/post-sitemap.xml": sitemap_xml["posts"],
            "https://example.com/page-sitemap.xml": sitemap_xml["pages"],
        })
        settings = _settings(tmp_path, SITEMAP_SAMPLE_MODE="1", SAMPLE_SIZE="1")
        result = await ScenarioGenerator(settings, fetcher).from_sitemap_async()
        assert result.urls == [
            "https://example.com",
            "https://example.com/blog/newest",
            "https://example.com/pricing",
        ]

    def test_sync_entry_point(self, tmp_path):
        result = ScenarioGenerator(_settings(tmp_path, SITEMAP="0")).from_sitemap()
        assert result.url_count == 1


class TestFromList:
    """Tests for ScenarioGenerator.from_list."""

    def test_bare_name(self, tmp_path):
        lists = tmp_path / "url-lists"
        lists.mkdir()
        (lists / "urls.txt").write_text(
            "https://example.com/\n#comment\nhttps://example.com/about\n"
        )
        _add_recording(tmp_path)

        result = ScenarioGenerator(_settings(tmp_path, URL_LIST="urls.txt")).from_list()

        assert result.recording_count == 0
        assert [s.url for s in result.scenarios] == [
            "https://example.com/",
            "https://example.com/about",
        ]
        assert [s.label for s in result.scenarios] == [
            "Homepage [182ccedb]",
            "About [c30b28d2]",
        ]
        assert (tmp_path / "backstop.json").exists()

    def test_json_list(self, tmp_path):
        path = tmp_path / "pages.json"
        path.write_text(json.dumps([{"url": "https://example.com/a"}, "https://example.com/b"]))
        result = ScenarioGenerator(_settings(tmp_path, URL_LIST=str(path))).from_list()
        assert result.url_count == 2

    def test_url_list_not_set(self, tmp_path):
        with pytest.raises(UrlListNotFound):
            ScenarioGenerator(_settings(tmp_path)).from_list()

    def test_missing_file(self, tmp_path):
        with pytest.raises(UrlListNotFound):
            ScenarioGenerator(_settings(tmp_path, URL_LIST="missing.txt")).from_list()
