"""Tests for CLI configuration resolution and output."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from site_crawler.cli import build_parser, config_from_args, main
from site_crawler.models import (
    CrawlConfig,
    CrawlResult,
    CrawlStatus,
    InvalidSeedError,
    TraversalStrategy,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MAX_CONCURRENT_THREADS", "SKIP_CODES", "OUT_FILE", "SITEMAP_FILE", "VERBOSE"):
        monkeypatch.delenv(name, raising=False)


def _config(*argv: str) -> CrawlConfig:
    return config_from_args(build_parser().parse_args(["https://x.com", *argv]))


class TestConfigFromArgs:
    def test_defaults(self):
        config = _config()
        assert config == CrawlConfig()
        assert config.skip_status_codes == frozenset({404})
        assert config.max_concurrent_threads == 10

    def test_flags(self):
        config = _config(
            "--any-tld",
            "--keep-query",
            "--case-sensitive",
            "--max-threads", "4",
            "--skip-codes", "404,410",
            "--strategy", "recursive",
            "--max-depth", "3",
            "--sequential",
            "--out-file", "urls.txt",
            "--append-batches",
            "--sitemap", "sitemap.xml",
        )
        assert config.any_tld
        assert not config.ignore_query_params
        assert not config.ignore_case
        assert config.max_concurrent_threads == 4
        assert config.skip_status_codes == frozenset({404, 410})
        assert config.strategy is TraversalStrategy.BOUNDED_DEPTH_RECURSIVE
        assert config.max_depth == 3
        assert config.sequential
        assert config.output_file == "urls.txt"
        assert config.append_batches
        assert config.sitemap_file == "sitemap.xml"

    def test_environment_fallbacks(self, monkeypatch):
        monkeypatch.setenv("MAX_CONCURRENT_THREADS", "3")
        monkeypatch.setenv("SKIP_CODES", "404, 403")
        monkeypatch.setenv("OUT_FILE", "env.txt")
        monkeypatch.setenv("VERBOSE", "true")

        config = _config()

        assert config.max_concurrent_threads == 3
        assert config.skip_status_codes == frozenset({403, 404})
        assert config.output_file == "env.txt"
        assert config.verbose

    def test_flags_beat_environment(self, monkeypatch):
        monkeypatch.setenv("MAX_CONCURRENT_THREADS", "3")
        assert _config("--max-threads", "7").max_concurrent_threads == 7

    def test_zero_threads_is_rejected_not_defaulted(self, monkeypatch):
        monkeypatch.setenv("MAX_CONCURRENT_THREADS", "3")
        with pytest.raises(ValidationError):
            _config("--max-threads", "0")

    def test_auto_threads_caps_requested_value(self):
        with patch("site_crawler.cli.ResourceMonitor") as monitor:
            monitor.return_value.suggest_max_threads.return_value = 2
            config = _config("--max-threads", "8", "--auto-threads")

        monitor.return_value.suggest_max_threads.assert_called_once_with(8)
        assert config.max_concurrent_threads == 2


class TestMain:
    def test_invalid_seed_exit_code(self, capsys):
        with patch("site_crawler.cli.crawl_site", AsyncMock(side_effect=InvalidSeedError("bad seed"))):
            assert main(["http://localhost/"]) == 2
        assert "bad seed" in capsys.readouterr().err

    def test_json_output(self, capsys):
        result = CrawlResult(
            seed_url="https://x.com",
            base_domain="x.com",
            strategy=TraversalStrategy.FRONTIER,
            urls=["https://x.com/", "https://x.com/a"],
            status=CrawlStatus(batches_crawled=2),
        )
        with patch("site_crawler.cli.crawl_site", AsyncMock(return_value=result)):
            assert main(["https://x.com", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["urls"] == ["https://x.com/", "https://x.com/a"]
        assert data["strategy"] == "frontier"
        assert data["status"]["counters"] == {"crawled": 0, "skipped": 0, "error": 0}

    def test_invalid_thread_count_is_a_usage_error(self):
        with pytest.raises(SystemExit):
            main(["https://x.com", "--max-threads", "-1"])
