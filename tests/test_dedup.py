"""Tests for URL normalization and the frontier container."""

import pytest

from site_crawler.dedup import CrawlFrontier, normalize_url
from site_crawler.models import InvalidURLError

pytestmark = pytest.mark.unit

BASE = "https://example.com/docs/index.html"


class TestNormalizeUrl:
    def test_resolves_relative_hrefs(self):
        assert normalize_url("guide", BASE) == "https://example.com/docs/guide"
        assert normalize_url("/about", BASE) == "https://example.com/about"
        assert normalize_url("../up", BASE) == "https://example.com/up"

    def test_bare_origin_gets_root_path(self):
        assert normalize_url("https://example.com", BASE) == "https://example.com/"

    def test_query_and_case_folding(self):
        a = normalize_url("HTTP://Example.com/Page?x=1", BASE, ignore_case=True, ignore_query=True)
        b = normalize_url("http://example.com/page", BASE, ignore_case=True, ignore_query=True)
        assert a == b == "http://example.com/page"

    def test_keeps_query_and_case_when_asked(self):
        url = normalize_url("/Page?x=1", BASE, ignore_case=False, ignore_query=False)
        assert url == "https://example.com/Page?x=1"

    def test_host_is_lowercased_even_when_case_sensitive(self):
        url = normalize_url("https://EXAMPLE.com/Path", BASE, ignore_case=False)
        assert url == "https://example.com/Path"

    @pytest.mark.parametrize(
        "href",
        ["", "   ", "#top", "mailto:me@example.com", "javascript:void(0)", "ftp://example.com/f"],
    )
    def test_drops_fragments_and_other_schemes(self, href):
        assert normalize_url(href, BASE) is None

    def test_trailing_slash_and_fragment_are_kept(self):
        assert normalize_url("/page/", BASE) != normalize_url("/page", BASE)
        assert normalize_url("/page#part", BASE, ignore_query=False) == "https://example.com/page#part"

    def test_unparseable_url_raises(self):
        with pytest.raises(InvalidURLError):
            normalize_url("http://[::1/broken", BASE)

    @pytest.mark.parametrize(
        "raw",
        [
            "HTTP://Example.com/Page?x=1",
            "/a/b/../c?q=1#frag",
            "https://example.com",
            "https://user@Example.com/X",
            "relative/Path%2Fx",
        ],
    )
    @pytest.mark.parametrize("ignore_case", [True, False])
    @pytest.mark.parametrize("ignore_query", [True, False])
    def test_idempotent(self, raw, ignore_case, ignore_query):
        once = normalize_url(raw, BASE, ignore_case, ignore_query)
        assert normalize_url(once, BASE, ignore_case, ignore_query) == once


class TestCrawlFrontier:
    def test_push_ignores_pending_and_visited(self):
        frontier = CrawlFrontier()
        assert frontier.push("a")
        assert not frontier.push("a")
        frontier.mark_visited("b")
        assert not frontier.push("b")
        assert frontier.pending == 1

    def test_take_moves_urls_to_visited_in_insertion_order(self):
        frontier = CrawlFrontier()
        frontier.push_all(["c", "a", "b", "d"])

        assert frontier.take(3) == ["c", "a", "b"]
        assert frontier.pending == 1
        assert frontier.visited == 3
        assert all(frontier.is_visited(url) for url in ("c", "a", "b"))
        assert not frontier.push("a")

        assert frontier.take(3) == ["d"]
        assert frontier.take(3) == []

    def test_mark_visited_removes_pending_entry(self):
        frontier = CrawlFrontier()
        frontier.push("a")
        assert frontier.mark_visited("a")
        assert not frontier.mark_visited("a")
        assert frontier.pending == 0
        assert frontier.visited_urls() == ["a"]
