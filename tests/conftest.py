"""Shared test doubles: an in-memory site instead of a browser."""

import asyncio
from typing import Union

import pytest

from site_crawler.models import FailedPage, FetchedPage, FetchOutcome


def page(*hrefs: str) -> str:
    """Build a minimal HTML page linking to hrefs, in order."""
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body>{anchors}</body></html>"


class FakeFetcher:
    """Serves pages from a dict and records what was fetched.

    Values are either HTML strings (served as 200) or ready-made
    FetchOutcome objects. Unknown URLs fail like a DNS error would.
    """

    def __init__(self, pages: dict[str, Union[str, FetchOutcome]]) -> None:
        self.pages = pages
        self.fetched: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, url: str) -> FetchOutcome:
        self.fetched.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            served = self.pages.get(url)
            if served is None:
                return FailedPage(message=f"no such page: {url}")
            if isinstance(served, str):
                return FetchedPage(body=served, status_code=200)
            return served
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def site() -> dict[str, Union[str, FetchOutcome]]:
    """The reference graph: / -> [/a, /b, other.com], /a -> [], /b -> [/a]."""
    return {
        "https://x.com/": page("/a", "/b", "http://other.com/x"),
        "https://x.com/a": page(),
        "https://x.com/b": page("/a"),
    }
