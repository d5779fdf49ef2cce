"""Crawl4ai-backed page fetcher that classifies every response."""

import logging
import os
import sys
from typing import Iterable, Optional

# Fix Windows charmap encoding issues before importing crawl4ai
if sys.platform == "win32":
    os.environ.setdefault("PYTHONUTF8", "1")

from crawl4ai import AsyncWebCrawler, BrowserConfig, CacheMode, CrawlerRunConfig

from .models import DEFAULT_SKIP_STATUS_CODES, FailedPage, FetchedPage, FetchOutcome, SkippedPage

logger = logging.getLogger(__name__)


class PageFetcher:
    """Fetches pages with crawl4ai and sorts them into fetched/skipped/failed.

    Status codes in ``skip_status_codes`` are reported as SkippedPage, any
    other status >= 400 or crawl4ai failure as FailedPage.
    """

    def __init__(
        self,
        skip_status_codes: Iterable[int] = DEFAULT_SKIP_STATUS_CODES,
        page_timeout_ms: int = 30000,
    ) -> None:
        self.skip_status_codes = frozenset(skip_status_codes)
        self.page_timeout_ms = page_timeout_ms
        self._crawler: Optional[AsyncWebCrawler] = None

    async def _ensure_crawler(self) -> AsyncWebCrawler:
        """Lazy-init the crawl4ai crawler."""
        if self._crawler is None:
            browser_config = BrowserConfig(
                headless=True,
                text_mode=True,
                verbose=False,
            )
            self._crawler = AsyncWebCrawler(config=browser_config)
            await self._crawler.start()
        return self._crawler

    async def fetch(self, url: str) -> FetchOutcome:
        """Fetch a URL and classify the response.

        Never raises for network problems; those come back as FailedPage.
        """
        crawler = await self._ensure_crawler()
        config = CrawlerRunConfig(
            cache_mode=CacheMode.BYPASS,
            wait_until="domcontentloaded",
            page_timeout=self.page_timeout_ms,
        )
        try:
            result = await crawler.arun(url=url, config=config)
        except Exception as e:
            return FailedPage(message=f"Failed to fetch {url}: {e}")

        return self.classify(url, result)

    def classify(self, url: str, result) -> FetchOutcome:
        """Turn a crawl4ai CrawlResult into a FetchOutcome."""
        status = result.status_code
        if status is not None and status in self.skip_status_codes:
            return SkippedPage(status_code=status)

        if not result.success:
            reason = result.error_message or "unknown error"
            return FailedPage(message=f"Failed to fetch {url}: {reason}")

        if status is not None and status >= 400:
            return FailedPage(message=f"Failed to fetch {url}: status {status}")

        redirected = getattr(result, "redirected_url", None)
        return FetchedPage(
            body=result.html or "",
            status_code=status or 200,
            redirect_count=1 if redirected and redirected != url else 0,
        )

    async def close(self) -> None:
        """Clean up crawler/browser resources."""
        if self._crawler:
            try:
                await self._crawler.close()
            except Exception as e:
                logger.debug(f"Error closing crawler: {e}")
            self._crawler = None
