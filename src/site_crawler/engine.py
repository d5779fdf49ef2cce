"""Crawl engine — frontier batches or depth-bounded recursion over one site."""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional

from .crawler import PageFetcher
from .dedup import CrawlFrontier, normalize_url
from .domains import domain_of
from .link_discovery import extract_links
from .models import (
    CrawlConfig,
    CrawlCounters,
    CrawlResult,
    CrawlStatus,
    FailedPage,
    FetchedPage,
    InvalidSeedError,
    InvalidURLError,
    SkippedPage,
    TraversalStrategy,
)
from .resources import ResourceMonitor
from .sink import ResultSink, order_urls

logger = logging.getLogger(__name__)


class CrawlState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class SiteCrawler:
    """Crawls every page of one site reachable from a seed URL.

    Owns the frontier, the visited set and the counters for a single crawl;
    every fetch task of the crawl mutates the same objects. Use one
    instance per crawl.

    Args:
        config: crawl settings.
        fetcher: anything with ``async fetch(url) -> FetchOutcome``.
            Defaults to a crawl4ai PageFetcher, which is closed when the
            crawl ends. Injected fetchers are left open.
        sink: where results are written. Defaults to a ResultSink built
            from the config's file settings.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        fetcher=None,
        sink: Optional[ResultSink] = None,
    ) -> None:
        self.config = config or CrawlConfig()
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or PageFetcher(
            skip_status_codes=self.config.skip_status_codes,
            page_timeout_ms=self.config.page_timeout_ms,
        )
        self.sink = sink or ResultSink(
            output_path=self.config.output_file,
            sitemap_path=self.config.sitemap_file,
            append_batches=self.config.append_batches,
        )

        self.frontier = CrawlFrontier()
        self.counters = CrawlCounters()
        self.base_domain: Optional[str] = None
        self.state = CrawlState.IDLE
        self.batches_crawled = 0
        self._start_time: Optional[float] = None
        self._last_queue_size = 0
        self._fetch_slots = asyncio.Semaphore(self.config.max_concurrent_threads)

    async def crawl(self, seed_url: str) -> CrawlResult:
        """Crawl the site of seed_url and return every visited URL.

        Raises:
            InvalidSeedError: no domain can be derived from seed_url.
                Nothing is fetched in that case.
        """
        if self.state is not CrawlState.IDLE:
            raise RuntimeError("SiteCrawler instances run a single crawl")

        self._start_time = time.monotonic()
        self.base_domain = domain_of(seed_url, self.config.any_tld)
        seed, seed_page = self._normalize_seed(seed_url)
        if not self.base_domain or seed is None:
            logger.error(f"Invalid URL: {seed_url}")
            raise InvalidSeedError(f"Cannot determine a domain for {seed_url!r}")

        self.state = CrawlState.RUNNING
        self.config_status()

        try:
            if self.config.strategy is TraversalStrategy.FRONTIER:
                await self._crawl_frontier(seed, seed_page)
            else:
                await self._visit(seed, 0, fetch_url=seed_page)
        finally:
            if self._owns_fetcher:
                await self.fetcher.close()

        self.state = CrawlState.DONE
        status = self.status(log=True)
        urls = order_urls(self.frontier.visited_urls())
        await self.sink.finish(urls)

        return CrawlResult(
            seed_url=seed_url,
            base_domain=self.base_domain,
            strategy=self.config.strategy,
            urls=urls,
            status=status,
        )

    def _normalize_seed(self, seed_url: str) -> tuple[Optional[str], Optional[str]]:
        """Return (visited-set key, URL to fetch) for the seed.

        The seed is fetched as given, only resolved; case and query folding
        apply to its key alone.
        """
        try:
            page_url = normalize_url(seed_url, seed_url, ignore_case=False, ignore_query=False)
        except InvalidURLError:
            return None, None
        if page_url is None:
            return None, None
        key = normalize_url(
            page_url,
            page_url,
            ignore_case=self.config.ignore_case,
            ignore_query=self.config.ignore_query_params,
        )
        return key, page_url

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def _crawl_frontier(self, seed: str, seed_page: str) -> None:
        """Drain the frontier in batches of at most max_concurrent_threads."""
        self.frontier.mark_visited(seed)
        self.frontier.push_all(await self._process(seed_page))
        await self.sink.on_batch([seed])
        self.batches_crawled += 1

        while self.frontier.pending:
            size = self._next_batch_size()
            if size <= 0:
                logger.info(
                    f"Page limit of {self.config.max_pages} reached, "
                    f"{self.frontier.pending} URLs left unvisited"
                )
                break

            self.state = CrawlState.DRAINING
            self.batch_status(min(size, self.frontier.pending))
            batch = self.frontier.take(size)

            results = await asyncio.gather(*(self._process(url) for url in batch))
            for links in results:
                self.frontier.push_all(links)

            await self.sink.on_batch(batch)
            self.batches_crawled += 1

    def _next_batch_size(self) -> int:
        size = self.config.max_concurrent_threads
        if self.config.max_pages is not None:
            size = min(size, self.config.max_pages - self.frontier.visited)
        return size

    async def _visit(self, url: str, depth: int, fetch_url: Optional[str] = None) -> None:
        """Depth-first visit, cut off below max_depth.

        At most max_concurrent_threads fetches run at once; the slot is
        released before recursing so nested visits cannot starve.
        """
        if depth > self.config.max_depth or self.frontier.is_visited(url):
            return
        self.frontier.mark_visited(url)

        async with self._fetch_slots:
            links = await self._process(fetch_url or url)
        children = [link for link in links if not self.frontier.is_visited(link)]

        if self.config.sequential:
            for link in children:
                await self._visit(link, depth + 1)
        else:
            await asyncio.gather(*(self._visit(link, depth + 1) for link in children))

    # ------------------------------------------------------------------
    # Per-page work
    # ------------------------------------------------------------------

    async def _process(self, url: str) -> list[str]:
        """Fetch one URL and return its same-domain links.

        Counts the URL as crawled exactly once, whatever happens; skipped
        and failed pages yield no links.
        """
        try:
            outcome = await self.fetcher.fetch(url)

            if isinstance(outcome, SkippedPage):
                logger.warning(f"Skipping: {url} [{outcome.status_code}]")
                self.counters.skipped += 1
                return []

            if isinstance(outcome, FailedPage):
                logger.error(f"Failed to crawl {url}: {outcome.message}")
                self.counters.error += 1
                return []

            logger.info(f"Crawling: {self._describe(url, outcome)}")
            return extract_links(
                outcome.body,
                url,
                self.base_domain,
                any_tld=self.config.any_tld,
                ignore_query=self.config.ignore_query_params,
                ignore_case=self.config.ignore_case,
            )
        except Exception as e:
            logger.error(f"Failed to crawl {url}: {e}")
            self.counters.error += 1
            return []
        finally:
            self.counters.crawled += 1

    def _describe(self, url: str, page: FetchedPage) -> str:
        if not self.config.verbose:
            return url
        text = f"{url} [{page.status_code}]"
        if page.redirect_count > 0:
            text += f" ({page.redirect_count}x redirected)"
        return text

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def status(self, log: bool = False) -> CrawlStatus:
        """Progress so far. Logs a summary when log=True or in verbose mode."""
        if self._start_time is None:
            raise RuntimeError("Crawler hasn't started yet")

        status = CrawlStatus(
            batches_crawled=self.batches_crawled,
            counters=self.counters.model_copy(),
            elapsed_ms=int((time.monotonic() - self._start_time) * 1000),
        )
        if log or self.config.verbose:
            c = status.counters
            logger.info("-" * 60)
            if self.config.strategy is TraversalStrategy.FRONTIER:
                logger.info(
                    f"Crawled {c.crawled} pages ({status.batches_crawled} batches) "
                    f"in {status.elapsed_display}"
                )
            else:
                logger.info(f"Crawled {c.crawled} pages in {status.elapsed_display}")
            logger.info(f"Skipped: {c.skipped}")
            logger.info(f"Errors: {c.error}")
            logger.info("-" * 60)
        return status

    def config_status(self) -> dict:
        """Effective configuration of this crawl, logged in verbose mode."""
        info = {
            "base_domain": self.base_domain or "[invalid]",
            "strategy": self.config.strategy.value,
            "any_tld": self.config.any_tld,
            "ignore_query_params": self.config.ignore_query_params,
            "ignore_case": self.config.ignore_case,
            "skip_status_codes": sorted(self.config.skip_status_codes),
            "max_concurrent_threads": self.config.max_concurrent_threads,
        }
        if self.config.strategy is TraversalStrategy.BOUNDED_DEPTH_RECURSIVE:
            info["max_depth"] = self.config.max_depth
            info["sequential"] = self.config.sequential

        if self.config.verbose:
            logger.info("-" * 60)
            logger.info("Configuration:")
            for key, value in info.items():
                logger.info(f"  {key}: {value}")
            logger.info(f"Resource snapshot: {ResourceMonitor().get_snapshot()}")
            logger.info("-" * 60)
        return info

    def batch_status(self, batch_size: int) -> dict:
        """Queue statistics at the start of a batch, logged in verbose mode."""
        queue_size = self.frontier.pending
        diff = queue_size - self._last_queue_size
        info = {
            "batch": self.batches_crawled,
            "batch_size": batch_size,
            "queue_size": queue_size,
            "trend": "up" if diff > 0 else "down",
            "diff": diff,
        }
        if self.config.verbose:
            c = self.counters
            logger.debug(f"Crawling batch {self.batches_crawled} ({batch_size} pages)...")
            logger.debug(
                f"Total processed: {c.total} (Crawled: {c.crawled}, "
                f"Skipped: {c.skipped}, Errors: {c.error})"
            )
            logger.debug(f"Current queue size: {queue_size}")
            logger.debug(f"Queue size trend: {info['trend']} (diff: {diff:+d})")
        self._last_queue_size = queue_size
        return info


async def crawl_site(
    seed_url: str,
    config: Optional[CrawlConfig] = None,
    fetcher=None,
) -> CrawlResult:
    """Crawl one site. This is the primary public API.

    Args:
        seed_url: the page to start from; its domain bounds the crawl.
        config: crawl settings (defaults: frontier strategy, 10 concurrent
            fetches, 404 skipped, query strings and case ignored).
        fetcher: optional fetcher override, mainly for tests.

    Returns:
        CrawlResult with the ordered visited URLs and the final counters.
    """
    crawler = SiteCrawler(config=config, fetcher=fetcher)
    return await crawler.crawl(seed_url)
