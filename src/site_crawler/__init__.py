"""site-crawler: crawl every page of one website from a seed URL."""

from .engine import CrawlState, SiteCrawler, crawl_site
from .models import CrawlConfig, CrawlResult, InvalidSeedError, TraversalStrategy

__all__ = [
    "CrawlConfig",
    "CrawlResult",
    "CrawlState",
    "InvalidSeedError",
    "SiteCrawler",
    "TraversalStrategy",
    "crawl_site",
]
