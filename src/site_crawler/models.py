"""Pydantic models for crawl configuration, fetch outcomes and results."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator

DEFAULT_MAX_CONCURRENT_THREADS = 10
DEFAULT_MAX_DEPTH = 10
DEFAULT_SKIP_STATUS_CODES = frozenset({404})


class CrawlerError(Exception):
    """Base class for crawler errors."""


class InvalidSeedError(CrawlerError):
    """The base domain cannot be determined from the seed URL."""


class InvalidURLError(CrawlerError):
    """A URL could not be parsed."""


class ExtractionError(CrawlerError):
    """Fetched markup could not be turned into links."""


class TraversalStrategy(str, Enum):
    FRONTIER = "frontier"
    BOUNDED_DEPTH_RECURSIVE = "recursive"


class CrawlConfig(BaseModel):
    """Settings for one crawl, built once and passed to the engine."""

    any_tld: bool = Field(
        default=False,
        description="Match on the domain without its public suffix, so example.com and example.co.uk are the same site.",
    )
    ignore_query_params: bool = Field(
        default=True,
        description="Strip everything from '?' onward (example.com/?utm_source=x == example.com/).",
    )
    ignore_case: bool = Field(
        default=True,
        description="Lower-case the whole URL before comparing.",
    )
    max_concurrent_threads: int = Field(default=DEFAULT_MAX_CONCURRENT_THREADS, ge=1)
    skip_status_codes: frozenset[int] = Field(default=DEFAULT_SKIP_STATUS_CODES)
    strategy: TraversalStrategy = Field(default=TraversalStrategy.FRONTIER)
    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=0,
        description="Depth cutoff for the recursive strategy.",
    )
    sequential: bool = Field(
        default=False,
        description="Recursive strategy only: visit child links one at a time instead of concurrently.",
    )
    max_pages: Optional[int] = Field(
        default=None,
        ge=1,
        description="Frontier strategy only: stop admitting URLs once this many were visited. None = unbounded.",
    )
    output_file: Optional[str] = None
    sitemap_file: Optional[str] = None
    append_batches: bool = Field(
        default=False,
        description="Append each finished batch to output_file while crawling.",
    )
    page_timeout_ms: int = Field(default=30000, ge=1)
    verbose: bool = False

    @field_validator("skip_status_codes", mode="before")
    @classmethod
    def _coerce_codes(cls, value: object) -> object:
        if isinstance(value, str):
            return frozenset(int(code) for code in value.split(",") if code.strip())
        return value


class CrawlCounters(BaseModel):
    """Shared counters, mutated in place by every fetch task of a crawl."""

    crawled: int = 0
    skipped: int = 0
    error: int = 0

    @property
    def total(self) -> int:
        return self.crawled + self.skipped + self.error


class FetchedPage(BaseModel):
    """A 2xx/3xx response body was obtained."""

    body: str
    status_code: int = 200
    redirect_count: int = 0


class SkippedPage(BaseModel):
    """The response status is in the configured skip set."""

    status_code: int


class FailedPage(BaseModel):
    """Transport error, timeout, or an unexpected status."""

    message: str


FetchOutcome = Union[FetchedPage, SkippedPage, FailedPage]


class CrawlStatus(BaseModel):
    """Snapshot of crawl progress."""

    batches_crawled: int = 0
    counters: CrawlCounters = Field(default_factory=CrawlCounters)
    elapsed_ms: int = 0

    @property
    def elapsed_display(self) -> str:
        return format_duration(self.elapsed_ms)


class CrawlResult(BaseModel):
    """Final result returned to the library consumer."""

    seed_url: str = Field(description="The URL the crawl started from")
    base_domain: str
    strategy: TraversalStrategy
    urls: list[str] = Field(default_factory=list, description="Visited URLs in path order")
    status: CrawlStatus = Field(default_factory=CrawlStatus)


def format_duration(ms: int) -> str:
    """Render milliseconds as e.g. '1h 2m 3s 4ms'.

    Leading zero units are left out; once a larger unit is shown, every
    smaller unit is shown too.
    """
    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, millis = divmod(rest, 1000)

    parts: list[str] = []
    if hours:
        parts.append(f"{hours}h")
    if minutes or parts:
        parts.append(f"{minutes}m")
    if seconds or parts:
        parts.append(f"{seconds}s")
    if millis or parts:
        parts.append(f"{millis}ms")
    return " ".join(parts) or "0ms"
