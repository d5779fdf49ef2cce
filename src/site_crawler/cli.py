"""CLI entry point for the site crawler."""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional, Sequence

from .engine import crawl_site
from .models import CrawlConfig, InvalidSeedError, TraversalStrategy
from .resources import ResourceMonitor


def _ensure_utf8() -> None:
    """Ensure stdout/stderr use UTF-8 on Windows to avoid charmap errors."""
    if sys.platform == "win32":
        os.environ.setdefault("PYTHONUTF8", "1")
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")


def _env_bool(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="site-crawler",
        description="Crawl every page of a website reachable from a seed URL",
    )
    parser.add_argument("url", help="Seed URL; its domain bounds the crawl")
    parser.add_argument(
        "--any-tld",
        action="store_true",
        help="Treat the same name under any public suffix as the same site",
    )
    parser.add_argument(
        "--keep-query",
        action="store_true",
        help="Keep query strings (default: strip them)",
    )
    parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Compare URLs case-sensitively (default: lower-case them)",
    )
    parser.add_argument(
        "--max-threads",
        type=int,
        default=None,
        help="Max concurrent fetches (or set MAX_CONCURRENT_THREADS, default: 10)",
    )
    parser.add_argument(
        "--auto-threads",
        action="store_true",
        help="Lower --max-threads to what free memory and CPUs allow",
    )
    parser.add_argument(
        "--skip-codes",
        default=None,
        help="Comma-separated status codes to skip (or set SKIP_CODES, default: 404)",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in TraversalStrategy],
        default=TraversalStrategy.FRONTIER.value,
        help="Traversal strategy (default: frontier)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=10,
        help="Depth cutoff for the recursive strategy (default: 10)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Recursive strategy: visit child links one at a time",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Frontier strategy: stop after this many pages (default: unbounded)",
    )
    parser.add_argument(
        "--out-file",
        default=None,
        help="Write visited URLs to this file (or set OUT_FILE)",
    )
    parser.add_argument(
        "--append-batches",
        action="store_true",
        help="Append each batch to --out-file while crawling",
    )
    parser.add_argument(
        "--sitemap",
        default=None,
        help="Write a sitemap to this .xml file (or set SITEMAP_FILE)",
    )
    parser.add_argument(
        "--page-timeout",
        type=int,
        default=30000,
        help="Per-page timeout in milliseconds (default: 30000)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a table",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging (or set VERBOSE=true)",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> CrawlConfig:
    """Resolve flags and environment variables into one CrawlConfig."""
    max_threads = args.max_threads
    if max_threads is None:
        max_threads = int(os.getenv("MAX_CONCURRENT_THREADS") or 10)
    if args.auto_threads:
        max_threads = ResourceMonitor().suggest_max_threads(max_threads)

    skip_codes = args.skip_codes or os.getenv("SKIP_CODES") or "404"

    return CrawlConfig(
        any_tld=args.any_tld,
        ignore_query_params=not args.keep_query,
        ignore_case=not args.case_sensitive,
        max_concurrent_threads=max_threads,
        skip_status_codes=skip_codes,
        strategy=TraversalStrategy(args.strategy),
        max_depth=args.max_depth,
        sequential=args.sequential,
        max_pages=args.max_pages,
        output_file=args.out_file or os.getenv("OUT_FILE") or None,
        sitemap_file=args.sitemap or os.getenv("SITEMAP_FILE") or None,
        append_batches=args.append_batches,
        page_timeout_ms=args.page_timeout,
        verbose=args.verbose or _env_bool("VERBOSE"),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    _ensure_utf8()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        result = asyncio.run(crawl_site(args.url, config=config))
    except InvalidSeedError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        counters = result.status.counters
        print(f"\n{'='*60}")
        print(f"  Site:     {result.seed_url} ({result.base_domain})")
        print(f"  Strategy: {result.strategy.value}")
        print(f"  Crawled:  {counters.crawled}")
        print(f"  Skipped:  {counters.skipped}")
        print(f"  Errors:   {counters.error}")
        print(f"  Elapsed:  {result.status.elapsed_display}")
        print(f"{'='*60}")
        for url in result.urls:
            print(f"  {url}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
