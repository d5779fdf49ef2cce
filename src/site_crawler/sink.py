"""Ordering and writing of crawled URLs (plain list and sitemap XML)."""

import functools
import logging
from typing import Iterable, Optional
from urllib.parse import urlsplit
from xml.sax.saxutils import escape

import aiofiles

logger = logging.getLogger(__name__)

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"

_XML_QUOTES = {'"': "&quot;", "'": "&apos;"}


def _path_segments(url: str) -> list[str]:
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def _compare_paths(a: str, b: str) -> int:
    seg_a = _path_segments(a)
    seg_b = _path_segments(b)
    for left, right in zip(seg_a, seg_b):
        if left < right:
            return -1
        if left > right:
            return 1
    return len(seg_a) - len(seg_b)


def order_urls(urls: Iterable[str]) -> list[str]:
    """Sort URLs by their path segments.

    Keeps a site's hierarchy together: /a, /a/b, /b rather than plain string
    order. A shorter path sorts before its extensions; equal paths keep
    their input order.
    """
    return sorted(urls, key=functools.cmp_to_key(_compare_paths))


def render_sitemap(urls: Iterable[str]) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<urlset xmlns="{SITEMAP_NAMESPACE}">',
    ]
    for url in urls:
        lines.append("  <url>")
        lines.append(f"    <loc>{escape(url, _XML_QUOTES)}</loc>")
        lines.append("  </url>")
    lines.append("</urlset>")
    return "\n".join(lines)


async def write_all(path: str, urls: Iterable[str]) -> None:
    """Overwrite path with one URL per line."""
    async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
        await f.write("\n".join(urls))


async def append_all(path: str, urls: Iterable[str]) -> None:
    """Append one URL per line, followed by a trailing newline."""
    async with aiofiles.open(path, mode="a", encoding="utf-8") as f:
        await f.write("\n".join(urls) + "\n")


async def write_sitemap(path: str, urls: Iterable[str]) -> bool:
    """Write a sitemap XML document. Returns False if path is not an .xml file."""
    if not path.endswith(".xml"):
        logger.error(f"Sitemap file must be an XML file: {path}")
        return False
    async with aiofiles.open(path, mode="w", encoding="utf-8") as f:
        await f.write(render_sitemap(urls))
    return True


class ResultSink:
    """Writes crawl results to the configured files.

    Write failures are logged, never raised, so a full disk or a bad path
    cannot abort a crawl that already did the network work.
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        sitemap_path: Optional[str] = None,
        append_batches: bool = False,
    ) -> None:
        self.output_path = output_path
        self.sitemap_path = sitemap_path
        self.append_batches = append_batches

    async def on_batch(self, urls: list[str]) -> None:
        """Called after every finished batch."""
        if not (self.append_batches and self.output_path and urls):
            return
        try:
            await append_all(self.output_path, order_urls(urls))
            logger.debug(f"Appended {len(urls)} URLs to {self.output_path}")
        except OSError as e:
            logger.error(f"Error writing to file {self.output_path}: {e}")

    async def finish(self, urls: list[str]) -> None:
        """Called once with every visited URL when the crawl is done."""
        ordered = order_urls(urls)
        if self.output_path:
            try:
                await write_all(self.output_path, ordered)
                logger.info(f"Data successfully written to {self.output_path}")
            except OSError as e:
                logger.error(f"Error writing to file {self.output_path}: {e}")

        if self.sitemap_path:
            try:
                if await write_sitemap(self.sitemap_path, ordered):
                    logger.info(f"Sitemap successfully written to {self.sitemap_path}")
            except OSError as e:
                logger.error(f"Error writing to file {self.sitemap_path}: {e}")
