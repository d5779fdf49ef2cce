"""Anchor extraction and same-domain link filtering."""

import logging

from bs4 import BeautifulSoup

from .dedup import normalize_url
from .domains import same_domain
from .models import ExtractionError, InvalidURLError

logger = logging.getLogger(__name__)


def extract_anchor_hrefs(html: str) -> list[str]:
    """Return the href of every <a href> in document order."""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception as e:
        raise ExtractionError(f"Cannot parse markup: {e}") from e
    return [str(a["href"]) for a in soup.find_all("a", href=True)]


def extract_links(
    html: str,
    page_url: str,
    base_domain: str,
    any_tld: bool = False,
    ignore_query: bool = True,
    ignore_case: bool = True,
) -> list[str]:
    """Collect the same-domain links of a page.

    Args:
        html: markup of the page.
        page_url: the URL the markup was fetched from; relative hrefs
            resolve against it.
        base_domain: the domain of the crawl (see domains.domain_of).
        any_tld: compare domains without their public suffix.
        ignore_query: strip query strings from the results.
        ignore_case: lower-case the results.

    Returns:
        Normalized absolute URLs in document order. Duplicates are kept;
        the frontier deduplicates.
    """
    links: list[str] = []
    for href in extract_anchor_hrefs(html):
        try:
            # Resolve without folding first so the domain check sees the
            # URL as written.
            resolved = normalize_url(href, page_url, ignore_case=False, ignore_query=False)
        except InvalidURLError as e:
            logger.debug(f"Dropping href on {page_url}: {e}")
            continue
        if resolved is None:
            continue

        if not same_domain(resolved, base_domain, any_tld):
            continue

        links.append(normalize_url(resolved, page_url, ignore_case, ignore_query))
    return links
