"""URL normalization and frontier/visited-set deduplication."""

from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from .models import InvalidURLError

ALLOWED_SCHEMES = ("http", "https")


def _resolve(raw: str, base_url: str) -> str:
    """Resolve ``raw`` against ``base_url`` and serialize it browser-style.

    Scheme and host are lower-cased, and an empty path becomes "/".
    """
    try:
        parts = urlsplit(urljoin(base_url, raw))
    except ValueError as e:
        raise InvalidURLError(f"Cannot parse {raw!r}: {e}") from e

    netloc = parts.netloc
    if "@" in netloc:
        userinfo, _, host = netloc.rpartition("@")
        netloc = f"{userinfo}@{host.lower()}"
    else:
        netloc = netloc.lower()

    path = parts.path
    if netloc and not path:
        path = "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def normalize_url(
    raw: str,
    base_url: str,
    ignore_case: bool = True,
    ignore_query: bool = True,
) -> Optional[str]:
    """Normalize a (possibly relative) href into a URL key.

    - Drops empty and pure-fragment ("#...") hrefs.
    - Resolves relative hrefs against base_url.
    - Drops anything that is not http/https.
    - Lower-cases the whole string when ignore_case.
    - Cuts everything from the first "?" when ignore_query.

    Returns None for dropped hrefs. Raises InvalidURLError when the href
    cannot be parsed at all.
    """
    raw = (raw or "").strip()
    if not raw or raw.startswith("#"):
        return None

    url = _resolve(raw, base_url)
    if urlsplit(url).scheme not in ALLOWED_SCHEMES:
        return None

    if ignore_case:
        url = url.lower()
    if ignore_query:
        url = url.split("?", 1)[0]
    return url


class CrawlFrontier:
    """Pending URLs plus the set of URLs already dequeued for fetching.

    The two sets are always disjoint: a URL leaves the pending set in the
    same step it enters the visited set. Pending URLs are handed out in
    insertion order, and visited URLs are kept in admission order.
    """

    def __init__(self) -> None:
        self._pending: dict[str, None] = {}
        self._visited: dict[str, None] = {}

    def push(self, url: str) -> bool:
        """Queue a URL. Returns False if it was already visited or queued."""
        if url in self._visited or url in self._pending:
            return False
        self._pending[url] = None
        return True

    def push_all(self, urls: Iterable[str]) -> int:
        return sum(1 for url in urls if self.push(url))

    def take(self, n: int) -> list[str]:
        """Dequeue up to n URLs and mark them visited."""
        batch: list[str] = []
        for url in self._pending:
            if len(batch) >= n:
                break
            batch.append(url)
        for url in batch:
            del self._pending[url]
            self._visited[url] = None
        return batch

    def mark_visited(self, url: str) -> bool:
        """Admit a URL straight into the visited set.

        Returns False if it was already visited.
        """
        if url in self._visited:
            return False
        self._pending.pop(url, None)
        self._visited[url] = None
        return True

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def visited(self) -> int:
        return len(self._visited)

    def visited_urls(self) -> list[str]:
        return list(self._visited)
