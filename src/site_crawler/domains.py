"""Registrable-domain matching against the public suffix list."""

import logging
from typing import Optional

import tldextract

logger = logging.getLogger(__name__)

# Bundled suffix-list snapshot only; never fetch the list over the network.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def domain_of(url: str, any_tld: bool = False) -> Optional[str]:
    """Return the domain a URL belongs to for same-site checks.

    any_tld=False -> registrable domain ("example.co.uk")
    any_tld=True  -> domain without its public suffix ("example")

    Returns None for input without a registrable domain: unparseable URLs,
    bare hosts such as "localhost", and IP addresses.
    """
    try:
        ext = _extract(url)
    except ValueError as e:
        logger.debug(f"Cannot extract domain from {url}: {e}")
        return None

    if not ext.domain or not ext.suffix:
        return None
    domain = ext.domain.lower()
    if any_tld:
        return domain
    return f"{domain}.{ext.suffix.lower()}"


def same_domain(url: str, base_domain: str, any_tld: bool = False) -> bool:
    """True if url belongs to base_domain."""
    return domain_of(url, any_tld) == base_domain
