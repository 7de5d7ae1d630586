"""Sitemap fetching, parsing and comparison with crawl results."""

import logging
import re
from typing import Iterable, List, Optional, Set
from urllib.parse import urljoin, urlsplit, urlunsplit

import httpx

from sitegrade.constants import (
    DEFAULT_SITEMAP_PATH,
    MAX_SITEMAP_DEPTH,
    SITEMAP_TIMEOUT_SECONDS,
    SITEMAP_USER_AGENT,
)
from sitegrade.models import SitemapComparison, SitemapResult, SitemapUrl
from sitegrade.safe_fetch import SafeFetcher, SafeFetchError

logger = logging.getLogger(__name__)

__all__ = [
    "fetch_sitemap",
    "parse_sitemap_xml",
    "compare_sitemap",
    "SitemapUrl",
    "SitemapResult",
    "SitemapComparison",
]

_SITEMAP_HEADERS = {
    "User-Agent": SITEMAP_USER_AGENT,
    "Accept": "application/xml, text/xml, */*",
}

_URL_BLOCK_RE = re.compile(r"<url\b[^>]*>([\s\S]*?)</url>", re.IGNORECASE)
_SITEMAP_BLOCK_RE = re.compile(r"<sitemap\b[^>]*>([\s\S]*?)</sitemap>", re.IGNORECASE)


def _xml_value(xml: str, tag: str) -> Optional[str]:
    match = re.search(
        rf"<{tag}\b[^>]*>\s*(?:<!\[CDATA\[)?([^<\]]+?)(?:\]\]>)?\s*</{tag}>",
        xml,
        re.IGNORECASE,
    )
    if not match:
        return None
    return _unescape_xml(match.group(1).strip()) or None


def _unescape_xml(value: str) -> str:
    return (
        value.replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&apos;", "'")
        .replace("&amp;", "&")
    )


def parse_sitemap_xml(xml: str) -> List[SitemapUrl]:
    """Parse the <url> entries of a urlset document.

    Entries without a <loc> are skipped.
    """
    urls = []
    for match in _URL_BLOCK_RE.finditer(xml):
        block = match.group(1)
        loc = _xml_value(block, "loc")
        if not loc:
            continue
        urls.append(SitemapUrl(
            loc=loc,
            lastmod=_xml_value(block, "lastmod"),
            changefreq=_xml_value(block, "changefreq"),
            priority=_xml_value(block, "priority"),
        ))
    return urls


def _sitemap_index_locs(xml: str) -> List[str]:
    locs = []
    for match in _SITEMAP_BLOCK_RE.finditer(xml):
        loc = _xml_value(match.group(1), "loc")
        if loc:
            locs.append(loc)
    return locs


async def fetch_sitemap(
    fetcher: SafeFetcher,
    base_url: str,
    path: str = DEFAULT_SITEMAP_PATH,
) -> SitemapResult:
    """Fetch and parse a sitemap, following sitemap index files.

    Args:
        fetcher: Safe fetcher used for every request
        base_url: Site URL the sitemap path is resolved against
        path: Sitemap path or absolute URL

    Returns:
        SitemapResult; failures are reported in ``errors``, never raised
    """
    return await _fetch_sitemap(fetcher, base_url, path, depth=0, visited=set())


async def _fetch_sitemap(
    fetcher: SafeFetcher,
    base_url: str,
    path: str,
    depth: int,
    visited: Set[str],
) -> SitemapResult:
    if path.startswith(("http://", "https://")):
        sitemap_url = path
    else:
        sitemap_url = urljoin(base_url, path or DEFAULT_SITEMAP_PATH)

    if sitemap_url in visited:
        return SitemapResult(
            url=sitemap_url,
            errors=[f"Circular sitemap reference detected: {sitemap_url}"],
        )
    visited.add(sitemap_url)

    if depth > MAX_SITEMAP_DEPTH:
        return SitemapResult(
            url=sitemap_url,
            errors=[f"Sitemap nesting too deep (max {MAX_SITEMAP_DEPTH})"],
        )

    logger.debug(f"Fetching sitemap: {sitemap_url}")
    try:
        response = await fetcher.fetch(
            sitemap_url, headers=_SITEMAP_HEADERS, timeout=SITEMAP_TIMEOUT_SECONDS
        )
    except (SafeFetchError, httpx.HTTPError) as e:
        logger.warning(f"Failed to fetch sitemap {sitemap_url}: {e}")
        return SitemapResult(url=sitemap_url, errors=[str(e) or type(e).__name__])

    if not response.is_success:
        return SitemapResult(
            url=sitemap_url,
            errors=[f"Sitemap returned HTTP {response.status_code}"],
        )

    xml = response.text
    result = SitemapResult(url=sitemap_url, found=True)

    if re.search(r"<sitemapindex\b", xml, re.IGNORECASE):
        for loc in _sitemap_index_locs(xml):
            child = await _fetch_sitemap(fetcher, loc, loc, depth + 1, visited)
            result.urls.extend(child.urls)
            for error in child.errors:
                result.errors.append(f"Child sitemap {loc}: {error}")
    else:
        result.urls = parse_sitemap_xml(xml)

    logger.info(f"Sitemap {sitemap_url}: {len(result.urls)} URLs")
    return result


def _comparison_key(url: str) -> str:
    try:
        parts = urlsplit(url.strip())
        host = (parts.hostname or "").lower()
        if host.startswith("www."):
            host = host[4:]
        netloc = f"{host}:{parts.port}" if parts.port else host
        path = parts.path or "/"
        if path != "/" and path.endswith("/"):
            path = path[:-1]
        return urlunsplit((parts.scheme, netloc, path, "", "")).lower()
    except ValueError:
        return url.strip().lower()


def _unique(urls: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(_comparison_key(url) for url in urls))


def compare_sitemap(sitemap_urls: List[str], crawled_urls: List[str]) -> SitemapComparison:
    """Compare sitemap URLs with crawled URLs.

    URLs are compared ignoring www, query, fragment, trailing slash and case.
    The returned lists hold those comparison forms.
    """
    in_sitemap = _unique(sitemap_urls)
    crawled = _unique(crawled_urls)
    sitemap_set = set(in_sitemap)
    crawled_set = set(crawled)

    comparison = SitemapComparison(
        in_both=[url for url in in_sitemap if url in crawled_set],
        in_sitemap_only=[url for url in in_sitemap if url not in crawled_set],
        in_crawl_only=[url for url in crawled if url not in sitemap_set],
    )

    if comparison.in_sitemap_only:
        comparison.issues.append(
            f"{len(comparison.in_sitemap_only)} URL(s) in sitemap but not reachable "
            "during crawl; possible dead links or noindex pages"
        )
    if comparison.in_crawl_only:
        comparison.issues.append(
            f"{len(comparison.in_crawl_only)} crawled URL(s) missing from sitemap; "
            "search engines may not discover these pages efficiently"
        )
    return comparison
