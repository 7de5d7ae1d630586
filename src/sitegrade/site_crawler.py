"""Concurrent breadth-first site crawler.

Workers share one Frontier. Each worker claims a URL, fetches it through
the SafeFetcher, scores the page and feeds its links back into the
frontier. When the pool drains, cross-page analysis runs over the collected
pages and duplicate penalties are applied.
"""

import asyncio
import dataclasses
import logging
import math
import time
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit, urlunsplit

import httpx

from sitegrade.config import AnalysisThresholds, CrawlOptions, default_thresholds
from sitegrade.constants import (
    ASSET_EXTENSIONS,
    DEFAULT_SITEMAP_PATH,
    HTML_ACCEPT_HEADER,
    NOT_HTML_PREFIX,
    RETRYABLE_STATUS_CODES,
)
from sitegrade.crawl_analyzer import CrawlAnalyzer, apply_cross_page_penalties
from sitegrade.html_parser import (
    count_script_tags,
    extract_external_links,
    extract_h1s,
    extract_internal_links,
    extract_metadata_from_html,
    extract_structured_data_types,
    extract_word_count,
    normalize_url,
)
from sitegrade.models import CrawledPage, CrawlResult, RobotsResult, RuleDefinition, SitemapResult
from sitegrade.politeness import PolitenessPolicy
from sitegrade.robots_checker import fetch_robots
from sitegrade.safe_fetch import SafeFetcher, SafeFetchError, validate_public_url
from sitegrade.sitemap_parser import fetch_sitemap
from sitegrade.validate import score_to_grade, validate_metadata

logger = logging.getLogger(__name__)

_PAGE_HEADERS = {
    "Accept": HTML_ACCEPT_HEADER,
    "Accept-Language": "en-US,en;q=0.9",
}


def is_asset_url(url: str) -> bool:
    """True when the URL path ends in a static-asset extension."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False
    return path.endswith(ASSET_EXTENSIONS)


def rewrite_to_same_domain(url: str, target_domain: str, target_scheme: str) -> Optional[str]:
    """Rewrite a URL onto the crawl host when it differs only by ``www.``.

    Args:
        url: URL to rewrite, typically a sitemap entry
        target_domain: Hostname being crawled
        target_scheme: Scheme being crawled

    Returns:
        The URL on the crawl host and scheme, or None for a foreign domain
    """
    try:
        parts = urlsplit(url)
        source = (parts.hostname or "").lower()
        port = parts.port
    except ValueError:
        return None

    target = target_domain.lower()
    if source == target:
        return url
    if source.removeprefix("www.") != target.removeprefix("www."):
        return None

    netloc = f"{target}:{port}" if port else target
    return urlunsplit((target_scheme, netloc, parts.path, parts.query, parts.fragment))


def detect_app_page(
    url: str,
    html: str,
    word_count: int,
    thresholds: Optional[AnalysisThresholds] = None,
) -> bool:
    """Detect client-rendered app or wizard pages.

    Such pages ship little server-rendered text, so their thin content is
    expected rather than a problem.
    """
    thresholds = thresholds or default_thresholds
    try:
        parts = urlsplit(url)
    except ValueError:
        return False

    path = parts.path.lower()
    if path.startswith(thresholds.app_path_prefixes):
        return True
    if any(segment in path for segment in thresholds.app_path_segments):
        return True

    params = parse_qs(parts.query, keep_blank_values=True)
    if any(name in params for name in thresholds.app_query_params):
        return True

    return (
        word_count < thresholds.app_low_word_count
        and count_script_tags(html) > thresholds.app_min_script_tags
    )


class Frontier:
    """Shared crawl queue.

    Holds the queue, the visited set, the skipped list, the collected pages
    and the in-flight count. Every mutation happens under one
    asyncio.Condition and never spans a network await.
    """

    def __init__(self, max_pages: int, max_depth: int):
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.pages: List[CrawledPage] = []
        self.skipped: List[str] = []
        self._queue: Deque[Tuple[str, int]] = deque()
        self._queued: Dict[str, int] = {}
        self._visited: Set[str] = set()
        self._in_flight = 0
        self._condition = asyncio.Condition()

    @property
    def visited_count(self) -> int:
        return len(self._visited)

    def seed(self, url: str, depth: int) -> bool:
        """Enqueue a URL. Returns False if it was dropped.

        A URL already queued is queued again only at a shallower depth;
        the deeper entry goes stale and is dropped when popped.
        """
        if is_asset_url(url) or self._queued.get(url, depth + 1) <= depth:
            return False
        self._queued[url] = depth
        self._queue.append((url, depth))
        return True

    async def claim(self) -> Optional[Tuple[str, int]]:
        """Take the next URL to fetch.

        Waits while the queue is empty and other workers are in flight.

        Returns:
            (url, depth), or None when the crawl is finished for this worker
        """
        async with self._condition:
            while True:
                if len(self._visited) >= self.max_pages:
                    return None

                while self._queue:
                    url, depth = self._queue.popleft()
                    if url in self._visited or depth > self._queued[url]:
                        continue
                    if depth > self.max_depth:
                        if url not in self.skipped:
                            self.skipped.append(url)
                        continue
                    if url in self.skipped:
                        self.skipped.remove(url)
                    self._visited.add(url)
                    self._in_flight += 1
                    return url, depth

                if self._in_flight == 0:
                    return None
                await self._condition.wait()

    async def complete(self, page: Optional[CrawledPage]) -> None:
        """Record a claimed URL's outcome and enqueue its internal links."""
        async with self._condition:
            self._in_flight -= 1
            if page is not None:
                self.pages.append(page)
                if page.error is None:
                    for link in page.internal_links:
                        link = normalize_url(link)
                        if link not in self._visited:
                            self.seed(link, page.depth + 1)
            self._condition.notify_all()

    def leftovers(self) -> List[str]:
        """Queued URLs that were never visited."""
        return list(dict.fromkeys(
            url for url, _ in self._queue if url not in self._visited
        ))


class SiteCrawler:
    """
    Crawl a site and score every page.

    Usage:
        crawler = SiteCrawler(CrawlOptions(max_pages=50))
        result = await crawler.crawl("https://example.com")
    """

    def __init__(
        self,
        options: Optional[CrawlOptions] = None,
        fetcher: Optional[SafeFetcher] = None,
        rules: Optional[List[RuleDefinition]] = None,
        thresholds: Optional[AnalysisThresholds] = None,
        politeness: Optional[PolitenessPolicy] = None,
    ):
        """
        Initialize the crawler.

        Args:
            options: Crawl options
            fetcher: Fetcher to use; one is created (and closed) per crawl if omitted
            rules: Rule list for page validation (defaults to DEFAULT_RULES)
            thresholds: Analysis thresholds
            politeness: Delay policy (built from options.delay if omitted)
        """
        self.options = options or CrawlOptions()
        self.rules = rules
        self.thresholds = thresholds or default_thresholds
        self.politeness = politeness or PolitenessPolicy(self.options.delay_seconds)
        self._fetcher = fetcher

    async def crawl(self, start_url: str) -> CrawlResult:
        """
        Crawl a site starting from a URL.

        Args:
            start_url: Absolute http(s) URL to start from

        Returns:
            CrawlResult with per-page results and cross-page analysis

        Raises:
            BlockedAddress: If the start URL is not a public http(s) URL
        """
        started = time.monotonic()
        validate_public_url(start_url)

        start = normalize_url(start_url)
        start_parts = urlsplit(start)
        domain = start_parts.hostname or ""

        logger.info(f"Starting site crawl from: {start}")
        logger.info(
            f"Max pages: {self.options.max_pages}, max depth: {self.options.max_depth}, "
            f"concurrency: {self.options.concurrency}, delay: {self.options.delay}ms"
        )

        fetcher = self._fetcher or SafeFetcher(
            timeout=self.options.timeout_seconds,
            user_agent=self.options.user_agent,
        )
        try:
            robots = await self._load_robots(fetcher, start)
            sitemap = await self._load_sitemap(fetcher, start, robots)

            frontier = Frontier(self.options.max_pages, self.options.max_depth)
            frontier.seed(start, 0)
            if sitemap is not None and sitemap.found:
                seeded = 0
                for entry in sitemap.urls:
                    rewritten = rewrite_to_same_domain(entry.loc, domain, start_parts.scheme)
                    if rewritten and frontier.seed(normalize_url(rewritten), 1):
                        seeded += 1
                logger.info(f"Seeded {seeded} URLs from sitemap")

            worker_count = max(1, self.options.concurrency)
            await asyncio.gather(*(
                self._worker(i, worker_count, frontier, fetcher)
                for i in range(worker_count)
            ))

            pages = frontier.pages
            skipped = list(dict.fromkeys(frontier.skipped + frontier.leftovers()))

            analyzer = CrawlAnalyzer(
                fetcher,
                ignore_patterns=self.options.ignore_patterns,
                thresholds=self.thresholds,
                check_external_links=self.options.check_external_links,
                check_images=self.options.check_images,
            )
            analysis = await analyzer.analyze(pages, sitemap=sitemap, robots=robots)
        finally:
            if self._fetcher is None:
                await fetcher.aclose()

        apply_cross_page_penalties(pages, analysis)

        valid = [page for page in pages if page.error is None]
        average = sum(page.validation.score for page in valid) / len(valid) if valid else 0
        average_score = int(math.floor(average + 0.5))

        result = CrawlResult(
            start_url=start_url,
            domain=domain,
            pages=pages,
            total_pages=len(valid),
            average_score=average_score,
            grade=score_to_grade(average_score),
            total_errors=sum(len(page.validation.errors) for page in valid),
            total_warnings=sum(len(page.validation.warnings) for page in valid),
            passed_pages=sum(1 for page in valid if not page.validation.errors),
            critical_errors=sum(page.validation.critical_errors for page in valid),
            optional_errors=sum(page.validation.optional_errors for page in valid),
            skipped_urls=skipped,
            duration_ms=int((time.monotonic() - started) * 1000),
            analysis=analysis,
        )

        logger.info(
            f"Crawl complete! Processed {len(pages)} pages "
            f"({len(pages) - len(valid)} failed), score {result.average_score} ({result.grade})"
        )
        return result

    async def _load_robots(self, fetcher: SafeFetcher, start: str) -> Optional[RobotsResult]:
        if not self.options.check_robots:
            return None
        robots = await fetch_robots(fetcher, start)
        for warning in robots.warnings:
            logger.warning(warning)
        return robots

    async def _load_sitemap(
        self,
        fetcher: SafeFetcher,
        start: str,
        robots: Optional[RobotsResult],
    ) -> Optional[SitemapResult]:
        if not self.options.use_sitemap:
            return None
        path = DEFAULT_SITEMAP_PATH
        if robots is not None and robots.sitemap_urls:
            path = robots.sitemap_urls[0]
        sitemap = await fetch_sitemap(fetcher, start, path)
        if not sitemap.found:
            logger.info(f"No sitemap at {sitemap.url}, following links only")
        return sitemap

    async def _worker(
        self,
        worker_index: int,
        worker_count: int,
        frontier: Frontier,
        fetcher: SafeFetcher,
    ) -> None:
        await self.politeness.wait_stagger(worker_index, worker_count)

        while True:
            item = await frontier.claim()
            if item is None:
                return

            url, depth = item
            page = None
            try:
                page = await self._fetch_with_retries(fetcher, url, depth)
            finally:
                await frontier.complete(page)

            logger.info(
                f"[{frontier.visited_count}/{self.options.max_pages}] {url} "
                f"-> {page.error or page.validation.score}"
            )
            if self.options.on_page_crawled is not None:
                self.options.on_page_crawled(page)

            await self.politeness.wait_after_fetch()

    async def _fetch_with_retries(self, fetcher: SafeFetcher, url: str, depth: int) -> CrawledPage:
        page = await self._crawl_page(fetcher, url, depth)
        for attempt in range(1, self.options.retries + 1):
            if page.status not in RETRYABLE_STATUS_CODES:
                break
            logger.info(f"HTTP {page.status} for {url}, retry {attempt}/{self.options.retries}")
            await self.politeness.wait_backoff(attempt)
            page = await self._crawl_page(fetcher, url, depth)
        return page

    async def _crawl_page(self, fetcher: SafeFetcher, url: str, depth: int) -> CrawledPage:
        """Fetch, extract and score a single page."""
        started = time.monotonic()
        try:
            response = await fetcher.fetch(
                url, headers=_PAGE_HEADERS, timeout=self.options.timeout_seconds
            )
        except SafeFetchError as e:
            logger.warning(f"Refused {url}: {e}")
            return CrawledPage.failed(url, depth, str(e))
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch {url}: {e!r}")
            return CrawledPage.failed(url, depth, str(e) or type(e).__name__)

        response_time_ms = int((time.monotonic() - started) * 1000)
        redirect_chain = [
            f"{hop.status_code} → {urljoin(str(hop.url), hop.headers['location'])}"
            for hop in response.history
        ]

        if not response.is_success:
            return CrawledPage.failed(
                url, depth,
                f"HTTP {response.status_code} {response.reason_phrase}",
                status=response.status_code,
                response_time_ms=response_time_ms,
                redirect_chain=redirect_chain,
            )

        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type.lower():
            return CrawledPage.failed(
                url, depth,
                f"{NOT_HTML_PREFIX} ({content_type})",
                status=response.status_code,
                response_time_ms=response_time_ms,
                redirect_chain=redirect_chain,
            )

        html = response.text
        final_url = str(response.url)

        metadata = extract_metadata_from_html(html)
        h1s = extract_h1s(html)
        word_count = extract_word_count(html)
        metadata.h1s = h1s
        metadata.word_count = word_count

        validation = validate_metadata(
            metadata,
            strict=self.options.strict,
            disabled_rules=self.options.disabled_rules,
            rules=self.rules,
        )

        images = metadata.images or []
        return CrawledPage(
            url=url,
            status=response.status_code,
            metadata=metadata,
            validation=validation,
            internal_links=extract_internal_links(html, final_url),
            external_links=extract_external_links(html, final_url),
            depth=depth,
            h1s=h1s,
            word_count=word_count,
            response_time_ms=response_time_ms,
            redirect_chain=redirect_chain,
            structured_data_types=extract_structured_data_types(metadata.structured_data),
            is_app_page=detect_app_page(final_url, html, word_count, self.thresholds),
            images_total=len(images),
            images_missing_alt=sum(1 for image in images if not (image.alt or "").strip()),
        )


async def crawl_site(
    start_url: str,
    options: Optional[CrawlOptions] = None,
    fetcher: Optional[SafeFetcher] = None,
    **overrides,
) -> CrawlResult:
    """
    Crawl a site with a one-off SiteCrawler.

    Args:
        start_url: Absolute http(s) URL to start from
        options: Crawl options (defaults to CrawlOptions())
        fetcher: Optional fetcher to reuse
        **overrides: CrawlOptions fields to override, e.g. max_pages=20

    Returns:
        CrawlResult
    """
    options = dataclasses.replace(options or CrawlOptions(), **overrides)
    return await SiteCrawler(options, fetcher=fetcher).crawl(start_url)
