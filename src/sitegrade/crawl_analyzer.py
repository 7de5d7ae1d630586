"""Cross-page analysis of a finished crawl.

Finds problems that no single page shows on its own: duplicated titles and
descriptions, broken links and images, orphan pages, thin content, and the
gaps between the crawl, the sitemap and robots.txt.
"""

import logging
import re
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

import httpx

from sitegrade.config import AnalysisThresholds, default_thresholds
from sitegrade.constants import (
    BROWSER_USER_AGENT,
    DUPLICATE_DESCRIPTION_PENALTY,
    DUPLICATE_TITLE_PENALTY,
    LINK_CHECK_TIMEOUT_SECONDS,
    NOT_HTML_PREFIX,
)
from sitegrade.html_parser import normalize_url
from sitegrade.models import (
    BrokenImage,
    BrokenLink,
    CrawlAnalysis,
    CrawledPage,
    DuplicateDescription,
    DuplicateTitle,
    H1Issue,
    ImageAltIssue,
    InlinkCount,
    RedirectRecord,
    RobotsBlockedPage,
    RobotsResult,
    SitemapResult,
    SlowPage,
    StructuredDataCount,
    ThinContentPage,
    ValidationRule,
)
from sitegrade.robots_checker import check_urls_against_robots
from sitegrade.safe_fetch import SafeFetcher, SafeFetchError, gather_in_batches
from sitegrade.sitemap_parser import compare_sitemap
from sitegrade.validate import score_to_grade

logger = logging.getLogger(__name__)

_FALLBACK_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,*/*",
}


def path_matches_glob(path: str, pattern: str) -> bool:
    """Match a URL path against an ignore glob.

    ``*`` matches within one path segment and ``**`` across segments. The
    whole path must match.
    """
    regex = []
    for i, chunk in enumerate(pattern.split("**")):
        if i:
            regex.append(".*")
        regex.append("[^/]*".join(re.escape(part) for part in chunk.split("*")))
    return re.fullmatch("".join(regex), path) is not None


def _error_text(error: Exception) -> str:
    return str(error) or type(error).__name__


class CrawlAnalyzer:
    """
    Compute a CrawlAnalysis from crawled pages.

    Link and image checks go out through the fetcher in batches; everything
    else is computed from the page records.
    """

    def __init__(
        self,
        fetcher: SafeFetcher,
        ignore_patterns: Optional[List[str]] = None,
        thresholds: Optional[AnalysisThresholds] = None,
        check_external_links: bool = True,
        check_images: bool = True,
    ):
        """
        Initialize the analyzer.

        Args:
            fetcher: Fetcher for external link and image checks
            ignore_patterns: Path globs excluded from analysis, e.g. "/app/**"
            thresholds: Analysis thresholds
            check_external_links: HEAD-check external links
            check_images: HEAD-check image sources
        """
        self.fetcher = fetcher
        self.ignore_patterns = list(ignore_patterns or [])
        self.thresholds = thresholds or default_thresholds
        self.check_external_links = check_external_links
        self.check_images = check_images

    def _is_ignored(self, url: str) -> bool:
        if not self.ignore_patterns:
            return False
        try:
            path = urlsplit(url).path
        except ValueError:
            return False
        return any(path_matches_glob(path, pattern) for pattern in self.ignore_patterns)

    async def analyze(
        self,
        pages: List[CrawledPage],
        sitemap: Optional[SitemapResult] = None,
        robots: Optional[RobotsResult] = None,
    ) -> CrawlAnalysis:
        """
        Analyze crawled pages.

        Args:
            pages: All crawled pages, errored ones included
            sitemap: Sitemap fetched for the crawl, if any
            robots: robots.txt fetched for the crawl, if any

        Returns:
            CrawlAnalysis
        """
        valid = [p for p in pages if p.error is None and not self._is_ignored(p.url)]
        logger.info(f"Analyzing {len(valid)} pages ({len(pages) - len(valid)} excluded)")

        analysis = CrawlAnalysis(
            duplicate_titles=[
                DuplicateTitle(title=text, urls=urls)
                for text, urls in self._duplicates(valid, "title")
            ],
            duplicate_descriptions=[
                DuplicateDescription(description=text, urls=urls)
                for text, urls in self._duplicates(valid, "description")
            ],
            h1_issues=self._h1_issues(valid),
            redirects=[
                RedirectRecord(url=p.url, chain=list(p.redirect_chain))
                for p in pages if p.redirect_chain
            ],
            thin_content_pages=sorted(
                (
                    ThinContentPage(url=p.url, word_count=p.word_count, is_app_page=p.is_app_page)
                    for p in valid if p.word_count < self.thresholds.thin_content_words
                ),
                key=lambda row: row.word_count,
            ),
            slowest_pages=[
                SlowPage(url=p.url, response_time_ms=p.response_time_ms)
                for p in sorted(valid, key=lambda p: p.response_time_ms, reverse=True)
            ][:self.thresholds.slowest_pages_count],
            image_alt_issues=[
                ImageAltIssue(url=p.url, total=p.images_total, missing_alt=p.images_missing_alt)
                for p in valid if p.images_total > 0 and p.images_missing_alt > 0
            ],
        )

        self._find_broken_internal_links(pages, valid, analysis)
        self._build_link_graph(valid, analysis)

        type_counts = Counter(t for p in valid for t in p.structured_data_types)
        analysis.structured_data_summary = [
            StructuredDataCount(schema_type=t, count=count)
            for t, count in type_counts.most_common()
        ]

        if self.check_external_links:
            await self._find_broken_external_links(valid, analysis)
        if self.check_images:
            await self._find_broken_images(valid, analysis)

        crawled = [p.url for p in pages if p.error is None]
        if sitemap is not None and sitemap.found:
            analysis.sitemap_comparison = compare_sitemap(
                [entry.loc for entry in sitemap.urls], crawled
            )
        if robots is not None and robots.found:
            analysis.robots_blocked_pages = [
                RobotsBlockedPage(url=check.url, blocked_by=check.blocked_by)
                for check in check_urls_against_robots(robots.directives, crawled)
                if check.blocked
            ]

        return analysis

    @staticmethod
    def _duplicates(pages: List[CrawledPage], field_name: str) -> List[Tuple[str, List[str]]]:
        groups: Dict[str, List[str]] = defaultdict(list)
        for page in pages:
            text = (getattr(page.metadata, field_name) or "").strip()
            if text:
                groups[text].append(page.url)
        return [(text, urls) for text, urls in groups.items() if len(urls) > 1]

    @staticmethod
    def _h1_issues(pages: List[CrawledPage]) -> List[H1Issue]:
        issues = []
        for page in pages:
            if not page.h1s:
                issues.append(H1Issue(url=page.url, issue="missing", count=0))
            elif len(page.h1s) > 1:
                issues.append(H1Issue(url=page.url, issue="multiple", count=len(page.h1s)))
        return issues

    @staticmethod
    def _find_broken_internal_links(
        pages: List[CrawledPage],
        valid: List[CrawledPage],
        analysis: CrawlAnalysis,
    ) -> None:
        errored = {p.url: p for p in pages if p.error is not None}
        non_html: Dict[str, None] = {}

        for page in valid:
            for link in page.internal_links:
                target = errored.get(normalize_url(link))
                if target is None:
                    continue
                if target.error.startswith(NOT_HTML_PREFIX):
                    non_html[target.url] = None
                else:
                    analysis.broken_internal_links.append(BrokenLink(
                        from_url=page.url,
                        to=target.url,
                        status=target.status or target.error,
                    ))

        analysis.non_html_internal_resources = list(non_html)

    @staticmethod
    def _build_link_graph(valid: List[CrawledPage], analysis: CrawlAnalysis) -> None:
        inlinks: Counter = Counter()
        for page in valid:
            for link in page.internal_links:
                target = normalize_url(link)
                if target != page.url:
                    inlinks[target] += 1

        analysis.internal_link_graph = [
            InlinkCount(url=url, inlinks=count) for url, count in inlinks.most_common()
        ]
        analysis.orphan_pages = [
            page.url for page in valid if page.depth > 0 and page.url not in inlinks
        ]

    async def _get_succeeds(self, url: str) -> bool:
        try:
            response = await self.fetcher.fetch(
                url, headers=_FALLBACK_HEADERS, timeout=LINK_CHECK_TIMEOUT_SECONDS
            )
        except (SafeFetchError, httpx.HTTPError) as e:
            logger.debug(f"GET fallback failed for {url}: {_error_text(e)}")
            return False
        return response.is_success

    async def _check_external_link(
        self, entry: Tuple[str, List[str]]
    ) -> Tuple[List[BrokenLink], int]:
        url, sources = entry
        try:
            response = await self.fetcher.fetch(
                url, method="HEAD", timeout=LINK_CHECK_TIMEOUT_SECONDS
            )
        except (SafeFetchError, httpx.HTTPError) as e:
            logger.debug(f"External link check failed for {url}: {_error_text(e)}")
            return [BrokenLink(from_url=s, to=url, status=_error_text(e)) for s in sources], 0

        if response.is_success:
            return [], 0

        # Many servers reject HEAD or bot user agents
        if response.status_code in (403, 405) and await self._get_succeeds(url):
            return [], 0

        if response.status_code == 403:
            return [], 1

        logger.debug(f"External link {url} returned HTTP {response.status_code}")
        return [
            BrokenLink(from_url=s, to=url, status=response.status_code) for s in sources
        ], 0

    async def _find_broken_external_links(
        self, valid: List[CrawledPage], analysis: CrawlAnalysis
    ) -> None:
        sources: Dict[str, List[str]] = defaultdict(list)
        for page in valid:
            for link in page.external_links:
                sources[link].append(page.url)

        if not sources:
            return
        logger.info(f"Checking {len(sources)} external links")

        results = await gather_in_batches(sources.items(), self._check_external_link)
        for broken, blocked in results:
            analysis.broken_external_links.extend(broken)
            analysis.external_links_blocked_403 += blocked

    async def _check_image(self, entry: Tuple[str, List[str]]) -> Optional[BrokenImage]:
        src, page_urls = entry
        try:
            response = await self.fetcher.fetch(
                src, method="HEAD", timeout=LINK_CHECK_TIMEOUT_SECONDS
            )
        except (SafeFetchError, httpx.HTTPError) as e:
            logger.debug(f"Image check failed for {src}: {_error_text(e)}")
            return BrokenImage(src=src, pages=page_urls, status=_error_text(e))

        if response.is_success:
            return None
        return BrokenImage(src=src, pages=page_urls, status=response.status_code)

    async def _find_broken_images(
        self, valid: List[CrawledPage], analysis: CrawlAnalysis
    ) -> None:
        sources: Dict[str, List[str]] = defaultdict(list)
        for page in valid:
            for image in page.metadata.images or []:
                if image.src.startswith("data:"):
                    continue
                try:
                    resolved = urljoin(page.url, image.src)
                except ValueError:
                    continue
                if page.url not in sources[resolved]:
                    sources[resolved].append(page.url)

        if not sources:
            return
        logger.info(f"Checking {len(sources)} images")

        results = await gather_in_batches(sources.items(), self._check_image)
        analysis.broken_images = [row for row in results if row is not None]


def apply_cross_page_penalties(pages: List[CrawledPage], analysis: CrawlAnalysis) -> None:
    """
    Deduct points from pages that share a title or description.

    Pages in a duplicate-title group lose DUPLICATE_TITLE_PENALTY points and
    get a critical ``unique-title`` error; pages in a duplicate-description
    group lose DUPLICATE_DESCRIPTION_PENALTY points and get a
    ``unique-description`` warning. Scores never drop below zero and grades
    are recomputed. Errored pages are left alone.
    """
    duplicate_titles = {url for group in analysis.duplicate_titles for url in group.urls}
    duplicate_descriptions = {
        url for group in analysis.duplicate_descriptions for url in group.urls
    }

    for page in pages:
        if page.error is not None:
            continue
        validation = page.validation

        if page.url in duplicate_titles:
            validation.score = max(0, validation.score - DUPLICATE_TITLE_PENALTY)
            validation.errors.append(ValidationRule(
                id="unique-title",
                name="Unique Title",
                description="Each page should have a unique title",
                weight=0,
                severity="critical",
                status="error",
                message="Duplicate title found on multiple pages",
                value=page.metadata.title,
            ))

        if page.url in duplicate_descriptions:
            validation.score = max(0, validation.score - DUPLICATE_DESCRIPTION_PENALTY)
            validation.warnings.append(ValidationRule(
                id="unique-description",
                name="Unique Description",
                description="Each page should have a unique meta description",
                weight=0,
                severity="optional",
                status="warn",
                message="Duplicate description found on multiple pages",
                value=page.metadata.description,
            ))

        validation.grade = score_to_grade(validation.score)
