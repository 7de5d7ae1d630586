"""SEO site auditor: crawl a site, score every page, report cross-page issues."""

__version__ = "0.1.0"

from sitegrade.config import AnalysisThresholds, CrawlOptions, settings
from sitegrade.safe_fetch import (
    SafeFetcher,
    SafeFetchError,
    BlockedAddress,
    TooManyRedirects,
    validate_public_url,
)
from sitegrade.html_parser import extract_metadata_from_html
from sitegrade.validate import validate_metadata, score_to_grade
from sitegrade.rules import DEFAULT_RULES
from sitegrade.site_crawler import SiteCrawler, crawl_site
from sitegrade.crawl_analyzer import CrawlAnalyzer, apply_cross_page_penalties
from sitegrade.sitemap_parser import fetch_sitemap, compare_sitemap
from sitegrade.robots_checker import fetch_robots, check_urls_against_robots
from sitegrade.asset_checker import verify_assets
from sitegrade.metadata import PageSEO, SiteConfig, create_metadata, define_seo
from sitegrade.json_ld import generate_ld
from sitegrade.models import (
    ResolvedMetadata,
    RuleDefinition,
    RuleCheck,
    ValidationResult,
    CrawledPage,
    CrawlAnalysis,
    CrawlResult,
)
from sitegrade.logging_config import setup_logging

__all__ = [
    "__version__",
    "settings",
    "CrawlOptions",
    "AnalysisThresholds",
    "SafeFetcher",
    "SafeFetchError",
    "BlockedAddress",
    "TooManyRedirects",
    "validate_public_url",
    "extract_metadata_from_html",
    "validate_metadata",
    "score_to_grade",
    "DEFAULT_RULES",
    "SiteCrawler",
    "crawl_site",
    "CrawlAnalyzer",
    "apply_cross_page_penalties",
    "fetch_sitemap",
    "compare_sitemap",
    "fetch_robots",
    "check_urls_against_robots",
    "verify_assets",
    "SiteConfig",
    "PageSEO",
    "define_seo",
    "create_metadata",
    "generate_ld",
    "ResolvedMetadata",
    "RuleDefinition",
    "RuleCheck",
    "ValidationResult",
    "CrawledPage",
    "CrawlAnalysis",
    "CrawlResult",
    "setup_logging",
]
