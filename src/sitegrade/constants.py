# src/sitegrade/constants.py
"""Centralized constants for the site auditor.

This module contains magic numbers and fixed tables that are used across
multiple modules. For user-configurable values, see config.py
(CrawlOptions and AnalysisThresholds).
"""

# =============================================================================
# Crawler Constants
# =============================================================================

# Default maximum number of pages to crawl
DEFAULT_MAX_PAGES = 500

# Default maximum link depth from the start URL
DEFAULT_MAX_DEPTH = 5

# Default politeness delay between requests (milliseconds)
DEFAULT_DELAY_MS = 500

# Default number of crawl workers
DEFAULT_CONCURRENCY = 1

# Default retries on throttling responses
DEFAULT_RETRIES = 2

# Default request timeout (milliseconds)
DEFAULT_TIMEOUT_MS = 15000

# Jitter added to the politeness delay, as a fraction of the delay
POLITENESS_JITTER_RATIO = 0.5

# Base for exponential backoff calculation
EXPONENTIAL_BACKOFF_BASE = 2

# HTTP status codes that are retried with backoff
RETRYABLE_STATUS_CODES = (429, 503)

# Default User-Agent for crawl requests
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SiteGrade/0.1; +https://github.com/sitegrade/sitegrade)"

# Browser User-Agent used for the GET fallback on bot-blocked links
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Accept header for page requests
HTML_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# File extensions that are never fetched as pages
ASSET_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico",
    ".css", ".js", ".mjs", ".woff", ".woff2", ".ttf", ".eot",
    ".pdf", ".zip", ".mp4", ".webm", ".mp3", ".xml", ".json",
)

# Error string prefix for non-HTML responses
NOT_HTML_PREFIX = "Not HTML"


# =============================================================================
# Safe Fetch Constants
# =============================================================================

# Redirect hops followed before giving up
MAX_REDIRECTS = 10

# Networks that must never be contacted (IPv4-mapped IPv6 forms are
# checked against the IPv4 entries)
BLOCKED_NETWORKS = (
    "127.0.0.0/8",      # Loopback
    "10.0.0.0/8",       # Private class A
    "172.16.0.0/12",    # Private class B
    "192.168.0.0/16",   # Private class C
    "169.254.0.0/16",   # Link-local (cloud metadata)
    "0.0.0.0/8",        # Current network
    "100.64.0.0/10",    # Shared address space
    "198.18.0.0/15",    # Benchmarking
    "::1/128",          # IPv6 loopback
    "fe80::/10",        # IPv6 link-local
    "fc00::/7",         # IPv6 unique local
)

# Hostnames that always point at internal services
BLOCKED_HOSTNAMES = (
    "localhost",
    "metadata.google.internal",
    "metadata",
    "kubernetes.default",
)

# Hostname suffixes of internal domains
BLOCKED_HOSTNAME_SUFFIXES = (".local", ".internal", ".corp", ".lan")


# =============================================================================
# Cross-Page Analysis Constants
# =============================================================================

# Concurrent HEAD requests per batch for link and image checks
LINK_CHECK_BATCH_SIZE = 10

# Timeout for a single link or asset check (seconds)
LINK_CHECK_TIMEOUT_SECONDS = 10.0

# Points removed from a page sharing its title with another page
DUPLICATE_TITLE_PENALTY = 5

# Points removed from a page sharing its description with another page
DUPLICATE_DESCRIPTION_PENALTY = 3


# =============================================================================
# Sitemap & Robots Constants
# =============================================================================

# Maximum nesting of sitemap index files
MAX_SITEMAP_DEPTH = 3

# Default sitemap location
DEFAULT_SITEMAP_PATH = "/sitemap.xml"

# Timeout for sitemap requests (seconds)
SITEMAP_TIMEOUT_SECONDS = 15.0

# Timeout for robots.txt requests (seconds)
ROBOTS_TIMEOUT_SECONDS = 10.0

SITEMAP_USER_AGENT = "SiteGrade/0.1 (SEO sitemap checker)"
ROBOTS_USER_AGENT = "SiteGrade/0.1 (SEO robots checker)"
ASSET_USER_AGENT = "SiteGrade/0.1 (SEO asset checker)"


# =============================================================================
# Scoring Constants
# =============================================================================

# Minimum score for each letter grade, highest first
GRADE_THRESHOLDS = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)

# Grade below the lowest threshold
FAILING_GRADE = "F"

# Share of a rule's weight earned by a warning
WARNING_CREDIT = 0.5
