"""Data models for site audits."""

import json
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Callable, Dict, List, Literal, Optional, Union

RuleStatus = Literal["pass", "warn", "error"]
RuleSeverity = Literal["critical", "optional"]
Grade = Literal["A", "B", "C", "D", "F"]


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_json_dict(obj: Any) -> Any:
    """Convert a model tree into JSON-ready structures.

    Dataclass field names become camelCase keys (or the ``json`` name in the
    field metadata). Plain dict keys are left untouched so that user content
    such as hreflang locales and JSON-LD objects is emitted verbatim.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        result = {}
        for f in fields(obj):
            if f.metadata.get("exclude"):
                continue
            key = f.metadata.get("json", _camel_case(f.name))
            result[key] = to_json_dict(getattr(obj, f.name))
        return result
    if isinstance(obj, (list, tuple)):
        return [to_json_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {key: to_json_dict(value) for key, value in obj.items()}
    return obj


# ============================================================================
# Metadata & Validation Models
# ============================================================================

@dataclass
class ImageRef:
    """An <img> found on a page."""

    src: str
    alt: Optional[str] = None  # None when the attribute is absent


_METADATA_KEYS = {
    "title": "title",
    "description": "description",
    "canonical": "canonical",
    "ogTitle": "og_title",
    "ogDescription": "og_description",
    "ogImage": "og_image",
    "ogType": "og_type",
    "twitterCard": "twitter_card",
    "twitterTitle": "twitter_title",
    "twitterDescription": "twitter_description",
    "robots": "robots",
    "alternates": "alternates",
    "structuredData": "structured_data",
    "viewport": "viewport",
    "favicon": "favicon",
    "images": "images",
    "h1s": "h1s",
    "wordCount": "word_count",
}


@dataclass
class ResolvedMetadata:
    """Flat SEO metadata record that every validation rule reads.

    ``None`` means the field was never found or never collected, which
    rules treat differently from an empty value.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    canonical: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    og_type: Optional[str] = None
    twitter_card: Optional[str] = None
    twitter_title: Optional[str] = None
    twitter_description: Optional[str] = None
    robots: Optional[str] = None
    alternates: Optional[Dict[str, str]] = None  # locale -> URL
    structured_data: Optional[List[Any]] = None  # parsed JSON-LD blocks
    viewport: Optional[str] = None
    favicon: Optional[str] = None
    images: Optional[List[ImageRef]] = None

    # Crawl-only signals (absent in static analysis)
    h1s: Optional[List[str]] = None
    word_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResolvedMetadata":
        """Build from a flat dict using camelCase or snake_case keys."""
        values: Dict[str, Any] = {}
        snake_names = set(_METADATA_KEYS.values())
        for key, value in data.items():
            name = _METADATA_KEYS.get(key, key)
            if name in snake_names:
                values[name] = value

        images = values.get("images")
        if images is not None:
            values["images"] = [
                img if isinstance(img, ImageRef)
                else ImageRef(src=img.get("src", ""), alt=img.get("alt"))
                for img in images
            ]
        return cls(**values)


@dataclass
class RuleCheck:
    """Outcome of a single rule check."""

    status: RuleStatus
    message: Optional[str] = None
    value: Optional[Union[str, int]] = None
    expected: Optional[Union[str, int]] = None


@dataclass
class RuleDefinition:
    """A weighted, stateless validation rule."""

    id: str
    name: str
    description: str
    weight: int
    check: Callable[[ResolvedMetadata], RuleCheck]
    severity: RuleSeverity = "optional"


@dataclass
class ValidationRule:
    """A rule's identity merged with its outcome for one page."""

    id: str
    name: str
    description: str
    weight: int
    severity: RuleSeverity
    status: RuleStatus
    message: Optional[str] = None
    value: Optional[Union[str, int]] = None
    expected: Optional[Union[str, int]] = None


@dataclass
class ValidationResult:
    """Score, grade and rule outcomes for one page."""

    score: int = 0
    grade: Grade = "F"
    passed: List[ValidationRule] = field(default_factory=list)
    warnings: List[ValidationRule] = field(default_factory=list)
    errors: List[ValidationRule] = field(default_factory=list)

    @property
    def critical_errors(self) -> int:
        return sum(1 for rule in self.errors if rule.severity == "critical")

    @property
    def optional_errors(self) -> int:
        return sum(1 for rule in self.errors if rule.severity != "critical")

    def to_dict(self) -> dict:
        return to_json_dict(self)


# ============================================================================
# Crawl Models
# ============================================================================

@dataclass
class CrawledPage:
    """A single page visited during a crawl."""

    url: str
    status: int = 0
    metadata: ResolvedMetadata = field(default_factory=ResolvedMetadata)
    validation: ValidationResult = field(default_factory=ValidationResult)
    internal_links: List[str] = field(default_factory=list)
    external_links: List[str] = field(default_factory=list)
    depth: int = 0
    error: Optional[str] = None
    h1s: List[str] = field(default_factory=list)
    word_count: int = 0
    response_time_ms: int = 0
    redirect_chain: List[str] = field(default_factory=list)  # "301 → https://..."
    structured_data_types: List[str] = field(default_factory=list)
    is_app_page: bool = False
    images_total: int = 0
    images_missing_alt: int = 0

    @classmethod
    def failed(
        cls,
        url: str,
        depth: int,
        error: str,
        status: int = 0,
        response_time_ms: int = 0,
        redirect_chain: Optional[List[str]] = None,
    ) -> "CrawledPage":
        """Build a page record for a fetch that produced no usable HTML."""
        return cls(
            url=url,
            status=status,
            depth=depth,
            error=error,
            response_time_ms=response_time_ms,
            redirect_chain=redirect_chain or [],
        )


@dataclass
class DuplicateTitle:
    title: str
    urls: List[str] = field(default_factory=list)


@dataclass
class DuplicateDescription:
    description: str
    urls: List[str] = field(default_factory=list)


@dataclass
class H1Issue:
    url: str
    issue: Literal["missing", "multiple"]
    count: int


@dataclass
class BrokenLink:
    from_url: str = field(metadata={"json": "from"})
    to: str
    status: Union[int, str]


@dataclass
class RedirectRecord:
    url: str
    chain: List[str] = field(default_factory=list)


@dataclass
class ThinContentPage:
    url: str
    word_count: int
    is_app_page: bool


@dataclass
class InlinkCount:
    url: str
    inlinks: int


@dataclass
class SlowPage:
    url: str
    response_time_ms: int


@dataclass
class StructuredDataCount:
    schema_type: str = field(metadata={"json": "type"})
    count: int


@dataclass
class ImageAltIssue:
    url: str
    total: int
    missing_alt: int


@dataclass
class BrokenImage:
    src: str
    pages: List[str]
    status: Union[int, str]


@dataclass
class RobotsBlockedPage:
    url: str
    blocked_by: Optional[str] = None


# ============================================================================
# Sitemap & Robots Models
# ============================================================================

@dataclass
class SitemapUrl:
    """A <url> entry from a sitemap."""

    loc: str
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[str] = None


@dataclass
class SitemapResult:
    """Outcome of fetching a sitemap (and any nested sitemaps)."""

    url: str
    found: bool = False
    urls: List[SitemapUrl] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class SitemapComparison:
    """Sitemap URLs compared with the URLs a crawl actually reached."""

    in_both: List[str] = field(default_factory=list)
    in_sitemap_only: List[str] = field(default_factory=list)
    in_crawl_only: List[str] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)


@dataclass
class RobotsDirective:
    """One User-agent group from robots.txt."""

    user_agent: str
    allow: List[str] = field(default_factory=list)
    disallow: List[str] = field(default_factory=list)


@dataclass
class RobotsResult:
    """Parsed robots.txt plus findings."""

    url: str
    found: bool = False
    raw: str = ""
    directives: List[RobotsDirective] = field(default_factory=list)
    sitemap_urls: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class RobotsUrlCheck:
    url: str
    path: str
    blocked: bool = False
    blocked_by: Optional[str] = None


# ============================================================================
# Asset Models
# ============================================================================

AssetType = Literal["og:image", "favicon", "canonical", "alternate", "structured-data-image"]


@dataclass
class AssetCheck:
    """Reachability of one asset referenced from page metadata."""

    url: str
    type: AssetType
    status: int = 0
    ok: bool = False
    content_type: Optional[str] = None
    error: Optional[str] = None
    warning: Optional[str] = None  # image assets served with a non-image type


@dataclass
class AssetCheckResult:
    checks: List[AssetCheck] = field(default_factory=list)
    total_checked: int = 0
    total_ok: int = 0
    total_broken: int = 0
    total_warnings: int = 0


# ============================================================================
# Crawl Analysis Models
# ============================================================================

@dataclass
class CrawlAnalysis:
    """Cross-page findings computed once after a crawl."""

    duplicate_titles: List[DuplicateTitle] = field(default_factory=list)
    duplicate_descriptions: List[DuplicateDescription] = field(default_factory=list)
    h1_issues: List[H1Issue] = field(default_factory=list)
    broken_internal_links: List[BrokenLink] = field(default_factory=list)
    broken_external_links: List[BrokenLink] = field(default_factory=list)
    redirects: List[RedirectRecord] = field(default_factory=list)
    thin_content_pages: List[ThinContentPage] = field(default_factory=list)
    internal_link_graph: List[InlinkCount] = field(default_factory=list)
    orphan_pages: List[str] = field(default_factory=list)
    slowest_pages: List[SlowPage] = field(default_factory=list)
    structured_data_summary: List[StructuredDataCount] = field(default_factory=list)
    image_alt_issues: List[ImageAltIssue] = field(default_factory=list)
    broken_images: List[BrokenImage] = field(default_factory=list)
    external_links_blocked_403: int = field(default=0, metadata={"json": "externalLinksBlocked403"})
    non_html_internal_resources: List[str] = field(default_factory=list)
    sitemap_comparison: Optional[SitemapComparison] = None
    robots_blocked_pages: List[RobotsBlockedPage] = field(default_factory=list)


@dataclass
class CrawlResult:
    """Root output of a site crawl."""

    start_url: str
    domain: str
    pages: List[CrawledPage] = field(default_factory=list)
    total_pages: int = 0  # pages that produced HTML and a score
    average_score: int = 0
    grade: Grade = "F"
    total_errors: int = 0
    total_warnings: int = 0
    passed_pages: int = 0
    critical_errors: int = 0
    optional_errors: int = 0
    skipped_urls: List[str] = field(default_factory=list)
    duration_ms: int = 0
    analysis: CrawlAnalysis = field(default_factory=CrawlAnalysis)

    def to_dict(self) -> dict:
        """Serialize for CI and dashboard consumers.

        ``score`` mirrors ``averageScore`` and is the first key.
        """
        data = to_json_dict(self)
        return {"score": self.average_score, **data}

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
