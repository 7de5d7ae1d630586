"""Site-wide SEO configuration and per-page metadata generation.

``create_metadata`` produces the nested (Next.js-style) metadata dict that
``validate_metadata`` accepts, so a page can be built and graded with the
same rule set the crawler uses.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TWITTER_CARD_TYPES = ("summary", "summary_large_image")


@dataclass(frozen=True)
class TwitterConfig:
    handle: str
    card_type: str = "summary_large_image"


@dataclass(frozen=True)
class OrganizationConfig:
    name: str
    logo: str
    url: str


@dataclass(frozen=True)
class VerificationConfig:
    google: Optional[str] = None
    yandex: Optional[str] = None
    bing: Optional[str] = None


@dataclass(frozen=True)
class SiteConfig:
    """Global SEO settings for a site. Build it with ``define_seo``."""

    site_name: str
    site_url: str
    default_title: Optional[str] = None
    title_template: Optional[str] = None
    default_description: Optional[str] = None
    default_og_image: Optional[str] = None
    locale: Optional[str] = None
    twitter: Optional[TwitterConfig] = None
    organization: Optional[OrganizationConfig] = None
    verification: Optional[VerificationConfig] = None


@dataclass
class ArticleInfo:
    published_time: Optional[str] = None
    modified_time: Optional[str] = None
    author: Optional[str] = None
    section: Optional[str] = None
    tags: Optional[List[str]] = None


@dataclass
class PageSEO:
    """Per-page SEO input for ``create_metadata``.

    ``path`` is relative to the site URL. ``alternates`` maps a locale to a
    path, e.g. ``{"fr": "/fr/pricing"}``.
    """

    title: str
    description: str
    path: str
    og_image: Optional[str] = None
    noindex: bool = False
    canonical: Optional[str] = None
    alternates: Optional[Dict[str, str]] = None
    structured_data: List[Dict[str, Any]] = field(default_factory=list)
    article: Optional[ArticleInfo] = None


def define_seo(config: SiteConfig) -> SiteConfig:
    """Validate a site configuration and normalize its URL.

    Args:
        config: Site configuration

    Returns:
        A copy with trailing slashes stripped from ``site_url``

    Raises:
        ValueError: If ``site_name`` or ``site_url`` is empty, or the
            Twitter card type is unknown
    """
    if not config.site_name:
        raise ValueError("site_name is required in SEO config")
    if not config.site_url:
        raise ValueError("site_url is required in SEO config")
    if config.twitter and config.twitter.card_type not in TWITTER_CARD_TYPES:
        raise ValueError(f"Unsupported Twitter card type: {config.twitter.card_type}")

    return replace(config, site_url=config.site_url.rstrip("/"))


def build_title(title: str, template: Optional[str] = None) -> str:
    """Apply a ``%s`` title template, e.g. ``"%s | Example"``."""
    if not template:
        return title
    return template.replace("%s", title)


def resolve_url(url: str, site_url: str) -> str:
    """Make a site-relative URL absolute; absolute URLs pass through."""
    if re.match(r"https?://", url):
        return url
    return f"{site_url}{'' if url.startswith('/') else '/'}{url}"


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def create_metadata(page: PageSEO, config: Optional[SiteConfig] = None) -> Dict[str, Any]:
    """Build the nested metadata dict for one page.

    The canonical URL defaults to ``site_url + path``. The OG image falls
    back to the site's default image. Twitter tags are added only when the
    site has a Twitter configuration.

    Args:
        page: Page SEO input
        config: Optional site configuration

    Returns:
        Dict with ``title``, ``description``, ``alternates``, ``openGraph``
        and, when applicable, ``twitter``, ``robots`` and ``verification``
    """
    site_url = config.site_url.rstrip("/") if config else ""

    canonical = page.canonical or (f"{site_url}{page.path}" if site_url else page.path)
    og_image_url = page.og_image or (config.default_og_image if config else None)
    og_image = resolve_url(og_image_url, site_url) if og_image_url else None

    open_graph = _compact({
        "title": page.title,
        "description": page.description,
        "url": canonical,
        "siteName": config.site_name if config else None,
        "locale": config.locale if config else None,
        "type": "article" if page.article else "website",
    })
    if og_image:
        open_graph["images"] = [{"url": og_image, "alt": page.title}]
    if page.article:
        article = page.article
        open_graph["article"] = _compact({
            "publishedTime": article.published_time,
            "modifiedTime": article.modified_time,
            "authors": [article.author] if article.author else None,
            "section": article.section,
            "tags": article.tags,
        })

    alternates: Dict[str, Any] = {"canonical": canonical}
    if page.alternates:
        alternates["languages"] = {
            lang: f"{site_url}{path}" if site_url else path
            for lang, path in page.alternates.items()
        }

    metadata: Dict[str, Any] = {
        "title": build_title(page.title, config.title_template if config else None),
        "description": page.description,
        "alternates": alternates,
        "openGraph": open_graph,
    }

    if config and config.twitter:
        twitter = {
            "card": config.twitter.card_type,
            "title": page.title,
            "description": page.description,
            "creator": config.twitter.handle,
        }
        if og_image:
            twitter["images"] = [og_image]
        metadata["twitter"] = twitter

    if page.noindex:
        metadata["robots"] = {"index": False, "follow": True}

    if config and config.verification:
        verification: Dict[str, Any] = _compact({
            "google": config.verification.google,
            "yandex": config.verification.yandex,
        })
        if config.verification.bing:
            verification["other"] = {"msvalidate.01": config.verification.bing}
        metadata["verification"] = verification

    if page.structured_data:
        metadata["structuredData"] = list(page.structured_data)

    logger.debug(f"Created metadata for {canonical}")
    return metadata
