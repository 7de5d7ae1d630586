"""Regex-based extraction of SEO signals from raw HTML.

Nothing here raises on malformed markup: a missing or broken element simply
yields ``None`` or an empty list.
"""

import json
import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

from sitegrade.models import ImageRef, ResolvedMetadata

logger = logging.getLogger(__name__)

# A start tag whose attribute values may contain '>'
_TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')*"""
_META_RE = re.compile(rf"<meta\b{_TAG_BODY}>", re.IGNORECASE)
_LINK_RE = re.compile(rf"<link\b{_TAG_BODY}>", re.IGNORECASE)
_IMG_RE = re.compile(rf"<img\b{_TAG_BODY}>", re.IGNORECASE)
_ANCHOR_RE = re.compile(rf"<a\b{_TAG_BODY}>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""([^\s"'<>/=]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))""")

_TITLE_RE = re.compile(r"<title\b[^>]*>([^<]+)</title>", re.IGNORECASE)
_LD_JSON_RE = re.compile(
    r"""<script\b[^>]*type=["']application/ld\+json["'][^>]*>([\s\S]*?)</script>""",
    re.IGNORECASE,
)
_H1_RE = re.compile(r"<h1\b[^>]*>([\s\S]*?)</h1>", re.IGNORECASE)
_MAIN_RE = re.compile(r"<main\b[^>]*>([\s\S]*?)</main>", re.IGNORECASE)
_STRIP_BLOCKS_RE = re.compile(
    r"<(script|style|noscript)\b[\s\S]*?</\1\s*>", re.IGNORECASE
)
_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&[^;\s]+;")

_FAVICON_RELS = ("icon", "shortcut icon")


def _iter_tags(pattern: re.Pattern, html: str) -> Iterator[Dict[str, str]]:
    for match in pattern.finditer(html):
        attrs: Dict[str, str] = {}
        for attr in _ATTR_RE.finditer(match.group(0)):
            name = attr.group(1).lower()
            if name in attrs:
                continue
            value = next(v for v in attr.groups()[1:] if v is not None)
            attrs[name] = value
        yield attrs


def _meta_content(html: str, attribute: str, key: str) -> Optional[str]:
    key = key.lower()
    for attrs in _iter_tags(_META_RE, html):
        if attrs.get(attribute, "").strip().lower() == key and "content" in attrs:
            return attrs["content"].strip() or None
    return None


def _link_href(html: str, rels: Tuple[str, ...]) -> Optional[str]:
    for attrs in _iter_tags(_LINK_RE, html):
        rel = " ".join(attrs.get("rel", "").lower().split())
        href = attrs.get("href", "").strip()
        if rel in rels and href:
            return href
    return None


def _extract_alternates(html: str) -> Dict[str, str]:
    alternates: Dict[str, str] = {}
    for attrs in _iter_tags(_LINK_RE, html):
        if attrs.get("rel", "").strip().lower() != "alternate":
            continue
        hreflang = attrs.get("hreflang", "").strip()
        href = attrs.get("href", "").strip()
        if hreflang and href:
            alternates[hreflang] = href
    return alternates


def _extract_structured_data(html: str) -> List[Any]:
    blocks = []
    for match in _LD_JSON_RE.finditer(html):
        try:
            blocks.append(json.loads(match.group(1)))
        except ValueError:
            logger.debug("Skipping invalid JSON-LD block")
    return blocks


def extract_metadata_from_html(html: str) -> ResolvedMetadata:
    """Extract SEO-relevant metadata from raw HTML.

    Args:
        html: Page HTML

    Returns:
        ResolvedMetadata with every field not found set to None. Crawl-only
        fields (h1s, word_count) are left for the caller to fill in.
    """
    title = None
    title_match = _TITLE_RE.search(html)
    if title_match:
        title = title_match.group(1).strip() or None

    alternates = _extract_alternates(html)
    structured_data = _extract_structured_data(html)
    images = extract_images(html)

    return ResolvedMetadata(
        title=title,
        description=_meta_content(html, "name", "description"),
        canonical=_link_href(html, ("canonical",)),
        og_title=_meta_content(html, "property", "og:title"),
        og_description=_meta_content(html, "property", "og:description"),
        og_image=_meta_content(html, "property", "og:image"),
        og_type=_meta_content(html, "property", "og:type"),
        twitter_card=_twitter_content(html, "twitter:card"),
        twitter_title=_twitter_content(html, "twitter:title"),
        twitter_description=_twitter_content(html, "twitter:description"),
        robots=_meta_content(html, "name", "robots"),
        alternates=alternates or None,
        structured_data=structured_data or None,
        viewport=_meta_content(html, "name", "viewport"),
        favicon=_link_href(html, _FAVICON_RELS),
        images=images or None,
    )


def _twitter_content(html: str, key: str) -> Optional[str]:
    # Sites publish Twitter tags under either attribute
    return _meta_content(html, "name", key) or _meta_content(html, "property", key)


def normalize_url(url: str) -> str:
    """Drop the fragment and strip a trailing slash (except on the root)."""
    parts = urlsplit(url)
    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


def _origin(parts) -> Tuple[str, Optional[str], Optional[int]]:
    scheme = parts.scheme.lower()
    port = parts.port or {"http": 80, "https": 443}.get(scheme)
    return scheme, parts.hostname, port


def _iter_hrefs(html: str, base_url: str) -> Iterator[Tuple[str, Any]]:
    for attrs in _iter_tags(_ANCHOR_RE, html):
        href = attrs.get("href", "").strip()
        if not href or href.startswith("#"):
            continue
        try:
            resolved = urljoin(base_url, href)
            parts = urlsplit(resolved)
            parts.port  # raises ValueError on a malformed port
        except ValueError:
            continue
        if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
            continue
        yield resolved, parts


def extract_internal_links(html: str, base_url: str) -> List[str]:
    """Extract same-origin links as normalized absolute URLs.

    Args:
        html: Page HTML
        base_url: URL the HTML was served from (after redirects)

    Returns:
        Deduplicated URLs in document order
    """
    base = _origin(urlsplit(base_url))
    links: Dict[str, None] = {}
    for resolved, parts in _iter_hrefs(html, base_url):
        if _origin(parts) == base:
            links[normalize_url(resolved)] = None
    return list(links)


def extract_external_links(html: str, base_url: str) -> List[str]:
    """Extract http(s) links to other origins, fragments dropped."""
    base = _origin(urlsplit(base_url))
    links: Dict[str, None] = {}
    for resolved, parts in _iter_hrefs(html, base_url):
        if _origin(parts) != base:
            links[urlunsplit(parts._replace(fragment=""))] = None
    return list(links)


def extract_images(html: str) -> List[ImageRef]:
    """Extract all <img> tags that have a src, with their alt attribute."""
    images = []
    for attrs in _iter_tags(_IMG_RE, html):
        src = attrs.get("src", "").strip()
        if not src:
            continue
        images.append(ImageRef(src=src, alt=attrs.get("alt")))
    return images


def extract_h1s(html: str) -> List[str]:
    """Extract the text of every <h1>, dropping empty headings."""
    h1s = []
    for match in _H1_RE.finditer(html):
        text = _ENTITY_RE.sub(" ", _TAG_RE.sub("", match.group(1))).strip()
        if text:
            h1s.append(text)
    return h1s


def extract_word_count(html: str) -> int:
    """Approximate the visible word count, preferring <main> content."""
    text = _STRIP_BLOCKS_RE.sub("", html)
    main_match = _MAIN_RE.search(text)
    if main_match:
        text = main_match.group(1)
    text = _TAG_RE.sub(" ", text)
    text = _ENTITY_RE.sub(" ", text)
    return len(text.split())


def count_script_tags(html: str) -> int:
    return len(re.findall(r"<script\b", html, re.IGNORECASE))


def _collect_types(node: Any, types: Dict[str, None]) -> None:
    if isinstance(node, list):
        for item in node:
            _collect_types(item, types)
        return
    if not isinstance(node, dict):
        return

    schema_type = node.get("@type")
    if isinstance(schema_type, str):
        types[schema_type] = None
    elif isinstance(schema_type, list):
        for value in schema_type:
            if isinstance(value, str):
                types[value] = None

    graph = node.get("@graph")
    if isinstance(graph, list):
        for item in graph:
            _collect_types(item, types)


def extract_structured_data_types(structured_data: Optional[List[Any]]) -> List[str]:
    """List the JSON-LD @type values, including @graph members.

    Returns:
        Unique types in first-seen order
    """
    if not structured_data:
        return []
    types: Dict[str, None] = {}
    _collect_types(structured_data, types)
    return list(types)
