"""Check that URLs referenced in page metadata actually respond."""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urljoin

import httpx

from sitegrade.constants import ASSET_USER_AGENT, LINK_CHECK_TIMEOUT_SECONDS
from sitegrade.models import AssetCheck, AssetCheckResult, AssetType, CrawledPage
from sitegrade.safe_fetch import SafeFetcher, SafeFetchError, gather_in_batches

logger = logging.getLogger(__name__)

__all__ = ["verify_assets", "AssetCheck", "AssetCheckResult"]

_IMAGE_ASSETS = ("og:image", "favicon", "structured-data-image")


def _resolve(url: str, base_url: str) -> Optional[str]:
    url = url.strip()
    if not url:
        return None
    try:
        return urljoin(base_url, url)
    except ValueError:
        return None


def _image_urls(value: Any) -> Iterable[str]:
    # schema.org image: a URL, an ImageObject, or a list of either
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict) and isinstance(value.get("url"), str):
        yield value["url"]
    elif isinstance(value, list):
        for item in value:
            yield from _image_urls(item)


def _collect_assets(pages: Iterable[CrawledPage]) -> Dict[str, AssetType]:
    assets: Dict[str, AssetType] = {}

    def add(url: Optional[str], base_url: str, asset_type: AssetType) -> None:
        resolved = _resolve(url, base_url) if url else None
        if resolved and resolved not in assets:
            assets[resolved] = asset_type

    for page in pages:
        metadata = page.metadata
        add(metadata.og_image, page.url, "og:image")
        add(metadata.favicon, page.url, "favicon")
        add(metadata.canonical, page.url, "canonical")
        for href in (metadata.alternates or {}).values():
            add(href, page.url, "alternate")
        for block in metadata.structured_data or []:
            if isinstance(block, dict):
                for image_url in _image_urls(block.get("image")):
                    add(image_url, page.url, "structured-data-image")

    return assets


async def _check_asset(
    fetcher: SafeFetcher,
    url: str,
    asset_type: AssetType,
    timeout: float,
    user_agent: str,
) -> AssetCheck:
    try:
        response = await fetcher.fetch(
            url, method="HEAD", headers={"User-Agent": user_agent}, timeout=timeout
        )
    except (SafeFetchError, httpx.HTTPError) as e:
        logger.debug(f"Asset check failed for {url}: {e!r}")
        return AssetCheck(url=url, type=asset_type, error=str(e) or type(e).__name__)

    content_type = response.headers.get("content-type")
    check = AssetCheck(
        url=url,
        type=asset_type,
        status=response.status_code,
        ok=response.is_success,
        content_type=content_type,
    )
    if (
        asset_type in _IMAGE_ASSETS
        and check.ok
        and content_type
        and not content_type.lower().startswith("image/")
    ):
        check.warning = f"Expected image content-type, got '{content_type}'"
    return check


async def verify_assets(
    fetcher: SafeFetcher,
    pages: List[CrawledPage],
    timeout: float = LINK_CHECK_TIMEOUT_SECONDS,
    user_agent: str = ASSET_USER_AGENT,
) -> AssetCheckResult:
    """
    Verify that assets referenced in page metadata are reachable.

    Collects og:image, favicon, canonical, hreflang and structured-data
    image URLs (resolved against each page URL, first reference wins) and
    HEAD-checks them in batches.

    Args:
        fetcher: Safe fetcher used for every check
        pages: Pages whose metadata is inspected; anything with ``url``
            and ``metadata`` attributes works
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header for the checks

    Returns:
        AssetCheckResult with one AssetCheck per unique URL
    """
    assets = _collect_assets(pages)
    logger.info(f"Verifying {len(assets)} assets")

    async def check(entry: Tuple[str, AssetType]) -> AssetCheck:
        url, asset_type = entry
        return await _check_asset(fetcher, url, asset_type, timeout, user_agent)

    checks = await gather_in_batches(assets.items(), check)

    return AssetCheckResult(
        checks=checks,
        total_checked=len(checks),
        total_ok=sum(1 for c in checks if c.ok),
        total_broken=sum(1 for c in checks if not c.ok),
        total_warnings=sum(1 for c in checks if c.warning),
    )
