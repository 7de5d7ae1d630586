"""Tests for metadata asset verification."""

import httpx
import pytest

from sitegrade.asset_checker import verify_assets
from sitegrade.models import CrawledPage, ResolvedMetadata


def page_with(url: str, **metadata) -> CrawledPage:
    return CrawledPage(url=url, status=200, metadata=ResolvedMetadata(**metadata))


class TestVerifyAssets:
    """Test cases for verify_assets."""

    @pytest.mark.asyncio
    async def test_collects_and_checks_assets(self, site):
        """Test every metadata asset type is resolved and HEAD-checked."""
        site.add("https://example.com/og.png", content_type="image/png")
        site.add("https://example.com/favicon.ico", content_type="image/x-icon")
        site.add("https://example.com/")
        site.add("https://example.com/de")
        site.add("https://cdn.example.com/logo.png", content_type="image/png")
        pages = [page_with(
            "https://example.com/",
            og_image="/og.png",
            favicon="favicon.ico",
            canonical="https://example.com/",
            alternates={"de": "/de"},
            structured_data=[
                {"@type": "Organization", "image": {"url": "https://cdn.example.com/logo.png"}},
                {"@type": "Article", "image": ["/og.png", "/missing.png"]},
                "not-a-dict",
            ],
        )]

        async with site.fetcher() as fetcher:
            result = await verify_assets(fetcher, pages)

        checks = {check.url: check for check in result.checks}
        assert {url: check.type for url, check in checks.items()} == {
            "https://example.com/og.png": "og:image",
            "https://example.com/favicon.ico": "favicon",
            "https://example.com/": "canonical",
            "https://example.com/de": "alternate",
            "https://cdn.example.com/logo.png": "structured-data-image",
            "https://example.com/missing.png": "structured-data-image",
        }
        assert checks["https://example.com/missing.png"].status == 404
        assert checks["https://example.com/missing.png"].ok is False
        assert result.total_checked == 6
        assert result.total_ok == 5
        assert result.total_broken == 1
        assert all(r.method == "HEAD" for r in site.requests)

    @pytest.mark.asyncio
    async def test_first_reference_wins(self, site):
        """Test a URL used twice is checked once, under its first type."""
        site.add("https://example.com/shared.png", content_type="image/png")
        pages = [
            page_with("https://example.com/a", og_image="/shared.png"),
            page_with("https://example.com/b", favicon="https://example.com/shared.png"),
        ]

        async with site.fetcher() as fetcher:
            result = await verify_assets(fetcher, pages)

        assert [(c.url, c.type) for c in result.checks] == [
            ("https://example.com/shared.png", "og:image")
        ]
        assert len(site.requests) == 1

    @pytest.mark.asyncio
    async def test_image_content_type_warning(self, site):
        """Test image assets served as HTML get a warning but stay ok."""
        site.add("https://example.com/og.png", content_type="text/html")

        async with site.fetcher() as fetcher:
            result = await verify_assets(fetcher, [page_with("https://example.com/", og_image="/og.png")])

        check = result.checks[0]
        assert check.ok is True
        assert check.warning == "Expected image content-type, got 'text/html'"
        assert result.total_warnings == 1

    @pytest.mark.asyncio
    async def test_canonical_html_is_not_warned(self, site):
        """Test non-image assets skip the content-type check."""
        site.add("https://example.com/", content_type="text/html")

        async with site.fetcher() as fetcher:
            result = await verify_assets(
                fetcher, [page_with("https://example.com/", canonical="https://example.com/")]
            )

        assert result.checks[0].warning is None

    @pytest.mark.asyncio
    async def test_failures_recorded(self, site):
        """Test transport errors and blocked targets become failed checks."""
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        site.handle("https://example.com/og.png", refuse)
        pages = [page_with(
            "https://example.com/",
            og_image="/og.png",
            favicon="http://169.254.169.254/favicon.ico",
        )]

        async with site.fetcher() as fetcher:
            result = await verify_assets(fetcher, pages)

        og, favicon = result.checks
        assert (og.status, og.ok, og.error) == (0, False, "connection refused")
        assert favicon.ok is False
        assert favicon.error.startswith("Blocked")
        assert result.total_broken == 2

    @pytest.mark.asyncio
    async def test_no_assets(self, site):
        """Test pages without metadata assets."""
        async with site.fetcher() as fetcher:
            result = await verify_assets(fetcher, [page_with("https://example.com/")])

        assert result.checks == []
        assert result.total_checked == 0
