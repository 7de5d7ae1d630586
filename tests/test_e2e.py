# tests/test_e2e.py
"""End-to-end tests for the site audit pipeline."""

import json

import pytest

from sitegrade import CrawlOptions, crawl_site, validate_metadata
from fakes import DEFAULT_DESCRIPTION, page_html, unique_page

ROOT = "https://example.com/"
SHARED_TITLE = "Example Site: a well sized page title for page shared"


@pytest.fixture
def sample_site(site):
    """A three-page site with one broken link, one broken image and a duplicate title."""
    site.html(ROOT, unique_page(
        "home",
        links=["/about", "/blog", "/missing", "https://gone.example/"],
        extra_body='<img src="/hero.png" alt="Hero">',
    ))
    site.html("https://example.com/about", page_html(
        title=SHARED_TITLE,
        description=f"{DEFAULT_DESCRIPTION} about",
        links=["/"],
    ))
    site.html("https://example.com/blog", page_html(
        title=SHARED_TITLE,
        description=f"{DEFAULT_DESCRIPTION} blog",
        links=["/about"],
    ))
    return site


class TestFullCrawl:
    """End-to-end crawl of a small site."""

    @pytest.mark.asyncio
    async def test_summary(self, sample_site):
        """Test totals, penalties and cross-page findings."""
        progress = []
        options = CrawlOptions(delay=0, on_page_crawled=progress.append)

        async with sample_site.fetcher() as fetcher:
            result = await crawl_site(ROOT, options, fetcher=fetcher)

        assert len(result.pages) == 4
        assert len(progress) == 4
        assert result.total_pages == 3
        assert result.average_score == 97
        assert result.grade == "A"
        assert result.passed_pages == 1
        assert result.critical_errors == 2
        assert result.optional_errors == 0

        scores = {page.url: page.validation.score for page in result.pages if page.error is None}
        assert scores == {
            ROOT: 100,
            "https://example.com/about": 95,
            "https://example.com/blog": 95,
        }

        analysis = result.analysis
        assert analysis.duplicate_titles[0].urls == [
            "https://example.com/about",
            "https://example.com/blog",
        ]
        assert analysis.duplicate_descriptions == []
        assert [(b.to, b.status) for b in analysis.broken_internal_links] == [
            ("https://example.com/missing", 404)
        ]
        assert [(b.to, b.status) for b in analysis.broken_external_links] == [
            ("https://gone.example/", 404)
        ]
        assert [i.src for i in analysis.broken_images] == ["https://example.com/hero.png"]
        assert analysis.orphan_pages == []

    @pytest.mark.asyncio
    async def test_json_report(self, sample_site):
        """Test the JSON report consumed by CI gates."""
        async with sample_site.fetcher() as fetcher:
            result = await crawl_site(ROOT, CrawlOptions(delay=0), fetcher=fetcher)

        data = json.loads(result.to_json())

        assert data["score"] == 97
        assert data["totalPages"] == 3
        assert data["passedPages"] == 1
        assert data["criticalErrors"] == 2
        assert data["analysis"]["brokenInternalLinks"] == [
            {"from": ROOT, "to": "https://example.com/missing", "status": 404}
        ]
        assert data["analysis"]["externalLinksBlocked403"] == 0
        about = next(p for p in data["pages"] if p["url"] == "https://example.com/about")
        assert about["validation"]["errors"][0]["id"] == "unique-title"


class TestStaticValidation:
    """End-to-end validation of metadata that was never crawled."""

    def test_nested_metadata_report(self):
        """Test a nested metadata dict through to its JSON form."""
        result = validate_metadata({
            "title": "Example Site: a well sized page title for unit tests",
            "description": DEFAULT_DESCRIPTION,
            "openGraph": {"images": [{"url": "https://example.com/og.png"}]},
            "alternates": {"canonical": "https://example.com/"},
        })

        data = result.to_dict()

        assert data["grade"] == result.grade
        failed = {rule["id"] for rule in data["errors"]}
        assert failed == set()
        assert {rule["id"] for rule in data["warnings"]} >= {"og-title", "twitter-card"}
