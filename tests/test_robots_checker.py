# tests/test_robots_checker.py
"""Tests for robots.txt parsing and URL checks."""

import pytest

from sitegrade.models import RobotsDirective
from sitegrade.robots_checker import (
    check_urls_against_robots,
    fetch_robots,
    parse_robots_txt,
    path_matches,
)

ROBOTS_TXT = """
# Example robots file
User-agent: *
Disallow: /admin/
Disallow: /private   # trailing comment
Allow: /admin/public/

User-agent: Googlebot
User-agent: Bingbot
Disallow: /no-search/

Sitemap: https://example.com/sitemap.xml
"""


class TestParseRobotsTxt:
    """Test suite for parse_robots_txt."""

    def test_groups_and_sitemaps(self):
        """Test directive groups, comments and Sitemap lines."""
        directives, sitemaps = parse_robots_txt(ROBOTS_TXT)

        assert [d.user_agent for d in directives] == ["*", "Googlebot", "Bingbot"]
        assert directives[0].disallow == ["/admin/", "/private"]
        assert directives[0].allow == ["/admin/public/"]
        assert directives[1].disallow == ["/no-search/"]
        assert directives[2].disallow == ["/no-search/"]
        assert sitemaps == ["https://example.com/sitemap.xml"]

    def test_rules_before_any_user_agent_ignored(self):
        """Test orphan rules outside a group."""
        directives, _ = parse_robots_txt("Disallow: /\nUser-agent: *\nAllow: /")

        assert len(directives) == 1
        assert directives[0].disallow == []
        assert directives[0].allow == ["/"]

    def test_empty_disallow(self):
        """Test an empty Disallow value allows everything."""
        directives, _ = parse_robots_txt("User-agent: *\nDisallow:")
        checks = check_urls_against_robots(directives, ["https://example.com/anything"])

        assert checks[0].blocked is False


class TestPathMatches:
    """Test suite for path_matches."""

    @pytest.mark.parametrize("path,pattern,expected", [
        ("/admin/users", "/admin/", True),
        ("/administrator", "/admin/", False),
        ("/file.pdf", "/*.pdf$", True),
        ("/file.pdf?x=1", "/*.pdf$", False),
        ("/docs/a/b/report.pdf", "/docs/*/report", True),
        ("/page", "/page$", True),
        ("/page/sub", "/page$", False),
        ("/a/b/c", "/*/c", True),
        ("/anything", "/", True),
        ("/anything", "", False),
        ("/ab", "/a*b*$", True),
    ])
    def test_patterns(self, path, pattern, expected):
        """Test prefix, wildcard and anchor matching."""
        assert path_matches(path, pattern) is expected


class TestCheckUrlsAgainstRobots:
    """Test suite for check_urls_against_robots."""

    @pytest.fixture
    def directives(self):
        """Directives parsed from the sample robots file."""
        return parse_robots_txt(ROBOTS_TXT)[0]

    def test_blocked_and_allowed(self, directives):
        """Test disallowed paths and the more specific Allow override."""
        checks = check_urls_against_robots(directives, [
            "https://example.com/admin/settings",
            "https://example.com/admin/public/help",
            "https://example.com/blog",
            "https://example.com/no-search/x",
        ])

        assert [c.blocked for c in checks] == [True, False, False, False]
        assert checks[0].blocked_by == "Disallow: /admin/ (User-agent: *)"
        assert checks[0].path == "/admin/settings"

    def test_named_agent_rules_apply(self, directives):
        """Test rules for a named agent combine with the * group."""
        checks = check_urls_against_robots(
            directives,
            ["https://example.com/no-search/x", "https://example.com/admin/"],
            user_agent="googlebot",
        )

        assert [c.blocked for c in checks] == [True, True]
        assert checks[0].blocked_by == "Disallow: /no-search/ (User-agent: Googlebot)"

    def test_allow_wins_ties(self):
        """Test equal-length Allow and Disallow rules."""
        directives = [RobotsDirective(user_agent="*", allow=["/page"], disallow=["/page"])]
        checks = check_urls_against_robots(directives, ["https://example.com/page"])

        assert checks[0].blocked is False

    def test_root_path(self):
        """Test a URL without a path is checked as '/'."""
        directives = [RobotsDirective(user_agent="*", disallow=["/"])]
        checks = check_urls_against_robots(directives, ["https://example.com"])

        assert checks[0].path == "/"
        assert checks[0].blocked is True


class TestFetchRobots:
    """Test suite for fetch_robots."""

    @pytest.mark.asyncio
    async def test_found(self, site):
        """Test a normal robots.txt."""
        site.add("https://example.com/robots.txt", body=ROBOTS_TXT, content_type="text/plain")

        async with site.fetcher() as fetcher:
            result = await fetch_robots(fetcher, "https://example.com/some/page")

        assert result.found is True
        assert result.url == "https://example.com/robots.txt"
        assert result.raw == ROBOTS_TXT
        assert result.sitemap_urls == ["https://example.com/sitemap.xml"]
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_warnings(self, site):
        """Test site-wide blocks, blocked sitemaps and missing Sitemap lines."""
        body = "User-agent: *\nUser-agent: Other\nDisallow: /\nDisallow: /sitemap.xml\n"
        site.add("https://example.com/robots.txt", body=body, content_type="text/plain")

        async with site.fetcher() as fetcher:
            result = await fetch_robots(fetcher, "https://example.com/")

        assert len(result.warnings) == 3
        assert "Disallow: /" in result.warnings[0]
        assert "/sitemap.xml" in result.warnings[1]
        assert result.warnings[2].startswith("No Sitemap directive")

    @pytest.mark.asyncio
    async def test_missing(self, site):
        """Test a 404 robots.txt is an error entry, not an exception."""
        async with site.fetcher() as fetcher:
            result = await fetch_robots(fetcher, "https://example.com/")

        assert result.found is False
        assert result.errors[0].startswith("robots.txt returned HTTP 404")
