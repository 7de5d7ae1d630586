"""Tests for the SSRF-safe fetch layer."""

import asyncio
import socket
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from sitegrade.safe_fetch import (
    BlockedAddress,
    SafeFetcher,
    TooManyRedirects,
    gather_in_batches,
    is_blocked_ip,
    resolve_host,
    validate_public_url,
)


class TestIsBlockedIp:
    """Test cases for is_blocked_ip."""

    @pytest.mark.parametrize("address", [
        "127.0.0.1",
        "10.1.2.3",
        "172.16.0.1",
        "172.31.255.255",
        "192.168.1.1",
        "169.254.169.254",
        "0.0.0.0",
        "100.64.0.1",
        "100.127.255.255",
        "198.18.0.1",
        "198.19.255.255",
        "::1",
        "fe80::1",
        "fc00::1",
        "fd12:3456::1",
        "::ffff:127.0.0.1",
        "::ffff:10.0.0.1",
        "::ffff:169.254.169.254",
        "::ffff:100.64.0.1",
    ])
    def test_private_addresses_blocked(self, address):
        """Test every denylisted range, including IPv4-mapped forms."""
        assert is_blocked_ip(address) is True

    @pytest.mark.parametrize("address", [
        "93.184.216.34",
        "8.8.8.8",
        "172.32.0.1",
        "100.128.0.1",
        "198.20.0.1",
        "2606:2800:220:1:248:1893:25c8:1946",
    ])
    def test_public_addresses_allowed(self, address):
        """Test that public addresses pass."""
        assert is_blocked_ip(address) is False

    def test_non_ip_is_not_blocked(self):
        """Test that hostnames are left to the resolver check."""
        assert is_blocked_ip("example.com") is False


class TestValidatePublicUrl:
    """Test cases for validate_public_url."""

    def test_returns_normalized_hostname(self):
        """Test hostname is lowercased and its trailing dot removed."""
        assert validate_public_url("https://Example.COM./page") == "example.com"

    @pytest.mark.parametrize("url", [
        "ftp://example.com/file",
        "file:///etc/passwd",
        "javascript:alert(1)",
    ])
    def test_non_http_schemes_blocked(self, url):
        """Test that only http and https are accepted."""
        with pytest.raises(BlockedAddress, match="non-HTTP protocol"):
            validate_public_url(url)

    @pytest.mark.parametrize("url", [
        "http://localhost/",
        "http://LOCALHOST:8080/admin",
        "http://metadata.google.internal/computeMetadata/v1/",
        "http://metadata/",
        "http://kubernetes.default/",
    ])
    def test_internal_hostnames_blocked(self, url):
        """Test exact hostname denylist."""
        with pytest.raises(BlockedAddress):
            validate_public_url(url)

    @pytest.mark.parametrize("url", [
        "http://printer.local/",
        "http://db.internal/",
        "http://intranet.corp/",
        "http://nas.lan/",
    ])
    def test_internal_suffixes_blocked(self, url):
        """Test internal domain suffixes."""
        with pytest.raises(BlockedAddress, match="internal domain"):
            validate_public_url(url)

    @pytest.mark.parametrize("url", [
        "http://127.0.0.1/",
        "http://169.254.169.254/latest/meta-data/",
        "http://[::1]/",
        "http://[::ffff:10.0.0.1]/",
    ])
    def test_private_ip_literals_blocked(self, url):
        """Test private IP literals in the URL."""
        with pytest.raises(BlockedAddress, match="private IP"):
            validate_public_url(url)

    def test_missing_host_rejected(self):
        """Test URL without a host."""
        with pytest.raises(BlockedAddress, match="Invalid URL"):
            validate_public_url("https:///path")


class TestResolveHost:
    """Test cases for resolve_host."""

    @pytest.mark.asyncio
    async def test_unique_addresses(self):
        """Test addresses are returned once each, in resolver order."""
        infos = [
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0)),
            (socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("::1", 0, 0, 0)),
        ]
        loop = asyncio.get_running_loop()
        with patch.object(loop, "getaddrinfo", AsyncMock(return_value=infos)):
            assert await resolve_host("example.com") == ["93.184.216.34", "::1"]

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        """Test DNS failures yield no addresses instead of raising."""
        loop = asyncio.get_running_loop()
        failing = AsyncMock(side_effect=socket.gaierror("Name or service not known"))
        with patch.object(loop, "getaddrinfo", failing):
            assert await resolve_host("nowhere.example") == []


class TestSafeFetcher:
    """Test cases for SafeFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_public_url(self, site):
        """Test a plain successful fetch."""
        site.html("https://example.com/", "<html>ok</html>")

        async with site.fetcher() as fetcher:
            response = await fetcher.fetch("https://example.com/")

        assert response.status_code == 200
        assert response.text == "<html>ok</html>"
        assert response.history == []

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, site):
        """Test the configured User-Agent is sent."""
        site.html("https://example.com/", "ok")

        async with site.fetcher(user_agent="TestBot/1.0") as fetcher:
            await fetcher.fetch("https://example.com/")

        assert site.requests[0].headers["user-agent"] == "TestBot/1.0"

    @pytest.mark.asyncio
    async def test_dns_rebinding_blocked(self, site):
        """Test a public name resolving to a private address is refused."""
        async def rebinding_resolver(hostname):
            return ["93.184.216.34", "10.0.0.5"]

        async with site.fetcher(resolver=rebinding_resolver) as fetcher:
            with pytest.raises(BlockedAddress, match="resolves to private IP '10.0.0.5'"):
                await fetcher.fetch("https://evil.example/")

        assert site.requests == []

    @pytest.mark.asyncio
    async def test_ip_literal_skips_resolution(self, site):
        """Test that public IP literals are not sent to the resolver."""
        calls = []

        async def recording_resolver(hostname):
            calls.append(hostname)
            return []

        site.html("http://93.184.216.34/", "ok")
        async with site.fetcher(resolver=recording_resolver) as fetcher:
            response = await fetcher.fetch("http://93.184.216.34/")

        assert response.status_code == 200
        assert calls == []

    @pytest.mark.asyncio
    async def test_follows_redirects_and_records_history(self, site):
        """Test redirect hops are followed and kept in order."""
        site.redirect("https://example.com/old", "/middle", status=301)
        site.redirect("https://example.com/middle", "https://example.com/new", status=302)
        site.html("https://example.com/new", "final")

        async with site.fetcher() as fetcher:
            response = await fetcher.fetch("https://example.com/old")

        assert response.status_code == 200
        assert str(response.url) == "https://example.com/new"
        assert [hop.status_code for hop in response.history] == [301, 302]

    @pytest.mark.asyncio
    async def test_redirect_to_private_address_blocked(self, site):
        """Test that every redirect hop is validated."""
        site.redirect("https://example.com/go", "http://169.254.169.254/latest/meta-data/")

        async with site.fetcher() as fetcher:
            with pytest.raises(BlockedAddress):
                await fetcher.fetch("https://example.com/go")

        assert len(site.requests) == 1

    @pytest.mark.asyncio
    async def test_undecodable_idna_host_blocked(self, site):
        """Test hosts httpx cannot encode are refused as invalid URLs."""
        async with site.fetcher() as fetcher:
            with pytest.raises(BlockedAddress, match="Invalid URL"):
                await fetcher.fetch("https://xn--zz.org/")

        assert site.requests == []

    @pytest.mark.asyncio
    async def test_redirect_to_undecodable_host_blocked(self, site):
        """Test an invalid IDNA redirect target ends the fetch cleanly."""
        site.redirect("https://example.com/go", "https://xn--zz.org/landing")

        async with site.fetcher() as fetcher:
            with pytest.raises(BlockedAddress, match="Invalid URL"):
                await fetcher.fetch("https://example.com/go")

        assert len(site.requests) == 1

    @pytest.mark.asyncio
    async def test_redirect_loop_exhausts_budget(self, site):
        """Test TooManyRedirects after the redirect budget is spent."""
        site.redirect("https://example.com/a", "/b")
        site.redirect("https://example.com/b", "/a")

        async with site.fetcher(max_redirects=4) as fetcher:
            with pytest.raises(TooManyRedirects):
                await fetcher.fetch("https://example.com/a")

        assert len(site.requests) == 4

    @pytest.mark.asyncio
    async def test_redirect_without_location_is_returned(self, site):
        """Test a 3xx without Location is the final response."""
        site.add("https://example.com/odd", status=302)

        async with site.fetcher() as fetcher:
            response = await fetcher.fetch("https://example.com/odd")

        assert response.status_code == 302

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        """Test network failures surface as httpx errors."""
        def failing(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def resolver(hostname):
            return ["93.184.216.34"]

        fetcher = SafeFetcher(resolver=resolver, transport=httpx.MockTransport(failing))
        try:
            with pytest.raises(httpx.ConnectError):
                await fetcher.fetch("https://example.com/")
        finally:
            await fetcher.aclose()


class TestGatherInBatches:
    """Test cases for gather_in_batches."""

    @pytest.mark.asyncio
    async def test_preserves_order_and_limits_concurrency(self):
        """Test results keep input order and batches never exceed the size."""
        in_flight = 0
        peak = 0

        async def check(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return item * 2

        results = await gather_in_batches(range(7), check, batch_size=3)

        assert results == [0, 2, 4, 6, 8, 10, 12]
        assert peak <= 3
