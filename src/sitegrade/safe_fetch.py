"""SSRF-safe HTTP fetching.

Every request the auditor makes goes through :class:`SafeFetcher`, which
refuses private, loopback and cloud-metadata targets. Hostnames are resolved
before each request and every resolved address is re-checked, so a public
name that points at an internal address is rejected too. Redirects are
followed manually so that each hop gets the same checks.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, TypeVar
from urllib.parse import urljoin, urlsplit

import httpx

from sitegrade.config import settings
from sitegrade.constants import (
    BLOCKED_HOSTNAME_SUFFIXES,
    BLOCKED_HOSTNAMES,
    BLOCKED_NETWORKS,
    LINK_CHECK_BATCH_SIZE,
    MAX_REDIRECTS,
)

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[List[str]]]

T = TypeVar("T")
R = TypeVar("R")

_BLOCKED_NETWORKS = [ipaddress.ip_network(cidr) for cidr in BLOCKED_NETWORKS]


class SafeFetchError(Exception):
    """Base class for requests refused by the safe fetch layer."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class BlockedAddress(SafeFetchError):
    """The URL or one of its redirect hops targets a non-public address."""


class TooManyRedirects(SafeFetchError):
    """The redirect budget ran out before a final response."""


def _parse_ip(value: str):
    try:
        return ipaddress.ip_address(value.strip("[]").split("%")[0])
    except ValueError:
        return None


def is_blocked_ip(address: str) -> bool:
    """Check whether an IP address falls in a blocked network.

    IPv4-mapped IPv6 addresses (``::ffff:10.0.0.1``) are checked against
    the IPv4 networks. Strings that are not IP addresses are never blocked.
    """
    ip = _parse_ip(address)
    if ip is None:
        return False
    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return any(ip.version == net.version and ip in net for net in _BLOCKED_NETWORKS)


def validate_public_url(url: str) -> str:
    """Validate that a URL may be fetched, without touching the network.

    Args:
        url: Absolute URL to check

    Returns:
        The normalized (lowercase, no trailing dot) hostname

    Raises:
        BlockedAddress: If the URL is malformed, not HTTP(S), or names an
            internal host or private IP literal
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError as e:
        raise BlockedAddress(f"Invalid URL: {url}", url) from e

    if parsed.scheme not in ("http", "https"):
        raise BlockedAddress(f"Blocked: non-HTTP protocol '{parsed.scheme}:'", url)

    if not hostname:
        raise BlockedAddress(f"Invalid URL: {url}", url)

    hostname = hostname.lower().rstrip(".")

    if hostname in BLOCKED_HOSTNAMES:
        raise BlockedAddress(f"Blocked: internal hostname '{hostname}'", url)

    if is_blocked_ip(hostname):
        raise BlockedAddress(f"Blocked: private IP address '{hostname}'", url)

    if hostname.endswith(BLOCKED_HOSTNAME_SUFFIXES):
        raise BlockedAddress(f"Blocked: internal domain '{hostname}'", url)

    return hostname


async def resolve_host(hostname: str) -> List[str]:
    """Resolve a hostname to its addresses using the event loop resolver.

    Returns an empty list when resolution fails; the HTTP request that
    follows reports the failure.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError) as e:
        logger.debug(f"DNS resolution failed for {hostname}: {e}")
        return []
    return list(dict.fromkeys(info[4][0] for info in infos))


class SafeFetcher:
    """HTTP client that only talks to public addresses.

    Usage:
        async with SafeFetcher(timeout=10.0) as fetcher:
            response = await fetcher.fetch("https://example.com/")
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: Optional[str] = None,
        max_redirects: int = MAX_REDIRECTS,
        resolver: Optional[Resolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            timeout: Default request timeout in seconds
            user_agent: User-Agent header sent with every request
            max_redirects: Number of requests allowed per fetch, redirects included
            resolver: Async hostname resolver returning IP strings
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.timeout = timeout
        self.user_agent = user_agent or settings.USER_AGENT
        self.max_redirects = max_redirects
        self._resolver = resolver or resolve_host
        self._client = httpx.AsyncClient(
            follow_redirects=False,
            timeout=timeout,
            headers={"User-Agent": self.user_agent},
            transport=transport,
        )

    async def __aenter__(self) -> "SafeFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _check_target(self, url: str) -> None:
        hostname = validate_public_url(url)

        # httpx rejects some hosts urlsplit accepts, e.g. invalid IDNA labels
        try:
            encoded_host = httpx.URL(url).host
        except (httpx.InvalidURL, ValueError) as e:
            raise BlockedAddress(f"Invalid URL: {url}", url) from e
        if not encoded_host:
            raise BlockedAddress(f"Invalid URL: {url}", url)

        # IP literals were already checked
        if _parse_ip(hostname) is not None:
            return

        for address in await self._resolver(hostname):
            if is_blocked_ip(address):
                raise BlockedAddress(
                    f"Blocked: '{hostname}' resolves to private IP '{address}'", url
                )

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Fetch a URL, following redirects only to public addresses.

        Args:
            url: Absolute http(s) URL
            method: HTTP method
            headers: Extra request headers
            timeout: Per-request timeout in seconds (defaults to the fetcher's)

        Returns:
            The final response; ``response.history`` holds the redirect
            responses that led to it, in order

        Raises:
            BlockedAddress: If the URL or a redirect hop is not public
            TooManyRedirects: If the redirect budget is exhausted
            httpx.HTTPError: On transport failures
        """
        history: List[httpx.Response] = []
        current = url

        for _ in range(self.max_redirects):
            await self._check_target(current)

            try:
                response = await self._client.request(
                    method,
                    current,
                    headers=headers,
                    timeout=timeout if timeout is not None else self.timeout,
                )
            except (httpx.InvalidURL, UnicodeError) as e:
                raise BlockedAddress(f"Invalid URL: {current}", current) from e

            location = response.headers.get("location")
            if not (300 <= response.status_code < 400 and location):
                response.history = history
                return response

            next_url = urljoin(current, location)
            logger.debug(f"Redirect {response.status_code}: {current} -> {next_url}")
            history.append(response)
            current = next_url

        raise TooManyRedirects(f"Too many redirects fetching {url}", url)


async def gather_in_batches(
    items: Iterable[T],
    check: Callable[[T], Awaitable[R]],
    batch_size: int = LINK_CHECK_BATCH_SIZE,
) -> List[R]:
    """Run ``check`` over items with at most ``batch_size`` in flight.

    Each batch completes before the next starts. Results keep item order.
    """
    pending = list(items)
    results: List[R] = []
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        results.extend(await asyncio.gather(*(check(item) for item in batch)))
    return results
