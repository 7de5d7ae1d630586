"""In-memory website served through httpx.MockTransport, plus page builders."""

from typing import Callable, Dict, List, Optional

import httpx

from sitegrade.safe_fetch import SafeFetcher

PUBLIC_IP = "93.184.216.34"


async def public_resolver(hostname: str) -> List[str]:
    """Resolve every hostname to a public address without touching DNS."""
    return [PUBLIC_IP]


class FakeSite:
    """Canned responses keyed by absolute URL; unknown URLs answer 404."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    @staticmethod
    def _key(url: str) -> str:
        return str(httpx.URL(url))

    def add(
        self,
        url: str,
        status: int = 200,
        body: str = "",
        content_type: str = "text/html; charset=utf-8",
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        all_headers = {"content-type": content_type, **(headers or {})}
        self.routes[self._key(url)] = lambda request: httpx.Response(
            status, text=body, headers=all_headers
        )

    def html(self, url: str, body: str) -> None:
        self.add(url, body=body)

    def redirect(self, url: str, location: str, status: int = 301) -> None:
        self.routes[self._key(url)] = lambda request: httpx.Response(
            status, headers={"location": location}
        )

    def handle(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[self._key(url)] = handler

    def sequence(self, url: str, statuses: List[int], body: str = "") -> None:
        """Answer successive requests with the given statuses; the last one repeats."""
        remaining = list(statuses)

        def handler(request: httpx.Request) -> httpx.Response:
            status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            return httpx.Response(
                status, text=body, headers={"content-type": "text/html; charset=utf-8"}
            )

        self.routes[self._key(url)] = handler

    def requests_for(self, url: str, method: Optional[str] = None) -> List[httpx.Request]:
        key = self._key(url)
        return [
            r for r in self.requests
            if str(r.url) == key and (method is None or r.method == method)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(
                404, text="not found", headers={"content-type": "text/html"}
            )
        return handler(request)

    def fetcher(self, **kwargs) -> SafeFetcher:
        kwargs.setdefault("resolver", public_resolver)
        return SafeFetcher(transport=httpx.MockTransport(self), **kwargs)


DEFAULT_TITLE = "Example Site: a well sized page title for unit tests"
DEFAULT_DESCRIPTION = (
    "This description is long enough to land inside the ideal range for "
    "search snippets, which is between one hundred twenty and 160 chars."
)


def page_html(
    title: str = DEFAULT_TITLE,
    description: str = DEFAULT_DESCRIPTION,
    links: Optional[List[str]] = None,
    h1: Optional[str] = "Welcome",
    words: int = 250,
    extra_head: str = "",
    extra_body: str = "",
) -> str:
    """Build a complete, well-formed page."""
    anchors = "".join(f'<a href="{href}">link</a>' for href in (links or []))
    h1_tag = f"<h1>{h1}</h1>" if h1 else ""
    text = " ".join(["word"] * words)
    return f"""<!doctype html>
<html>
<head>
  <title>{title}</title>
  <meta name="description" content="{description}">
  <meta property="og:title" content="{title}">
  <meta property="og:description" content="{description}">
  <meta property="og:image" content="https://example.com/og.png">
  <meta name="twitter:card" content="summary_large_image">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="https://example.com/">
  <link rel="icon" href="/favicon.ico">
  <script type="application/ld+json">{{"@context": "https://schema.org", "@type": "WebSite", "name": "Example", "url": "https://example.com"}}</script>
  {extra_head}
</head>
<body>
  <main>{h1_tag}<p>{text}</p>{anchors}{extra_body}</main>
</body>
</html>"""


def unique_page(name: str, links: Optional[List[str]] = None, **kwargs) -> str:
    """A page whose title and description no other page shares."""
    return page_html(
        title=f"Example Site: a well sized page title for page {name}",
        description=f"{DEFAULT_DESCRIPTION} {name}",
        links=links,
        **kwargs,
    )
