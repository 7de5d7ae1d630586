"""robots.txt fetching, parsing and URL access checks."""

import logging
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

import httpx

from sitegrade.constants import ROBOTS_TIMEOUT_SECONDS, ROBOTS_USER_AGENT
from sitegrade.models import RobotsDirective, RobotsResult, RobotsUrlCheck
from sitegrade.safe_fetch import SafeFetcher, SafeFetchError

logger = logging.getLogger(__name__)

__all__ = [
    "fetch_robots",
    "parse_robots_txt",
    "check_urls_against_robots",
    "path_matches",
    "RobotsDirective",
    "RobotsResult",
    "RobotsUrlCheck",
]


def parse_robots_txt(raw: str) -> Tuple[List[RobotsDirective], List[str]]:
    """Parse robots.txt content.

    Consecutive ``User-agent`` lines open a single group that shares the
    rules that follow. Unknown keys and lines outside a group are ignored.

    Args:
        raw: robots.txt body

    Returns:
        Tuple of (directives, sitemap URLs). A group naming several agents
        yields one RobotsDirective per agent, sharing the same rules.
    """
    directives: List[RobotsDirective] = []
    sitemap_urls: List[str] = []
    group: List[RobotsDirective] = []
    group_has_rules = False

    for line in raw.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue

        key, value = line.split(":", 1)
        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            if group_has_rules:
                group = []
                group_has_rules = False
            directive = RobotsDirective(user_agent=value)
            if group:
                # Share rule lists with the rest of the group
                directive.allow = group[0].allow
                directive.disallow = group[0].disallow
            group.append(directive)
            directives.append(directive)
        elif key in ("allow", "disallow") and group:
            group_has_rules = True
            getattr(group[0], key).append(value)
        elif key == "sitemap" and value:
            sitemap_urls.append(value)

    return directives, sitemap_urls


async def fetch_robots(fetcher: SafeFetcher, base_url: str) -> RobotsResult:
    """Fetch and parse /robots.txt for a site.

    Args:
        fetcher: Safe fetcher used for the request
        base_url: Any URL on the site

    Returns:
        RobotsResult with configuration warnings; failures are reported in
        ``errors``, never raised
    """
    robots_url = urljoin(base_url, "/robots.txt")
    try:
        response = await fetcher.fetch(
            robots_url,
            headers={"User-Agent": ROBOTS_USER_AGENT},
            timeout=ROBOTS_TIMEOUT_SECONDS,
        )
    except (SafeFetchError, httpx.HTTPError) as e:
        logger.warning(f"Failed to fetch {robots_url}: {e}")
        return RobotsResult(url=robots_url, errors=[str(e) or type(e).__name__])

    if not response.is_success:
        return RobotsResult(
            url=robots_url,
            errors=[
                f"robots.txt returned HTTP {response.status_code}; "
                "site may be fully crawlable or misconfigured"
            ],
        )

    raw = response.text
    directives, sitemap_urls = parse_robots_txt(raw)
    result = RobotsResult(
        url=robots_url,
        found=True,
        raw=raw,
        directives=directives,
        sitemap_urls=sitemap_urls,
    )

    for directive in directives:
        if directive.user_agent == "*" and "/" in directive.disallow:
            result.warnings.append(
                "robots.txt blocks ALL crawlers with 'Disallow: /'; "
                "the entire site is invisible to search engines"
            )
        for path in directive.disallow:
            if "sitemap" in path.lower():
                result.warnings.append(
                    f"robots.txt blocks '{path}', which may prevent search "
                    "engines from finding your sitemap"
                )

    if not sitemap_urls:
        result.warnings.append(
            "No Sitemap directive in robots.txt; add "
            "'Sitemap: https://yoursite.com/sitemap.xml' to help search engines find your pages"
        )

    # Agents sharing a group share rule lists, so warnings can repeat
    result.warnings = list(dict.fromkeys(result.warnings))
    return result


def path_matches(path: str, pattern: str) -> bool:
    """Match a URL path against a robots.txt rule.

    ``*`` matches any run of characters and a trailing ``$`` anchors the
    end; otherwise the rule is a prefix. Matching is iterative, without
    regular expressions.
    """
    if not pattern:
        return False

    anchored = pattern.endswith("$")
    if anchored:
        pattern = pattern[:-1]

    parts = pattern.split("*")
    if len(parts) == 1:
        return path == pattern if anchored else path.startswith(pattern)

    first, *middle, last = parts
    if not path.startswith(first):
        return False
    pos = len(first)

    for part in middle:
        index = path.find(part, pos)
        if index == -1:
            return False
        pos = index + len(part)

    if anchored:
        return path.endswith(last) and len(path) - len(last) >= pos
    return path.find(last, pos) != -1


def check_urls_against_robots(
    directives: List[RobotsDirective],
    urls: List[str],
    user_agent: str = "*",
) -> List[RobotsUrlCheck]:
    """Check which URLs the robots.txt rules block for a user agent.

    Rules from groups naming the agent and from ``*`` groups are combined.
    The longest matching rule wins and Allow wins ties.
    """
    agent = user_agent.lower()
    matching = [
        d for d in directives
        if d.user_agent == "*" or d.user_agent.lower() == agent
    ]

    checks = []
    for url in urls:
        path = urlsplit(url).path or "/"
        best: Optional[Tuple[int, bool, str]] = None

        for directive in matching:
            for allowed, rules in ((False, directive.disallow), (True, directive.allow)):
                for rule in rules:
                    if not path_matches(path, rule):
                        continue
                    label = "Allow" if allowed else "Disallow"
                    candidate = (
                        len(rule),
                        allowed,
                        f"{label}: {rule} (User-agent: {directive.user_agent})",
                    )
                    if best is None or candidate[:2] > best[:2]:
                        best = candidate

        blocked = best is not None and not best[1]
        checks.append(RobotsUrlCheck(
            url=url,
            path=path,
            blocked=blocked,
            blocked_by=best[2] if blocked else None,
        ))
    return checks
