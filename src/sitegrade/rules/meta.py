"""Rules for robots, Twitter, hreflang, viewport and favicon tags."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition
from sitegrade.rules.common import has_text, is_absolute_url


def _check_robots(metadata: ResolvedMetadata) -> RuleCheck:
    robots = (metadata.robots or "").strip().lower()

    if not robots:
        return RuleCheck("pass", "No robots directive (defaults to index, follow)")

    directives = {token.strip() for token in robots.split(",")}
    if directives & {"noindex", "none"}:
        return RuleCheck(
            "warn", "Page is set to noindex and will not appear in search results",
            value=robots,
        )
    return RuleCheck("pass", "Robots directive allows indexing", value=robots)


def _check_twitter_card(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.twitter_card):
        return RuleCheck("pass", f"Twitter card type: {metadata.twitter_card}", value=metadata.twitter_card)
    return RuleCheck("warn", "Missing Twitter card; shares on X will use defaults")


def _check_alternates(metadata: ResolvedMetadata) -> RuleCheck:
    alternates = metadata.alternates or {}
    if not alternates:
        return RuleCheck("pass", "Single-language page; hreflang not required", value=0)

    relative = sorted(locale for locale, href in alternates.items() if not is_absolute_url(href))
    if relative:
        return RuleCheck(
            "warn",
            f"hreflang alternates must be absolute URLs: {', '.join(relative)}",
            value=len(alternates),
            expected="https://...",
        )
    return RuleCheck(
        "pass", f"{len(alternates)} language alternate(s) declared", value=len(alternates)
    )


def _check_viewport(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.viewport):
        return RuleCheck("pass", "Viewport meta tag is set", value=metadata.viewport)
    return RuleCheck("warn", "No viewport meta tag; page may render poorly on mobile")


def _check_favicon(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.favicon):
        return RuleCheck("pass", "Favicon is configured", value=metadata.favicon)
    return RuleCheck("warn", "No favicon detected; browsers will show a generic icon")


robots_rule = RuleDefinition(
    id="robots-not-blocking",
    name="Robots Not Blocking",
    description="Page should not accidentally block indexing via robots meta tag",
    weight=5,
    check=_check_robots,
)

twitter_card_rule = RuleDefinition(
    id="twitter-card",
    name="Twitter Card",
    description="Page should have a Twitter card configuration for X/Twitter sharing",
    weight=5,
    check=_check_twitter_card,
)

alternates_rule = RuleDefinition(
    id="alternates-hreflang",
    name="Alternates / Hreflang",
    description="Multi-language pages should declare hreflang alternates",
    weight=3,
    check=_check_alternates,
)

viewport_rule = RuleDefinition(
    id="viewport-meta",
    name="Viewport Meta",
    description="Page should have a viewport meta tag for mobile responsiveness",
    weight=3,
    check=_check_viewport,
)

favicon_rule = RuleDefinition(
    id="favicon",
    name="Favicon",
    description="Site should have a favicon reference",
    weight=2,
    check=_check_favicon,
)
