"""Canonical URL rule."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition
from sitegrade.rules.common import is_absolute_url


def _check_canonical(metadata: ResolvedMetadata) -> RuleCheck:
    canonical = (metadata.canonical or "").strip()

    if not canonical:
        return RuleCheck("error", "Missing canonical URL; risk of duplicate content")

    if not is_absolute_url(canonical):
        return RuleCheck(
            "warn", "Canonical URL should be absolute (include https://)",
            value=canonical, expected="https://...",
        )

    return RuleCheck("pass", "Canonical URL is set", value=canonical)


canonical_rule = RuleDefinition(
    id="canonical-url",
    name="Canonical URL",
    description="Page should have a canonical URL to avoid duplicate content issues",
    weight=10,
    severity="critical",
    check=_check_canonical,
)
