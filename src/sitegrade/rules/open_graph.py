"""OpenGraph rules."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition
from sitegrade.rules.common import has_text


def _check_og_image(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.og_image):
        return RuleCheck("pass", "og:image is set", value=metadata.og_image)
    return RuleCheck("error", "Missing og:image; social shares will look broken")


def _check_og_title(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.og_title):
        return RuleCheck("pass", "og:title is set", value=metadata.og_title)
    return RuleCheck("warn", "Missing og:title; shares will fall back to <title>")


def _check_og_description(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.og_description):
        return RuleCheck("pass", "og:description is set", value=metadata.og_description)
    return RuleCheck("warn", "Missing og:description; shares will fall back to the meta description")


og_image_rule = RuleDefinition(
    id="og-image",
    name="OpenGraph Image",
    description="Page should have an og:image for social sharing previews",
    weight=8,
    severity="critical",
    check=_check_og_image,
)

og_title_rule = RuleDefinition(
    id="og-title",
    name="OpenGraph Title",
    description="Page should have an og:title",
    weight=4,
    check=_check_og_title,
)

og_description_rule = RuleDefinition(
    id="og-description",
    name="OpenGraph Description",
    description="Page should have an og:description",
    weight=4,
    check=_check_og_description,
)
