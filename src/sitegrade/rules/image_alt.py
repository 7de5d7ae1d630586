"""Image alt text rule."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition


def _check_image_alt(metadata: ResolvedMetadata) -> RuleCheck:
    images = metadata.images or []
    if not images:
        return RuleCheck("pass", "No images found on page")

    total = len(images)
    missing = sum(1 for image in images if not (image.alt or "").strip())

    if missing == 0:
        return RuleCheck("pass", f"All {total} image(s) have alt text", value=total)

    return RuleCheck(
        "error" if missing / total >= 0.5 else "warn",
        f"{missing}/{total} image(s) missing alt text",
        value=missing,
        expected=0,
    )


image_alt_text_rule = RuleDefinition(
    id="image-alt-text",
    name="Image Alt Text",
    description="All images should have descriptive alt text for accessibility and SEO",
    weight=5,
    check=_check_image_alt,
)
