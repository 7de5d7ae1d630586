"""Meta description rules."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition
from sitegrade.rules.common import has_text

DESCRIPTION_IDEAL = "120-160"

# Placeholder left by source scanners for descriptions built at runtime
DYNAMIC_PLACEHOLDER = "[detected]"


def _check_description_present(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.description):
        return RuleCheck("pass", "Meta description is present", value=metadata.description)
    return RuleCheck("error", "Missing meta description", value=metadata.description)


def _check_description_length(metadata: ResolvedMetadata) -> RuleCheck:
    description = (metadata.description or "").strip()
    length = len(description)

    if length == 0:
        return RuleCheck("error", "No description to measure", value=0, expected=DESCRIPTION_IDEAL)
    if description == DYNAMIC_PLACEHOLDER:
        return RuleCheck(
            "pass", "Description present (dynamic value, length not checked)",
            expected=DESCRIPTION_IDEAL,
        )
    if 120 <= length <= 160:
        return RuleCheck(
            "pass", f"Description length is {length} characters (ideal range)",
            value=length, expected=DESCRIPTION_IDEAL,
        )
    if 70 <= length < 120:
        return RuleCheck(
            "warn", f"Description is {length} characters, slightly short (aim for 120-160)",
            value=length, expected=DESCRIPTION_IDEAL,
        )
    if 160 < length <= 200:
        return RuleCheck(
            "warn", f"Description is {length} characters and may be truncated in SERPs",
            value=length, expected=DESCRIPTION_IDEAL,
        )
    if length < 70:
        message = f"Description is only {length} characters, too short"
    else:
        message = f"Description is {length} characters and will be truncated in SERPs"
    return RuleCheck("error", message, value=length, expected=DESCRIPTION_IDEAL)


description_present_rule = RuleDefinition(
    id="description-present",
    name="Meta Description Present",
    description="Page must have a meta description",
    weight=5,
    severity="critical",
    check=_check_description_present,
)

description_length_rule = RuleDefinition(
    id="description-length",
    name="Meta Description Length",
    description="Meta description should be between 120 and 160 characters",
    weight=8,
    check=_check_description_length,
)
