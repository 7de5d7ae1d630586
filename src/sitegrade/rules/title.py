"""Title tag rules."""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition
from sitegrade.rules.common import has_text

TITLE_IDEAL = "50-60"


def _check_title_present(metadata: ResolvedMetadata) -> RuleCheck:
    if has_text(metadata.title):
        return RuleCheck("pass", "Title tag is present", value=metadata.title)
    return RuleCheck("error", "Missing title tag", value=metadata.title)


def _check_title_length(metadata: ResolvedMetadata) -> RuleCheck:
    length = len((metadata.title or "").strip())

    if length == 0:
        return RuleCheck("error", "No title to measure", value=0, expected=TITLE_IDEAL)
    if 50 <= length <= 60:
        return RuleCheck(
            "pass", f"Title length is {length} characters (ideal range)",
            value=length, expected=TITLE_IDEAL,
        )
    if 30 <= length < 50:
        return RuleCheck(
            "warn", f"Title is {length} characters, slightly short (aim for 50-60)",
            value=length, expected=TITLE_IDEAL,
        )
    if 60 < length <= 70:
        return RuleCheck(
            "warn", f"Title is {length} characters, slightly long and may be truncated in SERPs",
            value=length, expected=TITLE_IDEAL,
        )
    if length < 30:
        message = f"Title is only {length} characters, too short"
    else:
        message = f"Title is {length} characters and will be truncated in SERPs"
    return RuleCheck("error", message, value=length, expected=TITLE_IDEAL)


title_present_rule = RuleDefinition(
    id="title-present",
    name="Title Present",
    description="Page must have a title tag",
    weight=5,
    severity="critical",
    check=_check_title_present,
)

title_length_rule = RuleDefinition(
    id="title-length",
    name="Title Length",
    description="Title should be between 50 and 60 characters for optimal display in SERPs",
    weight=8,
    check=_check_title_length,
)
