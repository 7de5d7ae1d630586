"""On-page content rules.

Both checks read crawl-only fields and pass when the field was never
collected, so static metadata is not penalized for what it cannot know.
"""

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition

MIN_WORDS = 200
THIN_WORDS = 50


def _check_h1(metadata: ResolvedMetadata) -> RuleCheck:
    if metadata.h1s is None:
        return RuleCheck("pass", "H1 check skipped (headings not collected)")

    count = len(metadata.h1s)
    if count == 1:
        return RuleCheck("pass", f'H1 found: "{metadata.h1s[0]}"', value=count, expected=1)
    if count == 0:
        return RuleCheck("error", "No H1 heading found; every page needs one", value=0, expected=1)
    return RuleCheck(
        "warn", f"{count} H1 headings found; use exactly one per page",
        value=count, expected=1,
    )


def _check_content_length(metadata: ResolvedMetadata) -> RuleCheck:
    words = metadata.word_count
    expected = f">={MIN_WORDS}"

    if words is None:
        return RuleCheck("pass", "Content length check skipped (word count not collected)")
    if words >= MIN_WORDS:
        return RuleCheck("pass", f"{words} words of content", value=words, expected=expected)
    if words >= THIN_WORDS:
        return RuleCheck(
            "warn", f"Only {words} words; thin content may hurt rankings",
            value=words, expected=expected,
        )
    return RuleCheck(
        "error", f"Only {words} words; page has almost no content",
        value=words, expected=expected,
    )


h1_present_rule = RuleDefinition(
    id="h1-present",
    name="H1 Heading Present",
    description="Page should have exactly one H1 heading",
    weight=8,
    severity="critical",
    check=_check_h1,
)

content_length_rule = RuleDefinition(
    id="content-length",
    name="Content Length",
    description="Page should have sufficient text content (at least 200 words)",
    weight=5,
    check=_check_content_length,
)
