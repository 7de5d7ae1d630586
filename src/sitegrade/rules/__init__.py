"""Validation rules.

DEFAULT_RULES lists every rule in evaluation order. Weights total 100:

    Title:           5 + 8 = 13
    Description:     5 + 8 = 13
    OpenGraph:       8 + 4 + 4 = 16
    Canonical:       10
    Structured Data: 6 + 2 + 4 = 12
    H1:              8
    Content Length:  5
    Robots:          5
    Twitter:         5
    Alternates:      3
    Viewport:        3
    Favicon:         2
    Image Alt:       5
"""

from typing import List

from sitegrade.models import RuleDefinition
from sitegrade.rules.canonical import canonical_rule
from sitegrade.rules.content import content_length_rule, h1_present_rule
from sitegrade.rules.description import description_length_rule, description_present_rule
from sitegrade.rules.image_alt import image_alt_text_rule
from sitegrade.rules.meta import (
    alternates_rule,
    favicon_rule,
    robots_rule,
    twitter_card_rule,
    viewport_rule,
)
from sitegrade.rules.open_graph import og_description_rule, og_image_rule, og_title_rule
from sitegrade.rules.structured_data import (
    structured_data_complete_rule,
    structured_data_present_rule,
    structured_data_valid_rule,
)
from sitegrade.rules.title import title_length_rule, title_present_rule

DEFAULT_RULES: List[RuleDefinition] = [
    title_present_rule,
    title_length_rule,
    description_present_rule,
    description_length_rule,
    og_image_rule,
    og_title_rule,
    og_description_rule,
    canonical_rule,
    structured_data_present_rule,
    structured_data_valid_rule,
    structured_data_complete_rule,
    h1_present_rule,
    content_length_rule,
    robots_rule,
    twitter_card_rule,
    alternates_rule,
    viewport_rule,
    favicon_rule,
    image_alt_text_rule,
]

__all__ = [
    "DEFAULT_RULES",
    "title_present_rule",
    "title_length_rule",
    "description_present_rule",
    "description_length_rule",
    "og_image_rule",
    "og_title_rule",
    "og_description_rule",
    "canonical_rule",
    "structured_data_present_rule",
    "structured_data_valid_rule",
    "structured_data_complete_rule",
    "h1_present_rule",
    "content_length_rule",
    "robots_rule",
    "twitter_card_rule",
    "alternates_rule",
    "viewport_rule",
    "favicon_rule",
    "image_alt_text_rule",
]
