"""Metadata validation and scoring.

Runs the weighted rule set against a page's metadata and turns the outcomes
into a 0-100 score and a letter grade. Passed rules earn their full weight,
warnings earn half and errors earn nothing.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Union

from sitegrade.constants import FAILING_GRADE, GRADE_THRESHOLDS, WARNING_CREDIT
from sitegrade.models import (
    ResolvedMetadata,
    RuleDefinition,
    ValidationResult,
    ValidationRule,
)
from sitegrade.rules import DEFAULT_RULES

logger = logging.getLogger(__name__)

MetadataInput = Union[ResolvedMetadata, Dict[str, Any]]

# Keys that only appear on the flat metadata shape
_FLAT_MARKERS = (
    "ogTitle", "ogImage", "twitterCard", "og_title", "og_image", "twitter_card",
    "canonical", "favicon", "viewport",
)
_NESTED_KEYS = ("openGraph", "twitter", "alternates")


def score_to_grade(score: int) -> str:
    """Convert a 0-100 score to a letter grade."""
    for minimum, grade in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return FAILING_GRADE


def _first_image_url(images: Any) -> Optional[str]:
    if isinstance(images, (str, dict)):
        images = [images]
    if not isinstance(images, list) or not images:
        return None
    first = images[0]
    if isinstance(first, str):
        return first
    if isinstance(first, dict) and isinstance(first.get("url"), str):
        return first["url"]
    return None


def _robots_string(robots: Any) -> Optional[str]:
    if not robots:
        return None
    if isinstance(robots, str):
        return robots
    if isinstance(robots, dict):
        parts = [
            "noindex" if robots.get("index") is False else "index",
            "nofollow" if robots.get("follow") is False else "follow",
        ]
        return ", ".join(parts)
    return None


def _title_string(title: Any) -> Optional[str]:
    if isinstance(title, str):
        return title
    if isinstance(title, dict):
        for key in ("absolute", "default"):
            if isinstance(title.get(key), str):
                return title[key]
    return None


def resolve_from_next_metadata(metadata: Dict[str, Any]) -> ResolvedMetadata:
    """Flatten a Next.js-style nested metadata dict.

    Reads ``openGraph`` (first image, as a string or ``{"url": ...}``),
    ``twitter``, ``alternates.canonical``/``alternates.languages``, a
    ``robots`` string or ``{"index": bool, "follow": bool}`` map and an
    optional ``structuredData`` list of JSON-LD blocks.

    Args:
        metadata: Nested metadata dict

    Returns:
        ResolvedMetadata; viewport and favicon are not part of this shape
        and stay None
    """
    og = metadata.get("openGraph") or {}
    twitter = metadata.get("twitter") or {}
    alternates = metadata.get("alternates") or {}

    canonical = alternates.get("canonical")
    languages = alternates.get("languages")
    structured_data = metadata.get("structuredData")

    return ResolvedMetadata(
        title=_title_string(metadata.get("title")),
        description=metadata.get("description"),
        canonical=canonical if isinstance(canonical, str) else None,
        og_title=og.get("title"),
        og_description=og.get("description"),
        og_image=_first_image_url(og.get("images")),
        og_type=og.get("type"),
        twitter_card=twitter.get("card"),
        twitter_title=twitter.get("title"),
        twitter_description=twitter.get("description"),
        robots=_robots_string(metadata.get("robots")),
        alternates=dict(languages) if isinstance(languages, dict) and languages else None,
        structured_data=list(structured_data) if isinstance(structured_data, list) else None,
    )


def normalize_metadata(metadata: MetadataInput) -> ResolvedMetadata:
    """Accept any supported metadata shape and return a ResolvedMetadata.

    Supported inputs are a ResolvedMetadata, a flat dict (camelCase or
    snake_case keys) and a Next.js-style nested dict.
    """
    if isinstance(metadata, ResolvedMetadata):
        return metadata
    if not isinstance(metadata, dict):
        raise TypeError(f"Unsupported metadata type: {type(metadata).__name__}")

    is_flat = any(key in metadata for key in _FLAT_MARKERS)
    is_nested = any(key in metadata for key in _NESTED_KEYS)
    if is_nested and not is_flat:
        return resolve_from_next_metadata(metadata)
    return ResolvedMetadata.from_dict(metadata)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_metadata(
    metadata: MetadataInput,
    strict: bool = False,
    disabled_rules: Optional[Iterable[str]] = None,
    rules: Optional[List[RuleDefinition]] = None,
) -> ValidationResult:
    """Validate metadata and compute its score.

    Args:
        metadata: ResolvedMetadata or a metadata dict (see normalize_metadata)
        strict: Treat warnings as errors
        disabled_rules: Rule ids to skip; they do not count toward the score
        rules: Rule list to evaluate (defaults to DEFAULT_RULES)

    Returns:
        ValidationResult with outcomes partitioned into passed, warnings
        and errors, in rule order
    """
    resolved = normalize_metadata(metadata)
    disabled = set(disabled_rules or ())
    result = ValidationResult()

    for rule in rules if rules is not None else DEFAULT_RULES:
        if rule.id in disabled:
            continue

        check = rule.check(resolved)
        status = "error" if strict and check.status == "warn" else check.status

        outcome = ValidationRule(
            id=rule.id,
            name=rule.name,
            description=rule.description,
            weight=rule.weight,
            severity=rule.severity or "optional",
            status=status,
            message=check.message,
            value=check.value,
            expected=check.expected,
        )

        if status == "pass":
            result.passed.append(outcome)
        elif status == "warn":
            result.warnings.append(outcome)
        else:
            result.errors.append(outcome)

    earned = sum(r.weight for r in result.passed) + sum(
        r.weight * WARNING_CREDIT for r in result.warnings
    )
    result.score = _round_half_up(earned)
    result.grade = score_to_grade(result.score)

    logger.debug(
        f"Validated metadata: score={result.score} grade={result.grade} "
        f"({len(result.passed)} passed, {len(result.warnings)} warnings, {len(result.errors)} errors)"
    )
    return result
