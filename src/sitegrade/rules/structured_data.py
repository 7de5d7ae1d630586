"""JSON-LD structured data rules."""

from typing import Any, Dict, List

from sitegrade.models import ResolvedMetadata, RuleCheck, RuleDefinition

# Fields a rich result needs, per schema.org type
REQUIRED_FIELDS: Dict[str, List[str]] = {
    "Article": ["headline", "author", "datePublished"],
    "Product": ["name", "description"],
    "FAQ": ["mainEntity"],
    "FAQPage": ["mainEntity"],
    "Organization": ["name", "url"],
    "WebSite": ["name", "url"],
    "BreadcrumbList": ["itemListElement"],
    "HowTo": ["name", "step"],
    "SoftwareApplication": ["name", "applicationCategory"],
}


def _schema_entries(structured_data: List[Any]) -> List[Dict[str, Any]]:
    entries = []
    for block in structured_data:
        if not isinstance(block, dict):
            continue
        if block.get("@type"):
            entries.append(block)
        graph = block.get("@graph")
        if isinstance(graph, list):
            entries.extend(
                item for item in graph if isinstance(item, dict) and item.get("@type")
            )
    return entries


def _check_present(metadata: ResolvedMetadata) -> RuleCheck:
    blocks = metadata.structured_data or []
    if blocks:
        return RuleCheck("pass", f"{len(blocks)} structured data block(s) found", value=len(blocks))
    return RuleCheck("warn", "No structured data; rich results won't appear in SERPs", value=0)


def _check_valid(metadata: ResolvedMetadata) -> RuleCheck:
    blocks = metadata.structured_data or []
    if not blocks:
        return RuleCheck("warn", "No structured data to validate")

    invalid = sum(
        1 for block in blocks
        if not isinstance(block, dict) or not block.get("@context") or not block.get("@type")
    )
    if invalid:
        return RuleCheck(
            "error", f"{invalid} structured data block(s) missing @context or @type",
            value=invalid,
        )
    return RuleCheck(
        "pass", "All structured data blocks have valid @context and @type", value=len(blocks)
    )


def _check_complete(metadata: ResolvedMetadata) -> RuleCheck:
    blocks = metadata.structured_data or []
    if not blocks:
        return RuleCheck("warn", "No structured data to validate")

    issues = []
    missing_all = False
    for entry in _schema_entries(blocks):
        schema_type = entry["@type"]
        required = REQUIRED_FIELDS.get(schema_type) if isinstance(schema_type, str) else None
        if not required:
            continue

        missing = [name for name in required if entry.get(name) in (None, "")]
        if not missing:
            continue
        if len(missing) == len(required):
            missing_all = True
            issues.append(f"{schema_type}: missing all required fields ({', '.join(missing)})")
        else:
            issues.append(f"{schema_type}: missing {', '.join(missing)}")

    if not issues:
        return RuleCheck("pass", "All structured data blocks have required fields")
    return RuleCheck("error" if missing_all else "warn", "; ".join(issues), value=len(issues))


structured_data_present_rule = RuleDefinition(
    id="structured-data-present",
    name="Structured Data Present",
    description="Page should have at least one JSON-LD structured data block",
    weight=6,
    check=_check_present,
)

structured_data_valid_rule = RuleDefinition(
    id="structured-data-valid",
    name="Structured Data Valid",
    description="JSON-LD structured data should have @context and @type fields",
    weight=2,
    check=_check_valid,
)

structured_data_complete_rule = RuleDefinition(
    id="structured-data-complete",
    name="Structured Data Complete",
    description="JSON-LD structured data should have required fields for its @type",
    weight=4,
    check=_check_complete,
)
