"""JSON-LD structured data generators.

Each generator maps loose input data onto a schema.org block that carries
the fields the ``structured-data-complete`` rule requires for its type.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = "https://schema.org"
DEFAULT_CURRENCY = "EUR"
DEFAULT_AVAILABILITY = "https://schema.org/InStock"


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _require_list(data: Dict[str, Any], schema_type: str, *keys: str) -> List[Dict[str, Any]]:
    items = _first(data, *keys)
    if not isinstance(items, list):
        raise ValueError(f"{schema_type} structured data requires a '{keys[0]}' list")
    return items


def _person(author: Any) -> Optional[Dict[str, Any]]:
    if not author:
        return None
    if isinstance(author, str):
        return {"@type": "Person", "name": author}
    if isinstance(author, dict):
        return _compact({
            "@type": author.get("type", "Person"),
            "name": author.get("name"),
            "url": author.get("url"),
        })
    return None


def _organization(org: Any) -> Optional[Dict[str, Any]]:
    if not org:
        return None
    if isinstance(org, str):
        return {"@type": "Organization", "name": org}
    if isinstance(org, dict):
        return _compact({
            "@type": "Organization",
            "name": org.get("name"),
            "url": org.get("url"),
            "logo": {"@type": "ImageObject", "url": org["logo"]} if org.get("logo") else None,
        })
    return None


def _offer(data: Dict[str, Any], with_availability: bool) -> Any:
    if not data.get("price"):
        return data.get("offers")
    offer = {
        "@type": "Offer",
        "price": data["price"],
        "priceCurrency": data.get("currency", DEFAULT_CURRENCY),
    }
    if with_availability:
        offer["availability"] = data.get("availability", DEFAULT_AVAILABILITY)
        offer["url"] = data.get("url")
    return _compact(offer)


def _rating(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    rating = data.get("rating")
    if not isinstance(rating, dict):
        return None
    return _compact({
        "@type": "AggregateRating",
        "ratingValue": rating.get("value"),
        "reviewCount": rating.get("count"),
    })


def _article(data: Dict[str, Any]) -> Dict[str, Any]:
    published = _first(data, "datePublished", "publishedTime")
    return {
        "@type": "Article",
        "headline": _first(data, "headline", "title"),
        "description": data.get("description"),
        "image": data.get("image"),
        "datePublished": published,
        "dateModified": _first(data, "dateModified", "modifiedTime") or published,
        "author": _person(data.get("author")),
        "publisher": _organization(data.get("publisher")),
        "mainEntityOfPage": {"@type": "WebPage", "@id": data["url"]} if data.get("url") else None,
        "articleSection": data.get("section"),
        "keywords": data.get("tags"),
    }


def _product(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "@type": "Product",
        "name": data.get("name"),
        "description": data.get("description"),
        "image": data.get("image"),
        "brand": {"@type": "Brand", "name": data["brand"]} if data.get("brand") else None,
        "offers": _offer(data, with_availability=True),
        "aggregateRating": _rating(data),
    }


def _faq(data: Dict[str, Any]) -> Dict[str, Any]:
    items = _require_list(data, "FAQ", "questions", "items")
    return {
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": _first(item, "question", "q"),
                "acceptedAnswer": {"@type": "Answer", "text": _first(item, "answer", "a")},
            }
            for item in items
        ],
    }


def _how_to(data: Dict[str, Any]) -> Dict[str, Any]:
    steps = _require_list(data, "HowTo", "steps")
    return {
        "@type": "HowTo",
        "name": _first(data, "name", "title"),
        "description": data.get("description"),
        "image": data.get("image"),
        "totalTime": data.get("totalTime"),
        "step": [
            _compact({
                "@type": "HowToStep",
                "position": position,
                "name": _first(step, "name", "title"),
                "text": _first(step, "text", "description"),
                "image": step.get("image"),
                "url": step.get("url"),
            })
            for position, step in enumerate(steps, start=1)
        ],
    }


def _breadcrumb(data: Dict[str, Any]) -> Dict[str, Any]:
    items = _require_list(data, "Breadcrumb", "items")
    return {
        "@type": "BreadcrumbList",
        "itemListElement": [
            _compact({
                "@type": "ListItem",
                "position": position,
                "name": _first(item, "name", "title"),
                "item": _first(item, "url", "href"),
            })
            for position, item in enumerate(items, start=1)
        ],
    }


def _organization_block(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "@type": "Organization",
        "name": data.get("name"),
        "url": data.get("url"),
        "logo": {"@type": "ImageObject", "url": data["logo"]} if data.get("logo") else None,
        "description": data.get("description"),
        "sameAs": data.get("sameAs"),
        "contactPoint": data.get("contactPoint"),
        "knowsAbout": data.get("knowsAbout"),
    }


def _web_page(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "@type": "WebPage",
        "name": _first(data, "name", "title"),
        "description": data.get("description"),
        "url": data.get("url"),
        "isPartOf": {"@type": "WebSite", "name": data["isPartOf"]} if data.get("isPartOf") else None,
        "breadcrumb": data.get("breadcrumb"),
        "mainEntity": data.get("mainEntity"),
    }


def _software_application(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "@type": "SoftwareApplication",
        "name": data.get("name"),
        "description": data.get("description"),
        "url": data.get("url"),
        "applicationCategory": data.get("category", "DeveloperApplication"),
        "operatingSystem": data.get("operatingSystem", "All"),
        "offers": _offer(data, with_availability=False),
        "aggregateRating": _rating(data),
    }


def _web_site(data: Dict[str, Any]) -> Dict[str, Any]:
    search_action = None
    if data.get("searchUrl"):
        search_action = {
            "@type": "SearchAction",
            "target": {"@type": "EntryPoint", "urlTemplate": data["searchUrl"]},
            "query-input": "required name=search_term_string",
        }
    return {
        "@type": "WebSite",
        "name": data.get("name"),
        "url": data.get("url"),
        "description": data.get("description"),
        "potentialAction": search_action,
    }


GENERATORS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "Article": _article,
    "Product": _product,
    "FAQ": _faq,
    "HowTo": _how_to,
    "Breadcrumb": _breadcrumb,
    "Organization": _organization_block,
    "WebPage": _web_page,
    "SoftwareApplication": _software_application,
    "WebSite": _web_site,
}


def generate_ld(schema_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Generate a JSON-LD block for one of the supported types.

    Args:
        schema_type: One of GENERATORS' keys; ``FAQ`` yields ``FAQPage`` and
            ``Breadcrumb`` yields ``BreadcrumbList``
        data: Loose input fields, e.g. ``{"headline": ..., "author": "Ada"}``

    Returns:
        Dict with ``@context`` and ``@type`` first; fields without a value
        are left out

    Raises:
        ValueError: If the type is unsupported or a required list is missing
    """
    generator = GENERATORS.get(schema_type)
    if generator is None:
        raise ValueError(f"Unsupported structured data type: {schema_type}")

    block = {"@context": SCHEMA_CONTEXT, **_compact(generator(data))}
    logger.debug(f"Generated {block['@type']} structured data")
    return block


def to_script_tag(block: Dict[str, Any]) -> str:
    """Serialize a JSON-LD block into a ``<script type="application/ld+json">`` tag."""
    payload = json.dumps(block, ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">{payload}</script>'
