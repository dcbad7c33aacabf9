# src/auditor/checks/misc.py
from typing import Any, Dict, Iterator, List

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import check_spec
from auditor.model import CheckResult, Importance

HIGH, MEDIUM, LOW = Importance.HIGH, Importance.MEDIUM, Importance.LOW

# Properties a search engine expects for each schema.org type.
SCHEMA_REQUIREMENTS: Dict[str, List[str]] = {
    "Article": ["headline", "author", "datePublished"],
    "NewsArticle": ["headline", "author", "datePublished", "dateModified"],
    "BlogPosting": ["headline", "author", "datePublished"],
    "Product": ["name", "offers", "description"],
    "LocalBusiness": ["name", "address", "telephone"],
    "Organization": ["name", "url", "logo"],
    "Person": ["name"],
    "Event": ["name", "startDate", "location"],
    "Recipe": ["name", "recipeIngredient", "recipeInstructions"],
    "FAQPage": ["mainEntity"],
    "HowTo": ["name", "step"],
    "BreadcrumbList": ["itemListElement"],
    "WebSite": ["name", "url"],
    "WebPage": ["name"],
    "VideoObject": ["name", "thumbnailUrl", "contentUrl"],
    "ImageObject": ["url"],
}
IMAGE_PROPERTIES = ("image", "thumbnailUrl", "logo", "photo", "contentUrl")
VALID_IMAGE_PREFIXES = ("http://", "https://", "data:image/", "/")
MIN_QUALITY_SCORE = 3


def _result(importance: Importance, value: Any, errors: Dict[str, Any]) -> CheckResult:
    return CheckResult.evaluate(importance, value, errors)


def _missing_unless(value: Any) -> Dict[str, Any]:
    return {} if value else {"missing": None}


@check_spec(names=["structured_data", "meta_viewport", "charset"])
def check_document_metadata(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "structured_data": _result(MEDIUM, facts.structured_data, _missing_unless(facts.structured_data)),
        "meta_viewport": _result(MEDIUM, facts.meta_viewport, _missing_unless(facts.meta_viewport)),
        "charset": _result(MEDIUM, facts.charset, _missing_unless(facts.charset)),
    }


@check_spec(names=["sitemap", "social", "llms_txt"])
def check_site_resources(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "sitemap": _result(LOW, facts.sitemaps, {} if facts.sitemaps else {"failed": None}),
        "social": _result(LOW, facts.social, _missing_unless(facts.social)),
        "llms_txt": _result(LOW, facts.llms_txt_url, _missing_unless(facts.llms_txt_url)),
    }


@check_spec(names=["content_length", "text_html_ratio"])
def check_content(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config
    words = len(facts.body_keywords)
    return {
        "content_length": _result(
            LOW, words,
            {"too_few": {"min": config.report_limit_min_words}} if words < config.report_limit_min_words else {},
        ),
        "text_html_ratio": _result(
            LOW, facts.text_ratio,
            {"too_small": {"min": config.report_limit_min_text_ratio}}
            if facts.text_ratio < config.report_limit_min_text_ratio else {},
        ),
    }


@check_spec(names=["inline_css", "deprecated_html_tags", "flash_content", "iframes"])
def check_legacy_markup(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    # A single inline style (or deprecated tag) is tolerated.
    return {
        "inline_css": _result(
            LOW, None, {"failed": facts.inline_css} if len(facts.inline_css) > 1 else {}
        ),
        "deprecated_html_tags": _result(
            LOW, None, {"bad_tags": facts.deprecated_html_tags} if len(facts.deprecated_html_tags) > 1 else {}
        ),
        "flash_content": _result(
            LOW, None, {"found": facts.flash_content} if facts.flash_content else {}
        ),
        "iframes": _result(LOW, facts.iframes, {}),
    }


# --- JSON-LD validation ---

def _walk(data: Any) -> Iterator[Dict[str, Any]]:
    """Yields every object nested anywhere in a decoded JSON-LD value."""
    if isinstance(data, dict):
        yield data
        for value in data.values():
            yield from _walk(value)
    elif isinstance(data, list):
        for item in data:
            yield from _walk(item)


def _graph_items(block: Dict[str, Any]) -> List[Dict[str, Any]]:
    graph = block.get("@graph")
    return [item for item in graph if isinstance(item, dict)] if isinstance(graph, list) else []


def _types(node: Dict[str, Any]) -> List[str]:
    value = node.get("@type")
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _image_urls(block: Dict[str, Any]) -> List[str]:
    urls: List[str] = []
    for node in _walk(block):
        for prop in IMAGE_PROPERTIES:
            value = node.get(prop)
            if isinstance(value, str):
                urls.append(value)
            elif isinstance(value, dict) and isinstance(value.get("url"), str):
                urls.append(value["url"])
    return urls


def _has_schema_context(context: Any) -> bool:
    values = context if isinstance(context, list) else [context]
    return any(isinstance(value, str) and "schema.org" in value.lower() for value in values)


@check_spec(names=[
    "json_ld_validation", "schema_requirements", "duplicate_ids",
    "structured_data_images", "schema_context", "structured_data_quality",
])
def check_json_ld(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    blocks, invalid = facts.json_ld, facts.structured_data_errors
    total = len(blocks) + len(invalid)

    syntax_errors: Dict[str, Any] = {}
    if total == 0:
        syntax_errors = {"missing": None}
    elif invalid:
        syntax_errors = {"invalid": invalid, "count": len(invalid)}

    issues: List[Dict[str, Any]] = []
    for block in blocks:
        nodes = [block] + _graph_items(block)
        for type_name in [name for node in nodes for name in _types(node)]:
            required = SCHEMA_REQUIREMENTS.get(type_name)
            if not required:
                continue
            missing = [prop for prop in required if not any(prop in node for node in nodes)]
            if missing:
                issues.append({"type": type_name, "missing_properties": missing})

    seen: Dict[str, bool] = {}
    duplicates: List[str] = []
    for block in blocks:
        for node in _walk(block):
            node_id = node.get("@id")
            if not isinstance(node_id, str):
                continue
            if node_id in seen:
                duplicates.append(node_id)
            seen[node_id] = True

    images = [url for block in blocks for url in _image_urls(block)]
    bad_images = [url for url in images if not url.startswith(VALID_IMAGE_PREFIXES)]

    missing_context = sum(1 for block in blocks if "@context" not in block)
    non_standard = sum(
        1 for block in blocks if "@context" in block and not _has_schema_context(block["@context"])
    )
    context_errors: Dict[str, Any] = {}
    if not blocks:
        context_errors = {"missing": None}
    else:
        if missing_context:
            context_errors["missing_context"] = missing_context
        if non_standard:
            context_errors["non_standard_context"] = non_standard

    structured = facts.structured_data
    signals = {
        "has_json_ld": bool(blocks),
        "has_open_graph": bool(structured.get("Open Graph")),
        "has_twitter": bool(structured.get("Twitter")),
        "has_schema_org": bool(structured.get("Schema.org")),
    }
    score = (
        3 * signals["has_json_ld"] + signals["has_open_graph"]
        + signals["has_twitter"] + signals["has_schema_org"]
    )

    return {
        "json_ld_validation": _result(
            HIGH, {"total_scripts": total, "valid": len(blocks), "invalid": len(invalid)}, syntax_errors
        ),
        "schema_requirements": _result(
            MEDIUM, {"schemas_checked": len(blocks), "issues_found": len(issues)},
            {"issues": issues} if issues else {},
        ),
        "duplicate_ids": _result(
            MEDIUM, {"total_ids": len(seen), "duplicates_found": len(duplicates)},
            {"duplicates": duplicates} if duplicates else {},
        ),
        "structured_data_images": _result(
            LOW, {"total_images": len(images), "invalid_urls": len(bad_images)},
            {"invalid": bad_images[:5], "count": len(bad_images)} if bad_images else {},
        ),
        "schema_context": _result(
            HIGH,
            {"total_scripts": len(blocks), "missing_context": missing_context, "invalid_context": non_standard},
            context_errors,
        ),
        "structured_data_quality": _result(
            HIGH, {"score": score, **signals},
            {"too_low": {"score": score, "min": MIN_QUALITY_SCORE}} if score < MIN_QUALITY_SCORE else {},
        ),
    }


CHECKS = [
    check_document_metadata,
    check_site_resources,
    check_content,
    check_legacy_markup,
    check_json_ld,
]
