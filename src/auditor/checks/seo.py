# src/auditor/checks/seo.py
"""On-page SEO checks: title, description, headings, keywords, links and indexing signals."""
import re
from typing import Any, Dict

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import check_spec
from auditor.model import CheckResult, Importance
from crawler.utils.url_utils import UrlUtils
from parser.utils.text_utils import intersect

HIGH, MEDIUM, LOW = Importance.HIGH, Importance.MEDIUM, Importance.LOW

TITLE_OPTIMAL = (50, 60)
DESCRIPTION_OPTIMAL = (120, 160)
OPEN_GRAPH_REQUIRED = ("og:title", "og:description", "og:image")
TWITTER_REQUIRED = ("twitter:card", "twitter:title", "twitter:description", "twitter:image")
RESTRICTIVE_DIRECTIVES = ("nofollow", "noarchive", "nosnippet", "noimageindex")
NOINDEX_PATTERN = re.compile(r"\bnoindex\b", re.IGNORECASE)


def _result(importance: Importance, value: Any, errors: Dict[str, Any]) -> CheckResult:
    return CheckResult.evaluate(importance, value, errors)


# --- Title & description ---

@check_spec(names=["title", "title_optimal_length"])
def check_title(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config
    title = facts.title

    # Only the last failing condition is reported.
    errors: Dict[str, Any] = {}
    if not title:
        errors = {"missing": None}
    else:
        if not config.report_limit_min_title <= len(title) <= config.report_limit_max_title:
            errors = {"length": {"min": config.report_limit_min_title, "max": config.report_limit_max_title}}
        if facts.title_tags_count > 1:
            errors = {"too_many": None}

    length = len(title or "")
    low, high = TITLE_OPTIMAL
    optimal_errors = {}
    if not low <= length <= high:
        optimal_errors = {"not_optimal": {"optimal": f"{low}-{high}", "current": length}}

    return {
        "title": _result(HIGH, title, errors),
        "title_optimal_length": _result(LOW, length, optimal_errors),
    }


@check_spec(names=["meta_description", "meta_description_optimal_length"])
def check_meta_description(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    description = ctx.facts.meta_description
    length = len(description or "")
    low, high = DESCRIPTION_OPTIMAL

    optimal_errors = {}
    if description and not low <= length <= high:
        optimal_errors = {"not_optimal": {"optimal": f"{low}-{high}", "current": length}}

    return {
        "meta_description": _result(HIGH, description, {} if description else {"missing": None}),
        "meta_description_optimal_length": _result(LOW, length, optimal_errors),
    }


# --- Headings ---

@check_spec(names=["headings", "h1_usage", "header_tag_usage"])
def check_headings(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    h1_texts = facts.headings.get("h1", [])

    errors: Dict[str, Any] = {}
    if facts.h1_count == 0:
        errors = {"missing": None}
    if facts.h1_count > 1:
        errors = {"too_many": None}
    if h1_texts and facts.title is not None and h1_texts[0] == facts.title:
        errors = {"duplicate": None}

    h1_errors: Dict[str, Any] = {}
    if facts.h1_count == 0:
        h1_errors["missing"] = None
    elif facts.h1_count > 1:
        h1_errors["multiple"] = facts.h1_count

    return {
        "headings": _result(HIGH, facts.headings, errors),
        "h1_usage": _result(MEDIUM, facts.h1_count, h1_errors),
        "header_tag_usage": _result(
            MEDIUM,
            facts.secondary_heading_usage,
            {"missing": None} if facts.secondary_heading_levels == 0 else {},
        ),
    }


# --- Keywords ---

@check_spec(names=["content_keywords", "keyword_consistency", "image_keywords"])
def check_keywords(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    overlap = intersect(facts.title_keywords, facts.body_keywords)

    consistency = facts.keyword_consistency
    consistency_errors: Dict[str, Any] = {}
    if facts.title_keywords:
        if not consistency.get("in_meta_description"):
            consistency_errors["no_title_keywords_in_meta"] = consistency.get("missing_in_meta", [])
        if not consistency.get("in_headings"):
            consistency_errors["no_title_keywords_in_headings"] = consistency.get("missing_in_headings", [])

    return {
        "content_keywords": _result(HIGH, overlap, {} if overlap else {"missing": facts.title_keywords}),
        "keyword_consistency": _result(MEDIUM, consistency, consistency_errors),
        "image_keywords": _result(HIGH, None, {"missing": facts.image_alts} if facts.image_alts else {}),
    }


# --- Social metadata ---

@check_spec(names=["open_graph", "twitter_cards"])
def check_social_metadata(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    og_missing = [key for key in OPEN_GRAPH_REQUIRED if not facts.open_graph_data.get(key)]
    twitter_missing = [key for key in TWITTER_REQUIRED if not facts.twitter_data.get(key)]
    return {
        "open_graph": _result(LOW, facts.open_graph_data, {"missing": og_missing} if og_missing else {}),
        "twitter_cards": _result(LOW, facts.twitter_data, {"missing": twitter_missing} if twitter_missing else {}),
    }


# --- URL & canonical ---

@check_spec(names=["seo_friendly_url"])
def check_seo_friendly_url(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    current_url = facts.current_url or ctx.url
    lowered = current_url.lower()

    errors: Dict[str, Any] = {}
    if UrlUtils.is_unfriendly(current_url):
        errors["bad_format"] = None
    if not any(keyword in lowered for keyword in facts.title_keywords):
        errors["missing"] = None

    return {"seo_friendly_url": _result(HIGH, current_url, errors)}


@check_spec(names=["canonical_tag", "canonical_self_reference"])
def check_canonical(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    canonical = facts.canonical_tag

    self_errors: Dict[str, Any] = {}
    if canonical is None:
        self_errors["missing"] = None
    else:
        current = facts.current_url or ctx.url
        if ctx.normalize_url_for_canonical(current) != ctx.normalize_url_for_canonical(canonical):
            self_errors["not_self_reference"] = {"current": current, "canonical": canonical}
        if len(facts.canonical_tags) > 1:
            self_errors["duplicates"] = list(dict.fromkeys(facts.canonical_tags))

    return {
        "canonical_tag": _result(MEDIUM, canonical, {} if canonical else {"missing": None}),
        "canonical_self_reference": _result(LOW, canonical, self_errors),
    }


@check_spec(names=["hreflang"])
def check_hreflang(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    hreflang = ctx.facts.hreflang
    return {"hreflang": _result(LOW, hreflang, {} if hreflang else {"missing": None})}


# --- Indexing ---

@check_spec(names=["404_page"])
def check_not_found_page(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    page = ctx.facts.not_found_page
    return {"404_page": _result(HIGH, page, {} if page else {"missing": None})}


@check_spec(names=["robots", "noindex", "robots_directives", "noindex_header"])
def check_indexing(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts

    directives = [d for d in dict.fromkeys(facts.robots_directives) if d]
    restricted = [d for d in directives if d in RESTRICTIVE_DIRECTIVES]

    header_value = facts.noindex_header_value
    header_noindex = bool(header_value and NOINDEX_PATTERN.search(header_value))

    return {
        "robots": _result(HIGH, None, {} if facts.robots else {"failed": facts.robots_rules_failed}),
        "noindex": _result(HIGH, facts.noindex, {"noindex": facts.noindex} if facts.noindex is not None else {}),
        "robots_directives": _result(MEDIUM, directives, {"restricted": restricted} if restricted else {}),
        "noindex_header": _result(HIGH, header_value, {"noindex": header_value} if header_noindex else {}),
    }


# --- Links ---

@check_spec(names=["in_page_links", "nofollow_links", "link_url_readability"])
def check_links(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config
    total_links = sum(len(links) for links in facts.page_links.values())

    return {
        "in_page_links": _result(
            MEDIUM,
            facts.page_links,
            {"too_many": {"max": config.report_limit_max_links}} if total_links > config.report_limit_max_links else {},
        ),
        "nofollow_links": _result(
            LOW, facts.nofollow_count, {"found": facts.nofollow_links} if facts.nofollow_links else {}
        ),
        "link_url_readability": _result(
            LOW, None, {"unfriendly_urls": facts.unfriendly_link_urls} if facts.unfriendly_link_urls else {}
        ),
    }


# --- Document attributes ---

@check_spec(names=["language", "favicon"])
def check_document_attributes(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "language": _result(MEDIUM, facts.language, {} if facts.language else {"missing": None}),
        "favicon": _result(MEDIUM, facts.favicon, {} if facts.favicon else {"missing": None}),
    }


CHECKS = [
    check_title,
    check_meta_description,
    check_headings,
    check_keywords,
    check_social_metadata,
    check_seo_friendly_url,
    check_canonical,
    check_hreflang,
    check_not_found_page,
    check_indexing,
    check_links,
    check_document_attributes,
]
