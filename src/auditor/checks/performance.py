# src/auditor/checks/performance.py
"""Transfer, caching, image and render-path checks."""
from typing import Any, Dict, List
from urllib.parse import urlparse

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import check_spec
from auditor.model import CheckResult, Importance

HIGH, MEDIUM, LOW = Importance.HIGH, Importance.MEDIUM, Importance.LOW

MODERN_IMAGE_FORMATS = ("webp", "avif", "jxl")
LEGACY_FORMAT_RATIO = 0.5


def _result(importance: Importance, value: Any, errors: Dict[str, Any]) -> CheckResult:
    return CheckResult.evaluate(importance, value, errors)


def _extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    filename = path.rsplit("/", 1)[-1]
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


# --- Transfer ---

@check_spec(names=["text_compression", "brotli_compression"])
def check_compression(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    tokens = ctx.facts.enc_tokens
    compressed = "gzip" in tokens or "br" in tokens
    return {
        "text_compression": _result(HIGH, ctx.stats.size_download, {} if compressed else {"missing": None}),
        "brotli_compression": _result(MEDIUM, None, {} if "br" in tokens else {"missing": None}),
    }


@check_spec(names=["load_time", "ttfb", "page_size", "http_requests"])
def check_transfer(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    stats, config, facts = ctx.stats, ctx.config, ctx.facts

    ttfb = stats.starttransfer_time
    ttfb_limit = config.report_limit_ttfb
    ttfb_errors = {}
    if ttfb > 0 and ttfb_limit > 0 and ttfb > ttfb_limit:
        ttfb_errors = {"too_slow": {"max": ttfb_limit}}

    request_count = sum(len(urls) for urls in facts.http_requests.values())

    return {
        "load_time": _result(
            MEDIUM,
            stats.total_time,
            {"too_slow": {"max": config.report_limit_load_time}}
            if stats.total_time > config.report_limit_load_time else {},
        ),
        "ttfb": _result(MEDIUM, ttfb if ttfb > 0 else None, ttfb_errors),
        "page_size": _result(
            MEDIUM,
            stats.size_download,
            {"too_large": {"max": config.report_limit_page_size}}
            if stats.size_download > config.report_limit_page_size else {},
        ),
        "http_requests": _result(
            MEDIUM,
            facts.http_requests,
            {"too_many": {"max": config.report_limit_http_requests}}
            if request_count > config.report_limit_http_requests else {},
        ),
    }


# --- Caching ---

@check_spec(names=["static_cache_headers", "expires_headers"])
def check_caching(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    expires_missing = facts.expires_header == "" and not facts.has_max_age
    return {
        "static_cache_headers": _result(
            MEDIUM,
            facts.checked_static_assets,
            {"missing": facts.missing_static_cache} if facts.missing_static_cache else {},
        ),
        "expires_headers": _result(
            MEDIUM,
            facts.expires_header or facts.cache_control,
            {"missing": None} if expires_missing else {},
        ),
    }


# --- Redirects & cookies ---

@check_spec(names=["avoid_redirects", "redirect_chains", "cookie_free_domains"])
def check_redirects(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    count = facts.redirect_count

    chain_errors = {}
    if count > 0 or facts.asset_redirects:
        chain_errors = {"main": count, "assets": facts.asset_redirects}

    return {
        "avoid_redirects": _result(
            MEDIUM, count, {"redirects": facts.redirect_history or None} if count > 0 else {}
        ),
        "redirect_chains": _result(MEDIUM, {"main": count, "assets": facts.asset_redirects}, chain_errors),
        "cookie_free_domains": _result(
            LOW,
            facts.main_host,
            {"cookies_on_static": facts.cookie_domain_hits} if facts.cookie_domain_hits else {},
        ),
    }


@check_spec(names=["empty_src_or_href"])
def check_empty_references(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    empty = ctx.facts.empty_src_or_href
    return {"empty_src_or_href": _result(LOW, None, {"empty": empty} if empty else {})}


# --- Images ---

@check_spec(names=["image_format", "image_dimensions", "image_lazy_loading", "image_size_optimization"])
def check_images(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config

    modern: List[Dict[str, str]] = []
    legacy: List[Dict[str, str]] = []
    for entry in facts.image_formats:
        (modern if _extension(entry.get("url", "")) in MODERN_IMAGE_FORMATS else legacy).append(entry)
    total = len(modern) + len(legacy)

    format_errors = {}
    if total > 0 and len(legacy) / total > LEGACY_FORMAT_RATIO:
        format_errors = {"too_many_legacy_formats": {
            "legacy_count": len(legacy),
            "modern_count": len(modern),
            "examples": legacy[:5],
        }}

    missing_dims = facts.images_missing_dimensions
    missing_lazy = facts.images_missing_lazy
    large = facts.large_images

    return {
        "image_format": _result(
            MEDIUM,
            {
                "modern_formats_used": len(modern),
                "legacy_formats_used": len(legacy),
                "recommended_formats": facts.image_formats_config,
            },
            format_errors,
        ),
        "image_dimensions": _result(
            LOW, None, {"missing": missing_dims[:10], "count": len(missing_dims)} if missing_dims else {}
        ),
        "image_lazy_loading": _result(
            LOW, None, {"missing": missing_lazy[:10], "count": len(missing_lazy)} if missing_lazy else {}
        ),
        "image_size_optimization": _result(
            MEDIUM,
            {"max_allowed_bytes": config.report_limit_image_max_bytes, "large_images_count": len(large)},
            {"too_large": large[:5], "count": len(large)} if large else {},
        ),
    }


# --- Core Web Vitals proxies ---

@check_spec(names=["lcp_proxy", "cls_proxy"])
def check_vitals_proxies(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config
    largest = facts.largest_image
    limit = config.report_limit_lcp_proxy_bytes

    lcp_errors = {}
    if largest and limit > 0 and largest.get("bytes", 0) > limit:
        lcp_errors = {"too_large": largest}

    missing_dims = facts.images_missing_dimensions
    return {
        "lcp_proxy": _result(MEDIUM, largest, lcp_errors),
        "cls_proxy": _result(
            MEDIUM,
            len(missing_dims),
            {"missing_dimensions": missing_dims[:5], "count": len(missing_dims)} if missing_dims else {},
        ),
    }


# --- Render path ---

@check_spec(names=["defer_javascript", "render_blocking_resources", "minification"])
def check_render_path(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    blocking = facts.render_blocking
    js_blocking, css_blocking = blocking.get("js", []), blocking.get("css", [])

    minify_errors = {}
    if facts.non_minified_js or facts.non_minified_css:
        minify_errors = {"not_minified": {"js": facts.non_minified_js, "css": facts.non_minified_css}}

    return {
        "defer_javascript": _result(
            LOW, None, {"missing": facts.defer_javascript} if facts.defer_javascript else {}
        ),
        "render_blocking_resources": _result(
            MEDIUM, blocking, {"js": js_blocking, "css": css_blocking} if js_blocking or css_blocking else {}
        ),
        "minification": _result(
            LOW, {"js": len(facts.non_minified_js), "css": len(facts.non_minified_css)}, minify_errors
        ),
    }


# --- Document ---

@check_spec(names=["dom_size", "doctype"])
def check_document(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts, config = ctx.facts, ctx.config
    return {
        "dom_size": _result(
            LOW,
            facts.dom_nodes_count,
            {"too_many": {"max": config.report_limit_max_dom_nodes}}
            if facts.dom_nodes_count > config.report_limit_max_dom_nodes else {},
        ),
        "doctype": _result(MEDIUM, facts.doc_type, {} if facts.doc_type else {"missing": None}),
    }


CHECKS = [
    check_compression,
    check_transfer,
    check_caching,
    check_redirects,
    check_empty_references,
    check_images,
    check_vitals_proxies,
    check_render_path,
    check_document,
]
