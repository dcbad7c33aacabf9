# src/auditor/checks/security.py
"""Transport, markup and response header security checks."""
from typing import Any, Dict, List, Optional

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import check_spec
from auditor.model import CheckResult, Importance
from crawler.utils.url_utils import UrlUtils

HIGH, MEDIUM, LOW = Importance.HIGH, Importance.MEDIUM, Importance.LOW


def _result(importance: Importance, value: Any, errors: Dict[str, Any],
            warnings: Optional[Dict[str, Any]] = None) -> CheckResult:
    return CheckResult.evaluate(importance, value, errors, warnings)


@check_spec(names=["https_encryption", "http2"])
def check_transport(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    url = ctx.stats.url
    results = {
        "https_encryption": _result(
            HIGH, url, {} if UrlUtils.get_scheme(url) == "https" else {"missing": "https"}
        ),
    }
    # Only meaningful when HTTP/2 was requested.
    if ctx.config.request_http_version == "2":
        protocol = ctx.facts.http_version
        results["http2"] = _result(MEDIUM, protocol, {} if protocol == "2" else {"failed": None})
    return results


@check_spec(names=["mixed_content", "unsafe_cross_origin_links", "plaintext_email"])
def check_markup(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "mixed_content": _result(
            MEDIUM, None, {"failed": facts.mixed_content} if facts.mixed_content else {}
        ),
        "unsafe_cross_origin_links": _result(
            MEDIUM, None, {"failed": facts.unsafe_cross_origin_links} if facts.unsafe_cross_origin_links else {}
        ),
        "plaintext_email": _result(
            LOW, None, {"failed": facts.plaintext_emails} if facts.plaintext_emails else {}
        ),
    }


@check_spec(names=["server_signature", "hsts"])
def check_headers(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "server_signature": _result(
            MEDIUM, facts.server_header, {"failed": None} if facts.server_header else {}
        ),
        "hsts": _result(LOW, facts.hsts_header, {} if facts.hsts_header else {"missing": None}),
    }


# --- Security headers ---

UNSAFE_CSP_PATTERNS = ("'unsafe-inline'", "'unsafe-eval'", "http:", "*")
FRAME_OPTIONS = ("DENY", "SAMEORIGIN")
REFERRER_POLICIES = (
    "no-referrer",
    "no-referrer-when-downgrade",
    "origin",
    "origin-when-cross-origin",
    "same-origin",
    "strict-origin",
    "strict-origin-when-cross-origin",
    "unsafe-url",
)
STRICT_REFERRER_POLICIES = ("no-referrer", "strict-origin-when-cross-origin")
SENSITIVE_FEATURES = ("camera", "microphone", "geolocation", "payment")
CROSS_ORIGIN_POLICIES = {
    "coep": ("cross-origin-embedder-policy", ("require-corp", "credentialless")),
    "coop": ("cross-origin-opener-policy", ("same-origin", "same-origin-allow-popups", "unsafe-none")),
    "corp": ("cross-origin-resource-policy", ("same-origin", "same-site", "cross-origin")),
}
MIN_CROSS_ORIGIN_POLICIES = 2
SECURITY_HEADER_WEIGHTS = {
    "content_security_policy": 3,
    "x_frame_options": 2,
    "x_content_type_options": 2,
    "referrer_policy": 1,
    "permissions_policy": 1,
    "cross_origin_policies": 1,
}
MIN_SECURITY_HEADERS_PERCENTAGE = 70


def parse_csp(policy: str) -> Dict[str, str]:
    """Splits a Content-Security-Policy into directive -> source list."""
    directives: Dict[str, str] = {}
    for part in policy.split(";"):
        part = part.strip()
        if not part:
            continue
        name, _, sources = part.partition(" ")
        directives[name] = sources.strip()
    return directives


def _rating(percentage: float) -> str:
    if percentage >= 90:
        return "A"
    if percentage >= 70:
        return "B"
    if percentage >= 50:
        return "C"
    return "D"


def _csp_result(policy: str) -> CheckResult:
    if not policy:
        return _result(HIGH, {"present": False, "policy": None}, {"missing": None})

    directives = parse_csp(policy)
    unsafe: List[Dict[str, str]] = [
        {"directive": name, "unsafe_value": pattern}
        for name, sources in directives.items()
        for pattern in UNSAFE_CSP_PATTERNS
        if pattern in sources
    ]
    value = {"present": True, "policy": policy, "directives": directives, "unsafe_directives": unsafe}
    return _result(HIGH, value, {}, {"unsafe_directives": unsafe} if unsafe else None)


def _referrer_result(policy: str) -> CheckResult:
    normalized = policy.strip().lower()
    strict = normalized in STRICT_REFERRER_POLICIES
    value = {"present": bool(policy), "value": policy or None, "strict": strict}

    if not policy:
        return _result(MEDIUM, value, {"missing": None})
    if normalized not in REFERRER_POLICIES:
        return _result(MEDIUM, value, {"invalid": policy})
    warnings = None if strict else {"not_strict": {"recommended": list(STRICT_REFERRER_POLICIES)}}
    return _result(MEDIUM, value, {}, warnings)


def _permissions_result(policy: str) -> CheckResult:
    if not policy:
        return _result(MEDIUM, {"present": False, "policy": None}, {"missing": None})
    restricted = [feature for feature in SENSITIVE_FEATURES if f"{feature}=()" in policy]
    return _result(MEDIUM, {"present": True, "policy": policy, "restricted_features": restricted}, {})


def _cross_origin_result(headers: Dict[str, str]) -> CheckResult:
    value: Dict[str, Any] = {}
    for key, (header, allowed) in CROSS_ORIGIN_POLICIES.items():
        policy = headers.get(header, "")
        value[key] = {"present": bool(policy), "value": policy or None, "valid": policy.strip().lower() in allowed}

    missing = [CROSS_ORIGIN_POLICIES[key][0] for key, entry in value.items() if not entry["present"]]
    implemented = len(CROSS_ORIGIN_POLICIES) - len(missing)
    return _result(MEDIUM, value, {"missing": missing} if implemented < MIN_CROSS_ORIGIN_POLICIES else {})


@check_spec(names=[
    "content_security_policy", "x_frame_options", "x_content_type_options", "referrer_policy",
    "permissions_policy", "cross_origin_policies", "security_txt", "security_headers_score",
])
def check_security_headers(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    headers = facts.security_headers

    frame_options = headers.get("x-frame-options", "")
    if not frame_options:
        frame_errors: Dict[str, Any] = {"missing": None}
    elif frame_options.strip().upper() not in FRAME_OPTIONS:
        frame_errors = {"invalid": frame_options}
    else:
        frame_errors = {}

    content_type_options = headers.get("x-content-type-options", "")
    if not content_type_options:
        nosniff_errors: Dict[str, Any] = {"missing": None}
    elif content_type_options.strip().lower() != "nosniff":
        nosniff_errors = {"invalid": content_type_options}
    else:
        nosniff_errors = {}

    results = {
        "content_security_policy": _csp_result(headers.get("content-security-policy", "")),
        "x_frame_options": _result(
            HIGH, {"present": bool(frame_options), "value": frame_options or None}, frame_errors
        ),
        "x_content_type_options": _result(
            HIGH, {"present": bool(content_type_options), "value": content_type_options or None}, nosniff_errors
        ),
        "referrer_policy": _referrer_result(headers.get("referrer-policy", "")),
        "permissions_policy": _permissions_result(headers.get("permissions-policy", "")),
        "cross_origin_policies": _cross_origin_result(headers),
        "security_txt": _result(
            LOW, facts.security_txt_url, {"missing": None} if not facts.security_txt_url and facts.host_str else {}
        ),
    }

    max_score = sum(SECURITY_HEADER_WEIGHTS.values())
    score = sum(weight for name, weight in SECURITY_HEADER_WEIGHTS.items() if results[name].passed)
    percentage = round(score / max_score * 100, 2)
    value = {"score": score, "max_score": max_score, "percentage": percentage, "rating": _rating(percentage)}
    results["security_headers_score"] = _result(
        HIGH, value,
        {"too_low": {"min_percentage": MIN_SECURITY_HEADERS_PERCENTAGE}}
        if percentage < MIN_SECURITY_HEADERS_PERCENTAGE else {},
    )
    return results


CHECKS = [
    check_transport,
    check_markup,
    check_headers,
    check_security_headers,
]
