# src/auditor/checks/technology.py
from typing import Any, Dict

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import check_spec
from auditor.model import CheckResult, Importance

MEDIUM, LOW = Importance.MEDIUM, Importance.LOW


def _result(importance: Importance, value: Any, errors: Dict[str, Any]) -> CheckResult:
    return CheckResult.evaluate(importance, value, errors)


@check_spec(names=["server_ip", "dns_servers", "dmarc_record", "spf_record", "reverse_dns"])
def check_dns(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    host = facts.host_str

    def missing_when(absent: bool) -> Dict[str, None]:
        return {"missing": None} if absent and host else {}

    return {
        "server_ip": _result(LOW, facts.server_ip, {"unresolved": None} if not facts.server_ip and host else {}),
        "dns_servers": _result(LOW, facts.dns_servers, missing_when(not facts.dns_servers)),
        "dmarc_record": _result(LOW, facts.dmarc_record, missing_when(facts.dmarc_record is None)),
        "spf_record": _result(LOW, facts.spf_record, missing_when(facts.spf_record is None)),
        "reverse_dns": _result(LOW, facts.reverse_dns, {}),
    }


@check_spec(names=["ssl_certificate"])
def check_ssl_certificate(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    certificate = facts.ssl_certificate

    errors = {}
    if certificate is None:
        if facts.host_str and facts.base_url.startswith("https://"):
            errors = {"unavailable": None}
    elif not certificate.get("valid"):
        errors = {"invalid_or_expired": None}

    return {"ssl_certificate": _result(MEDIUM, certificate, errors)}


@check_spec(names=["analytics", "technology_detection"])
def check_fingerprints(ctx: AnalysisContext) -> Dict[str, CheckResult]:
    facts = ctx.facts
    return {
        "analytics": _result(LOW, facts.analytics_detected, {}),
        "technology_detection": _result(LOW, facts.technology_detected, {}),
    }


CHECKS = [
    check_dns,
    check_ssl_certificate,
    check_fingerprints,
]
