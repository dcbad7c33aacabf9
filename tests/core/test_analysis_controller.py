# tests/core/test_analysis_controller.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from auditor.controllers.analysis_controller import SeoAnalyzer
from auditor.model import CheckResult, Importance
from crawler.model import AssetProbe, PageResponse, RequestStats
from seo_report.exceptions import FetchError

MINIMAL_HTML = "<html><head><title>Test Page Title</title></head><body></body></html>"

EMPTY_DOMAIN_FACTS = {
    "server_ip": None,
    "dns_servers": [],
    "dmarc_record": None,
    "spf_record": None,
    "ssl_certificate": None,
    "reverse_dns": None,
    "llms_txt_url": None,
}


def _response(url="https://example.com", body=MINIMAL_HTML, **headers) -> PageResponse:
    return PageResponse(
        url=url,
        status=200,
        body=body,
        headers=headers,
        stats=RequestStats(url=url, total_time=0.2, size_download=len(body), starttransfer_time=0.05),
    )


@pytest.fixture
def mocks():
    http = MagicMock()
    http.fetch_page = AsyncMock(return_value=_response())
    http.head = AsyncMock(return_value=None)
    http.initialize = AsyncMock()
    http.close = AsyncMock()

    site_probe = MagicMock()
    site_probe.probe = AsyncMock(return_value={
        "robots": True,
        "robots_rules_failed": [],
        "sitemaps": ["https://example.com/sitemap.xml"],
        "not_found_page": "https://example.com/404-abc",
        "security_txt_url": None,
    })

    domain_data = MagicMock()
    domain_data.collect = AsyncMock(return_value=dict(EMPTY_DOMAIN_FACTS))
    return http, site_probe, domain_data


@pytest.fixture
def analyzer(report_config, mocks):
    http, site_probe, domain_data = mocks
    return SeoAnalyzer(report_config, http=http, site_probe=site_probe, domain_data=domain_data)


def test_minimal_page_title(analyzer, mocks):
    report = asyncio.run(analyzer.analyze("example.com"))

    title = report.results["title"]
    assert title.value == "Test Page Title"
    assert title.importance == "high"
    assert title.passed is True

    assert report.url == "https://example.com"
    assert 0 <= report.score <= 100
    mocks[0].fetch_page.assert_awaited_once_with("https://example.com")


def test_report_probe_facts_reach_checks(analyzer):
    report = asyncio.run(analyzer.analyze("https://example.com"))
    assert report.results["404_page"].passed is True
    assert report.results["sitemap"].value == ["https://example.com/sitemap.xml"]
    assert report.results["robots"].passed is True


def test_categories_only_list_produced_results(analyzer):
    report = asyncio.run(analyzer.analyze("https://example.com"))
    listed = [name for names in report.categories.values() for name in names]
    assert set(listed) == set(report.results)
    assert "http2" not in report.categories["security"]


def test_response_headers_become_facts(analyzer, mocks):
    http = mocks[0]
    http.fetch_page.return_value = _response(**{
        "Content-Encoding": "br",
        "Server": "nginx",
        "X-Robots-Tag": "noindex",
        "Cache-Control": "max-age=300",
    })
    report = asyncio.run(analyzer.analyze("https://example.com"))
    assert report.results["brotli_compression"].passed is True
    assert report.results["server_signature"].passed is False
    assert report.results["noindex_header"].passed is False
    assert report.results["expires_headers"].passed is True


def test_fetch_failure_raises(analyzer, mocks):
    mocks[0].fetch_page.side_effect = FetchError("https://example.com", "Cannot connect to host")
    with pytest.raises(FetchError, match="Could not fetch URL"):
        asyncio.run(analyzer.analyze("https://example.com"))
    mocks[1].probe.assert_not_awaited()


def test_render_results_are_merged(report_config, mocks):
    http, site_probe, domain_data = mocks
    render = MagicMock()
    render.is_available = AsyncMock(return_value=True)
    render.analyze = AsyncMock(return_value={
        "core_web_vitals": CheckResult.evaluate(Importance.HIGH, {"lcp": 1200}, {}),
    })
    analyzer = SeoAnalyzer(
        report_config, http=http, site_probe=site_probe, domain_data=domain_data, render_service=render
    )

    async def run():
        await analyzer.analyze("https://example.com")
        return await analyzer.analyze("https://example.com")

    report = asyncio.run(run())
    assert "core_web_vitals" in report.categories["performance"]
    assert report.results["core_web_vitals"].passed is True
    # Docker availability is checked once per analyzer
    render.is_available.assert_awaited_once()


def test_render_service_unavailable_is_skipped(report_config, mocks):
    http, site_probe, domain_data = mocks
    render = MagicMock()
    render.is_available = AsyncMock(return_value=False)
    render.analyze = AsyncMock()
    analyzer = SeoAnalyzer(
        report_config, http=http, site_probe=site_probe, domain_data=domain_data, render_service=render
    )

    report = asyncio.run(analyzer.analyze("https://example.com"))
    assert "core_web_vitals" not in report.results
    render.analyze.assert_not_awaited()


def test_context_manager_closes_session(analyzer, mocks):
    async def run():
        async with analyzer:
            pass

    asyncio.run(run())
    mocks[0].initialize.assert_awaited_once()
    mocks[0].close.assert_awaited_once()


def test_lazy_image_weight_is_checked(report_config, mocks):
    http, site_probe, domain_data = mocks
    body = '<html><head><title>Gallery</title></head><body><img src="/big.jpg" loading="lazy"></body></html>'
    http.fetch_page.return_value = _response(body=body)
    http.head.side_effect = lambda url: AssetProbe(
        url=url, status=200, final_url=url, headers={"Content-Length": "500000"}
    )
    config = report_config.model_copy(update={"report_limit_image_max_bytes": 100000})
    analyzer = SeoAnalyzer(config, http=http, site_probe=site_probe, domain_data=domain_data)

    report = asyncio.run(analyzer.analyze("https://example.com"))
    result = report.results["image_size_optimization"]
    assert result.passed is False
    assert result.errors["too_large"] == [{"url": "https://example.com/big.jpg", "bytes": 500000}]


def test_page_cookie_fails_cookie_free_domains(analyzer, mocks):
    http = mocks[0]
    body = '<html><head><title>Shop</title><link rel="stylesheet" href="/s.css"></head><body></body></html>'
    http.fetch_page.return_value = _response(body=body, **{"Set-Cookie": "sid=1"})
    http.head.side_effect = lambda url: AssetProbe(
        url=url, status=200, final_url=url, headers={"Cache-Control": "max-age=60"}
    )

    report = asyncio.run(analyzer.analyze("https://example.com"))
    result = report.results["cookie_free_domains"]
    assert result.passed is False
    assert result.errors == {"cookies_on_static": ["https://example.com/s.css"]}


def test_security_headers_become_facts(analyzer, mocks):
    mocks[0].fetch_page.return_value = _response(**{
        "Content-Security-Policy": "default-src 'self'",
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
    })
    report = asyncio.run(analyzer.analyze("https://example.com"))
    assert report.results["content_security_policy"].passed is True
    assert report.results["x_frame_options"].passed is True
    assert report.results["x_content_type_options"].passed is True
    assert report.results["referrer_policy"].passed is False


def test_broken_json_ld_is_a_finding(analyzer, mocks):
    body = (
        "<html><head><title>Broken data</title>"
        '<script type="application/ld+json">{"@context": "https://schema.org", broken</script>'
        "</head><body></body></html>"
    )
    mocks[0].fetch_page.return_value = _response(body=body)

    report = asyncio.run(analyzer.analyze("https://example.com"))
    validation = report.results["json_ld_validation"]
    assert validation.passed is False
    assert validation.errors["count"] == 1
    assert "json_ld_validation" in report.categories["miscellaneous"]
