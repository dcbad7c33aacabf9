# tests/core/test_robots_txt_service.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from crawler.model import PageResponse
from crawler.services.robots_txt_service import RobotsTxtService, evaluate, parse_robots_txt, rule_matches
from crawler.services.site_probe_service import SiteProbeService

ROBOTS_TXT = """# comment
User-agent: *
Disallow: /private
Disallow: /*.pdf$
Disallow:
Sitemap: https://example.com/sitemap.xml
"""


@pytest.fixture
def mock_http():
    http = MagicMock()
    http.get = AsyncMock()
    return http


# --- Parsing ---

def test_parse_robots_txt_skips_comments():
    directives = parse_robots_txt(ROBOTS_TXT)
    assert directives[0] == ("user-agent", "*")
    assert ("sitemap", "https://example.com/sitemap.xml") in directives
    assert all(not name.startswith("#") for name, _ in directives)


@pytest.mark.parametrize("rule,path,expected", [
    ("/private", "/private/area", True),
    ("/private", "/public", False),
    ("/*.pdf$", "/docs/file.pdf", True),
    ("/*.pdf$", "/docs/file.pdf.html", False),
])
def test_rule_matches(rule, path, expected):
    assert rule_matches(rule, path) is expected


def test_evaluate_collects_failed_rules_and_sitemaps():
    report = evaluate(parse_robots_txt(ROBOTS_TXT), "https://example.com/private/page")
    assert report.allowed is False
    assert report.rules_failed == ["/private"]
    assert report.sitemaps == ["https://example.com/sitemap.xml"]


def test_empty_disallow_allows_everything():
    assert evaluate(parse_robots_txt("Disallow:"), "https://example.com/anything").allowed is True


# --- Service ---

def test_robots_txt_is_fetched_once_per_site(mock_http):
    mock_http.get.return_value = PageResponse(url="https://example.com/robots.txt", status=200, body=ROBOTS_TXT)
    service = RobotsTxtService(mock_http)

    async def run():
        return await asyncio.gather(
            service.check("https://example.com/private"),
            service.check("https://example.com/open"),
        )

    blocked, allowed = asyncio.run(run())
    assert blocked.allowed is False
    assert allowed.allowed is True
    mock_http.get.assert_awaited_once_with("https://example.com/robots.txt")


def test_missing_robots_txt_allows_all(mock_http):
    mock_http.get.return_value = PageResponse(url="https://example.com/robots.txt", status=404)
    report = asyncio.run(RobotsTxtService(mock_http).check("https://example.com/private"))
    assert report.allowed is True
    assert report.sitemaps == []


def test_unreachable_robots_txt_allows_all(mock_http):
    mock_http.get.return_value = None
    assert asyncio.run(RobotsTxtService(mock_http).check("https://example.com/")).allowed is True


# --- 404 probe ---

def test_not_found_probe_detects_real_404(mock_http):
    mock_http.get.return_value = PageResponse(url="https://example.com/404-x", status=404)
    service = SiteProbeService(mock_http)

    result = asyncio.run(service.not_found_page("https://example.com/blog/post"))
    assert result.startswith("https://example.com/404-")
    probed_url = mock_http.get.await_args.args[0]
    assert probed_url == result


def test_not_found_probe_soft_404_is_missing_and_cached(mock_http):
    mock_http.get.return_value = PageResponse(url="https://example.com/", status=200)
    service = SiteProbeService(mock_http)

    async def run():
        first = await service.not_found_page("https://example.com/a")
        second = await service.not_found_page("https://example.com/b")
        return first, second

    assert asyncio.run(run()) == (None, None)
    assert mock_http.get.await_count == 1


def test_site_probe_combines_robots_and_404(mock_http):
    async def fake_get(url):
        if url.endswith("/robots.txt"):
            return PageResponse(url=url, status=200, body=ROBOTS_TXT)
        return PageResponse(url=url, status=404)

    mock_http.get.side_effect = fake_get
    facts = asyncio.run(SiteProbeService(mock_http).probe("https://example.com/private/x"))

    assert facts["robots"] is False
    assert facts["robots_rules_failed"] == ["/private"]
    assert facts["sitemaps"] == ["https://example.com/sitemap.xml"]
    assert facts["not_found_page"].startswith("https://example.com/404-")
    assert facts["security_txt_url"] is None


# --- security.txt ---

def test_security_txt_falls_back_to_root_and_is_cached(mock_http):
    async def fake_get(url):
        status = 200 if url == "https://example.com/security.txt" else 404
        return PageResponse(url=url, status=status)

    mock_http.get.side_effect = fake_get
    service = SiteProbeService(mock_http)

    async def run():
        first = await service.security_txt("https://example.com/a")
        second = await service.security_txt("https://example.com/b")
        return first, second

    assert asyncio.run(run()) == ("https://example.com/security.txt", "https://example.com/security.txt")
    requested = [call.args[0] for call in mock_http.get.await_args_list]
    assert requested == ["https://example.com/.well-known/security.txt", "https://example.com/security.txt"]


def test_security_txt_unreachable(mock_http):
    mock_http.get.return_value = None
    assert asyncio.run(SiteProbeService(mock_http).security_txt("https://example.com/")) is None
