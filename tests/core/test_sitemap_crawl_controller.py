# tests/core/test_sitemap_crawl_controller.py
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from auditor.model import AnalysisResult
from crawler.controllers.sitemap_crawl_controller import SitemapCrawlController, parse_sitemap_urls
from crawler.model import PageResponse
from seo_report.exceptions import FetchError

SITEMAP_URL = "https://example.com/sitemap.xml"

SITEMAP_XML = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.com/</loc></url>
  <url><loc>https://other.org/page</loc></url>
  <url><loc>https://example.com/a</loc></url>
  <url><loc>https://example.com/b</loc></url>
  <url><loc>https://example.com/c</loc></url>
</urlset>"""

SITEMAP_INDEX = """<sitemapindex>
  <sitemap><loc>https://example.com/sitemap-1.xml</loc></sitemap>
</sitemapindex>"""


@pytest.fixture
def analyzer(report_config):
    analyzer = MagicMock()
    analyzer.config = report_config
    analyzer.http.fetch_page = AsyncMock(
        return_value=PageResponse(url=SITEMAP_URL, status=200, body=SITEMAP_XML)
    )
    analyzer.analyze = AsyncMock(side_effect=lambda url: AnalysisResult(url=url, score=50.0))
    return analyzer


@pytest.fixture
def sleep():
    return AsyncMock()


def test_parse_sitemap_keeps_order_and_site():
    assert parse_sitemap_urls(SITEMAP_XML, SITEMAP_URL) == [
        "https://example.com/",
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]


def test_parse_sitemap_index_yields_nothing():
    assert parse_sitemap_urls(SITEMAP_INDEX, SITEMAP_URL) == []


def test_crawl_respects_cap_and_order(analyzer, sleep):
    controller = SitemapCrawlController(analyzer, sleep=sleep)
    results = asyncio.run(controller.crawl(SITEMAP_URL, max_pages=2))

    assert [result.url for result in results] == ["https://example.com/", "https://example.com/a"]
    # One pause between the two pages, none after the last
    assert sleep.await_count == 1
    delay = sleep.await_args.args[0]
    assert 0.75 <= delay <= 1.25


def test_crawl_without_cap_uses_config_default(analyzer, sleep):
    results = asyncio.run(SitemapCrawlController(analyzer, sleep=sleep).crawl(SITEMAP_URL))
    assert len(results) == 4
    assert sleep.await_count == 3


def test_failing_page_is_skipped(analyzer, sleep):
    def analyze(url):
        if url.endswith("/a"):
            raise FetchError(url, "HTTP 500", status=500)
        return AnalysisResult(url=url, score=80.0)

    analyzer.analyze.side_effect = analyze
    results = asyncio.run(SitemapCrawlController(analyzer, sleep=sleep).crawl(SITEMAP_URL))
    assert [result.url for result in results] == [
        "https://example.com/", "https://example.com/b", "https://example.com/c"
    ]


def test_unreachable_sitemap_raises(analyzer, sleep):
    analyzer.http.fetch_page.side_effect = FetchError(SITEMAP_URL, "timeout")
    with pytest.raises(FetchError):
        asyncio.run(SitemapCrawlController(analyzer, sleep=sleep).crawl(SITEMAP_URL))
    analyzer.analyze.assert_not_awaited()
