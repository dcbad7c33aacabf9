# tests/conftest.py
import pytest
from bs4 import BeautifulSoup

from auditor.checks.context import AnalysisContext
from crawler.model import PageResponse, RequestStats
from parser.model import PageFacts
from seo_report.model import SeoReportConfig

PAGE_URL = "https://example.com/"


@pytest.fixture
def report_config() -> SeoReportConfig:
    """Default configuration with a fixed user agent."""
    return SeoReportConfig(request_user_agent="seo-report-tests")


@pytest.fixture
def make_soup():
    def _make(html: str) -> BeautifulSoup:
        return BeautifulSoup(html, "html.parser")
    return _make


@pytest.fixture
def make_context(report_config):
    """
    Builds an AnalysisContext from fact overrides, so a check can be
    exercised without fetching or parsing anything.
    """
    def _make(config=None, stats=None, url=PAGE_URL, **facts) -> AnalysisContext:
        stats = stats or RequestStats(url=url, total_time=0.5, size_download=1000, starttransfer_time=0.1)
        return AnalysisContext(
            url=url,
            facts=PageFacts(**facts),
            response=PageResponse(url=url, status=200, stats=stats),
            stats=stats,
            config=config or report_config,
        )
    return _make
