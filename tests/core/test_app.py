# tests/core/test_app.py
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from auditor.model import AnalysisResult
from seo_report import app
from seo_report.exceptions import ConfigError, FetchError


@pytest.fixture
def fake_analyzer():
    """Patches SeoAnalyzer in the CLI with an async context manager mock."""
    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(return_value=AnalysisResult(url="https://example.com", score=42.0))
    analyzer.__aenter__ = AsyncMock(return_value=analyzer)
    analyzer.__aexit__ = AsyncMock(return_value=False)

    with patch.object(app, "SeoAnalyzer", return_value=analyzer), \
            patch.object(app, "configure_logger"), \
            patch.object(app.config_manager, "build_report_config", return_value=MagicMock()):
        yield analyzer


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        app.build_parser().parse_args([])


def test_parser_sitemap_options():
    args = app.build_parser().parse_args(["sitemap", "https://example.com/sitemap.xml", "--max-pages", "5"])
    assert args.command == "sitemap"
    assert args.max_pages == 5
    assert args.progress is False


def test_analyze_prints_json_report(fake_analyzer, capsys):
    assert app.main(["--indent", "0", "analyze", "example.com"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["url"] == "https://example.com"
    assert report["score"] == 42.0
    fake_analyzer.analyze.assert_awaited_once_with("example.com")


def test_sitemap_command_uses_crawler(fake_analyzer, capsys):
    crawler = MagicMock()
    crawler.crawl = AsyncMock(return_value=[AnalysisResult(url="https://example.com/a", score=10.0)])
    with patch.object(app, "SitemapCrawlController", return_value=crawler) as controller_cls:
        assert app.main(["sitemap", "https://example.com/sitemap.xml", "--max-pages", "1"]) == 0

    controller_cls.assert_called_once_with(fake_analyzer, show_progress=False)
    crawler.crawl.assert_awaited_once_with("https://example.com/sitemap.xml", max_pages=1)
    assert json.loads(capsys.readouterr().out)[0]["url"] == "https://example.com/a"


def test_fetch_error_exit_code(fake_analyzer):
    fake_analyzer.analyze.side_effect = FetchError("https://example.com", "timeout")
    assert app.main(["analyze", "https://example.com"]) == 1


def test_config_error_exit_code(fake_analyzer):
    with patch.object(app.config_manager, "build_report_config", side_effect=ConfigError("bad config")):
        assert app.main(["analyze", "https://example.com"]) == 2
