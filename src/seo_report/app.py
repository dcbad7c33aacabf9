# src/seo_report/app.py
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from auditor.controllers.analysis_controller import SeoAnalyzer
from crawler.controllers.sitemap_crawl_controller import SitemapCrawlController
from seo_report.core.managers.config_manager import config_manager
from seo_report.core.utils.configure_logging import configure_logger
from seo_report.exceptions import ConfigError, FetchError

logger = logging.getLogger(__name__)


def _setup_windows_event_loop_if_needed() -> None:
    """Installs Windows compatible asyncio policy if possible."""
    if not sys.platform.startswith("win"):
        return
    try:
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
        logger.debug("Using WindowsSelectorEventLoopPolicy for asyncio on Windows.")
    except AttributeError as exc:  # pragma: no cover
        logger.warning("Could not set WindowsSelectorEventLoopPolicy: %s", exc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="seo-report", description="Analyze web pages for SEO issues.")
    parser.add_argument("--log-level", default=None, help="Overrides the configured root log level.")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation of the printed report.")

    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a single page.")
    analyze.add_argument("url")

    sitemap = sub.add_parser("sitemap", help="Analyze every page listed in a sitemap.")
    sitemap.add_argument("url")
    sitemap.add_argument("--max-pages", type=int, default=None,
                         help="Maximum number of pages to analyze (<= 0 for no limit).")
    sitemap.add_argument("--progress", action="store_true", help="Show a progress bar.")
    return parser


async def _run(args: argparse.Namespace) -> str:
    config = config_manager.build_report_config()
    async with SeoAnalyzer(config) as analyzer:
        if args.command == "analyze":
            result = await analyzer.analyze(args.url)
            return result.to_json(indent=args.indent)

        crawler = SitemapCrawlController(analyzer, show_progress=args.progress)
        results = await crawler.crawl(args.url, max_pages=args.max_pages)
        return json.dumps([r.to_array() for r in results], ensure_ascii=False, indent=args.indent)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logger(
        args.log_level or config_manager.get_nested("logging.level", "INFO"),
        config_manager.get_nested("logging.module_levels", {}),
        config_manager.get_nested("logging.silenced", {}),
    )
    _setup_windows_event_loop_if_needed()

    try:
        output = asyncio.run(_run(args))
    except ConfigError as e:
        logger.error("%s", e)
        return 2
    except FetchError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        return 130

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
