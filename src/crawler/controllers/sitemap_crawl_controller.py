# src/crawler/controllers/sitemap_crawl_controller.py
import asyncio
import logging
import random
from typing import Awaitable, Callable, List, Optional

from bs4 import BeautifulSoup
from tqdm import tqdm

from auditor.controllers.analysis_controller import SeoAnalyzer
from auditor.model import AnalysisResult
from crawler.utils.url_utils import UrlUtils
from seo_report.exceptions import SeoReportError

logger = logging.getLogger(__name__)

POLITENESS_DELAY = (0.75, 1.25)


def parse_sitemap_urls(content: str, sitemap_url: str) -> List[str]:
    """
    Returns the `<loc>` entries of `<url>` elements in document order, keeping
    only URLs on the sitemap's own site. Sitemap-index entries are ignored.
    """
    soup = BeautifulSoup(content or "", "html.parser")
    urls: List[str] = []
    for loc in soup.find_all("loc"):
        if loc.parent is None or loc.parent.name != "url":
            continue
        url = loc.get_text(strip=True)
        if url and UrlUtils.is_internal_url(url, sitemap_url):
            urls.append(url)
        elif url:
            logger.debug("Skipping off-site sitemap entry %s", url)
    return urls


class SitemapCrawlController:
    """
    Analyzes the pages listed in a sitemap, one after another.

    Pages are analyzed strictly sequentially with a randomized pause between
    them. A page that fails is logged and skipped; only a sitemap that cannot
    be fetched aborts the crawl.
    """

    def __init__(
            self,
            analyzer: SeoAnalyzer,
            show_progress: bool = False,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.analyzer = analyzer
        self.show_progress = show_progress
        self._sleep = sleep

    async def crawl(self, sitemap_url: str, max_pages: Optional[int] = None) -> List[AnalysisResult]:
        """
        Args:
            sitemap_url: URL of a `urlset` sitemap.
            max_pages: Cap on analyzed pages; None or <= 0 means no cap.
                Defaults to the configured `sitemap_links`.

        Raises:
            FetchError: when the sitemap itself cannot be fetched.
        """
        if max_pages is None:
            max_pages = self.analyzer.config.sitemap_links

        sitemap_url = UrlUtils.ensure_scheme(sitemap_url)
        response = await self.analyzer.http.fetch_page(sitemap_url)
        urls = parse_sitemap_urls(response.body, response.url)
        if max_pages is not None and max_pages > 0:
            urls = urls[:max_pages]

        logger.info("Sitemap %s lists %d page(s) to analyze", response.url, len(urls))

        results: List[AnalysisResult] = []
        failures = 0
        with tqdm(total=len(urls), desc="Analyzing", unit="page", disable=not self.show_progress) as pbar:
            for index, url in enumerate(urls):
                if index > 0:
                    await self._sleep(random.uniform(*POLITENESS_DELAY))
                try:
                    results.append(await self.analyzer.analyze(url))
                except SeoReportError as e:
                    failures += 1
                    logger.warning("Skipping %s: %s", url, e)
                pbar.update(1)
                pbar.set_postfix(failures=failures)

        logger.info("Sitemap crawl finished: %d analyzed, %d failed", len(results), failures)
        return results
