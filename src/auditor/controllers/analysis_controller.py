# src/auditor/controllers/analysis_controller.py
import asyncio
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from auditor.checks.context import AnalysisContext
from auditor.checks.registry import CheckRegistry, build_default_registry
from auditor.model import AnalysisResult, CheckResult
from auditor.services.render_service import RENDER_RESULT_CATEGORIES, RenderService
from auditor.services.score_service import ScoreService
from crawler.model import PageResponse, RequestStats
from crawler.services.asset_probe_service import AssetProbeService, has_cache_lifetime
from crawler.services.domain_data_service import DomainDataService
from crawler.services.http_request_service import HttpRequestService
from crawler.services.site_probe_service import SiteProbeService
from crawler.utils.url_utils import UrlUtils
from parser.model import PageFacts
from parser.services.fact_aggregate_service import FactAggregateService
from seo_report.core.utils.path_utils import PathUtils
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)

SECURITY_HEADERS = (
    "content-security-policy",
    "x-frame-options",
    "x-content-type-options",
    "referrer-policy",
    "permissions-policy",
    "cross-origin-embedder-policy",
    "cross-origin-opener-policy",
    "cross-origin-resource-policy",
)


class SeoAnalyzer:
    """
    Drives the analysis of one page end to end.

    Fetch -> parse -> extract facts -> probes (robots/404, domain data, static
    assets) -> context -> check registry -> optional render results -> score.

    The HTTP session and the robots/404 cache live as long as the analyzer, so
    analyzing several pages of one site probes the site only once. Only the
    primary fetch may fail the analysis; every probe degrades to absent facts.
    """

    def __init__(
            self,
            config: SeoReportConfig,
            registry: Optional[CheckRegistry] = None,
            http: Optional[HttpRequestService] = None,
            site_probe: Optional[SiteProbeService] = None,
            domain_data: Optional[DomainDataService] = None,
            aggregator: Optional[FactAggregateService] = None,
            render_service: Optional[RenderService] = None,
    ):
        self.config = config
        self.registry = registry or build_default_registry()
        self.http = http or HttpRequestService(config)
        self.site_probe = site_probe or SiteProbeService(self.http)
        self.domain_data = domain_data or DomainDataService(self.http, timeout=config.request_timeout)
        self.aggregator = aggregator or FactAggregateService()
        self.score_service = ScoreService(config)
        self.render_service = render_service
        self._render_available: Optional[bool] = None

        if self.render_service is None and config.render_service_enabled:
            self.render_service = self._build_render_service()

    async def __aenter__(self):
        await self.http.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self.http.close()

    def _build_render_service(self) -> Optional[RenderService]:
        try:
            compose_file = PathUtils.get_compose_file(self.config.render_service_compose_file)
        except FileNotFoundError as e:
            logger.warning("Render service disabled: %s", e)
            return None
        return RenderService(compose_file, timeout=self.config.render_service_timeout)

    # =========================================================================
    #  ANALYSIS
    # =========================================================================
    async def analyze(self, url: str) -> AnalysisResult:
        """
        Analyzes a single page.

        Raises:
            FetchError: when the page itself cannot be fetched.
        """
        target = UrlUtils.ensure_scheme(url)
        logger.info("Analyzing %s", UrlUtils.clean_url(target))

        response = await self.http.fetch_page(target)
        page_url = response.url
        soup = BeautifulSoup(response.body, "html.parser")

        page_facts = self.aggregator.aggregate(
            soup, response.body, page_url, self.config,
            extra_facts=self._response_facts(response),
        )

        # Each run gets a fresh asset cache.
        asset_probe = AssetProbeService(self.http, concurrency=self.config.asset_probe_concurrency)
        site_facts, domain_facts, asset_facts = await asyncio.gather(
            self.site_probe.probe(page_url),
            self.domain_data.collect(page_url),
            asset_probe.collect_facts(
                page_facts.http_requests,
                page_url,
                image_max_bytes=self.config.report_limit_image_max_bytes,
                image_urls=page_facts.image_urls,
                page_sets_cookie=bool(response.header_values("set-cookie")),
            ),
        )
        facts = PageFacts(**{**page_facts.model_dump(), **site_facts, **domain_facts, **asset_facts})

        context = AnalysisContext(
            url=page_url,
            facts=facts,
            response=response,
            stats=response.stats or RequestStats(url=page_url),
            config=self.config,
            soup=soup,
            raw_body=response.body,
        )

        results = self.registry.run(context)
        categories = self._report_categories(results)

        render_results = await self._render_results(page_url)
        for name, result in render_results.items():
            results[name] = result
            categories.setdefault(RENDER_RESULT_CATEGORIES.get(name, "technology"), []).append(name)

        score = self.score_service.score(results)
        logger.info("Analyzed %s: score %.2f over %d results", page_url, score, len(results))

        return AnalysisResult(url=target, score=score, results=results, categories=categories)

    # =========================================================================
    #  HELPERS
    # =========================================================================
    @staticmethod
    def _response_facts(response: PageResponse) -> Dict[str, Any]:
        page_url = response.url
        cache_control = response.header("cache-control")
        robots_tag = response.header_values("x-robots-tag")

        return {
            "host_str": UrlUtils.get_host(page_url),
            "base_url": UrlUtils.get_base_url(page_url) or "",
            "current_url": page_url,
            "noindex_header_value": ", ".join(robots_tag) if robots_tag else None,
            "http_version": response.http_version,
            "server_header": response.header_values("server"),
            "hsts_header": response.header_values("strict-transport-security"),
            "enc_tokens": [
                token.strip().lower()
                for token in response.header("content-encoding").split(",")
                if token.strip()
            ],
            "cache_control": cache_control,
            "expires_header": response.header("expires"),
            "has_max_age": has_cache_lifetime(cache_control),
            "redirect_count": len(response.redirect_chain),
            "redirect_history": response.redirect_chain,
            "security_headers": {
                name: response.header(name)
                for name in SECURITY_HEADERS
                if response.header(name)
            },
        }

    def _report_categories(self, results: Dict[str, CheckResult]) -> Dict[str, List[str]]:
        return {
            category: [name for name in names if name in results]
            for category, names in self.registry.categories().items()
        }

    async def _render_results(self, url: str) -> Dict[str, CheckResult]:
        if self.render_service is None:
            return {}
        if self._render_available is None:
            self._render_available = await self.render_service.is_available()
            if not self._render_available:
                logger.warning("Render service enabled but docker is not available.")
        if not self._render_available:
            return {}
        return await self.render_service.analyze(url)
