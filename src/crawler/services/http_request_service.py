# src/crawler/services/http_request_service.py
import asyncio
import codecs
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from crawler.model import AssetProbe, PageResponse, RequestStats
from seo_report.exceptions import FetchError
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 10
ACCEPT_ENCODING = "gzip, deflate, br"
_BOM = "\ufeff"


class HttpRequestService:
    """
    Central service for executing HTTP requests (GET/HEAD).
    Manages the aiohttp session, the per-run proxy and error handling.

    `fetch_page` is strict: any failure raises `FetchError`. `get` and `head`
    are used by the ancillary probes and return None instead of raising.
    """

    def __init__(self, config: SeoReportConfig, max_redirects: int = MAX_REDIRECTS):
        self.config = config
        self.timeout = config.request_timeout
        self.max_redirects = max_redirects
        # One proxy per analysis run.
        self.proxy: Optional[str] = config.pick_proxy()
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
            default_headers = {
                "Accept-Encoding": ACCEPT_ENCODING,
                "User-Agent": self.config.request_user_agent,
            }
            version = aiohttp.HttpVersion10 if self.config.request_http_version == "1.0" else aiohttp.HttpVersion11
            self.session = aiohttp.ClientSession(
                timeout=timeout_obj, headers=default_headers, version=version
            )
            logger.debug("HttpRequestService: Session initialized (proxy: %s).", self.proxy or "none")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("HttpRequestService: Session closed.")

    async def _session(self) -> aiohttp.ClientSession:
        if not self.session or self.session.closed:
            await self.initialize()
        return self.session

    # =========================================================================
    #  PAGE FETCH (primary request)
    # =========================================================================
    async def fetch_page(self, url: str) -> PageResponse:
        """
        Fetches a page following up to `max_redirects` redirects.

        Raises:
            FetchError: on transport errors, timeouts, too many redirects or a
                non-2xx terminal status.
        """
        session = await self._session()
        start_time = time.perf_counter()

        try:
            async with session.get(
                    url,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
                    proxy=self.proxy,
            ) as response:
                ttfb = time.perf_counter() - start_time
                raw = await response.read()
                total_time = time.perf_counter() - start_time

                status = response.status
                final_url = str(response.url)
                redirect_chain = self._redirect_chain(response)
                body = self._decode(response, raw)
                headers = response.headers
                http_version = self._version_label(response)
        except aiohttp.TooManyRedirects as e:
            raise FetchError(url, f"more than {self.max_redirects} redirects") from e
        except asyncio.TimeoutError as e:
            raise FetchError(url, "timeout") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

        if not 200 <= status < 300:
            raise FetchError(url, f"HTTP {status}", status=status)

        logger.debug("Fetched %s -> %s (%d) in %.3fs", url, final_url, status, total_time)

        stats = RequestStats(
            url=final_url,
            total_time=round(total_time, 4),
            size_download=len(raw),
            starttransfer_time=round(ttfb, 4),
            redirect_count=len(redirect_chain),
        )
        return PageResponse(
            url=final_url,
            status=status,
            http_version=http_version,
            body=body,
            headers=headers,
            redirect_chain=redirect_chain,
            stats=stats,
        )

    # =========================================================================
    #  PROBE REQUESTS (never raise)
    # =========================================================================
    async def get(self, url: str, timeout: Optional[float] = None) -> Optional[PageResponse]:
        """Lenient GET used by the robots.txt, 404 and llms.txt probes."""
        session = await self._session()
        try:
            async with session.get(
                    url,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
                    proxy=self.proxy,
                    timeout=aiohttp.ClientTimeout(total=timeout or self.timeout),
            ) as response:
                raw = await response.read()
                return PageResponse(
                    url=str(response.url),
                    status=response.status,
                    http_version=self._version_label(response),
                    body=self._decode(response, raw),
                    headers=response.headers,
                    redirect_chain=self._redirect_chain(response),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("GET probe failed for %s: %s", url, e)
            return None

    async def head(self, url: str, timeout: Optional[float] = None) -> Optional[AssetProbe]:
        """HEAD request following redirects; returns None on any transport failure."""
        session = await self._session()
        try:
            async with session.head(
                    url,
                    allow_redirects=True,
                    max_redirects=self.max_redirects,
                    proxy=self.proxy,
                    timeout=aiohttp.ClientTimeout(total=timeout or self.timeout),
            ) as response:
                return AssetProbe(
                    url=url,
                    status=response.status,
                    final_url=str(response.url),
                    redirect_count=len(response.history),
                    headers=response.headers,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug("HEAD probe failed for %s: %s", url, e)
            return None

    # =========================================================================
    #  SHARED HELPERS
    # =========================================================================
    @staticmethod
    def _redirect_chain(response: aiohttp.ClientResponse) -> List[Dict[str, Any]]:
        hops = list(response.history)
        chain = []
        for index, hop in enumerate(hops):
            target = hops[index + 1].url if index + 1 < len(hops) else response.url
            chain.append({"source": str(hop.url), "target": str(target), "status": hop.status})
        return chain

    @staticmethod
    def _decode(response: aiohttp.ClientResponse, raw: bytes) -> str:
        encoding = "utf-8"
        try:
            encoding = response.get_encoding() or "utf-8"
            codecs.lookup(encoding)
        except (LookupError, RuntimeError):
            encoding = "utf-8"
        body = raw.decode(encoding, errors="replace")
        if body.startswith(_BOM):
            body = body[len(_BOM):]
        return body

    @staticmethod
    def _version_label(response: aiohttp.ClientResponse) -> str:
        version = response.version
        if version is None:
            return "1.1"
        if version.major >= 2:
            return str(version.major)
        return f"{version.major}.{version.minor}"
