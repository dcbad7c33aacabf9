# src/crawler/services/asset_probe_service.py
import asyncio
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from crawler.model import AssetProbe
from crawler.services.http_request_service import HttpRequestService
from crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

MAX_AGE_PATTERN = re.compile(r"(?:^|,)\s*(?:s-maxage|max-age)=\d+", re.IGNORECASE)


def has_cache_lifetime(cache_control: str) -> bool:
    return bool(MAX_AGE_PATTERN.search(cache_control or ""))


class AssetProbeService:
    """
    Per-run cache of HEAD probes against static assets.

    Each URL is requested at most once per instance: the first caller creates a
    Future and every concurrent caller awaits the same one. Failed probes are
    cached as None. A semaphore bounds the number of requests in flight.
    """

    def __init__(self, http: HttpRequestService, concurrency: int = 10):
        self._http = http
        self._semaphore = asyncio.Semaphore(concurrency)
        self._cache: Dict[str, "asyncio.Future[Optional[AssetProbe]]"] = {}

    def __len__(self) -> int:
        return len(self._cache)

    async def probe(self, url: str) -> Optional[AssetProbe]:
        future = self._cache.get(url)
        if future is not None:
            return await future

        future = asyncio.get_running_loop().create_future()
        self._cache[url] = future
        result: Optional[AssetProbe] = None
        try:
            async with self._semaphore:
                result = await self._http.head(url)
        finally:
            # Waiters must never hang on a probe that raised or was cancelled.
            if not future.done():
                future.set_result(result)
        return result

    async def probe_many(self, urls: Iterable[str]) -> Dict[str, Optional[AssetProbe]]:
        unique = list(dict.fromkeys(urls))
        results = await asyncio.gather(*(self.probe(url) for url in unique))
        return dict(zip(unique, results))

    # =========================================================================
    #  ASSET FACTS
    # =========================================================================
    async def collect_facts(
            self,
            http_requests: Dict[str, List[str]],
            page_url: str,
            image_max_bytes: int = 0,
            image_urls: Optional[List[str]] = None,
            page_sets_cookie: bool = False,
    ) -> Dict[str, Any]:
        """
        Probes the page's scripts, stylesheets and images and derives the
        caching, cookie, redirect and image-weight facts from the answers.

        `image_urls` is every <img> on the page, lazy ones included; when it is
        not given the non-lazy images of `http_requests` are weighed instead.
        When the page response sets a cookie, every requested resource on the
        page's own host is a cookie-domain hit.
        """
        main_host = UrlUtils.get_host(page_url)
        candidates: List[str] = []
        for key in ("JavaScripts", "CSS", "Images"):
            candidates.extend(http_requests.get(key, []))
        static_assets = [url for url in dict.fromkeys(candidates) if UrlUtils.is_probeable(url)]
        if image_urls is None:
            image_urls = http_requests.get("Images", [])
        images = [url for url in dict.fromkeys(image_urls) if UrlUtils.is_probeable(url)]

        probes = await self.probe_many(static_assets + images)

        checked: List[str] = []
        missing_cache: List[str] = []
        asset_redirects: List[Dict[str, Any]] = []
        for url in static_assets:
            probe = probes.get(url)
            if probe is None or probe.status >= 400:
                continue
            checked.append(url)

            if not probe.header("expires") and not has_cache_lifetime(probe.header("cache-control")):
                missing_cache.append(url)

            if probe.redirect_count > 0:
                asset_redirects.append({"url": url, "count": probe.redirect_count})

        large_images: List[Dict[str, Any]] = []
        largest_image: Optional[Dict[str, Any]] = None
        for url in images:
            probe = probes.get(url)
            if probe is None or probe.status >= 400:
                continue
            size = probe.content_length
            if not size:
                continue
            entry = {"url": url, "bytes": size}
            if image_max_bytes > 0 and size > image_max_bytes:
                large_images.append(entry)
            if largest_image is None or size > largest_image["bytes"]:
                largest_image = entry

        cookie_hits: List[str] = []
        if page_sets_cookie:
            requested = [url for urls in http_requests.values() for url in urls]
            cookie_hits = [url for url in dict.fromkeys(requested) if UrlUtils.get_host(url) == main_host]

        return {
            "main_host": main_host,
            "checked_static_assets": checked,
            "missing_static_cache": missing_cache,
            "cookie_domain_hits": cookie_hits,
            "asset_redirects": asset_redirects,
            "image_max_bytes": image_max_bytes,
            "large_images": large_images,
            "largest_image": largest_image,
        }
