# src/crawler/services/site_probe_service.py
import asyncio
import hashlib
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from crawler.services.http_request_service import HttpRequestService
from crawler.services.robots_txt_service import RobotsTxtService
from crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

# RFC 9116 location first, then the legacy root location.
SECURITY_TXT_PATHS = ("/.well-known/security.txt", "/security.txt")


class SiteProbeService:
    """
    Site-level probes shared by every page of one site: the robots.txt verdict,
    whether the server answers unknown paths with a real 404, and where its
    security.txt lives.

    Results are cached per scheme+host for the lifetime of the instance.
    """

    def __init__(self, http: HttpRequestService, robots_txt: Optional[RobotsTxtService] = None):
        self._http = http
        self.robots_txt = robots_txt or RobotsTxtService(http)
        self._cache: Dict[Tuple[str, str], Optional[str]] = {}
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}

    async def _once(
            self, kind: str, base_url: str, lookup: Callable[[str], Awaitable[Optional[str]]]
    ) -> Optional[str]:
        key = (kind, base_url)
        if key in self._cache:
            return self._cache[key]

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if key not in self._cache:
                self._cache[key] = await lookup(base_url)
            return self._cache[key]

    async def not_found_page(self, url: str) -> Optional[str]:
        """
        Requests a random, non-existent path on the page's site.
        Returns the probed URL when the server answers 404, otherwise None.
        """
        base_url = UrlUtils.get_base_url(url)
        if not base_url:
            return None
        return await self._once("404", base_url, self._request_not_found)

    async def _request_not_found(self, base_url: str) -> Optional[str]:
        token = hashlib.md5(str(random.random()).encode("utf-8")).hexdigest()
        probe_url = f"{base_url}/404-{token}"
        response = await self._http.get(probe_url)
        result = probe_url if response is not None and response.status == 404 else None
        logger.debug("404 probe for %s: %s", base_url, "ok" if result else "missing")
        return result

    async def security_txt(self, url: str) -> Optional[str]:
        """Returns the URL of the site's security.txt, or None when neither location answers 200."""
        base_url = UrlUtils.get_base_url(url)
        if not base_url:
            return None
        return await self._once("security.txt", base_url, self._find_security_txt)

    async def _find_security_txt(self, base_url: str) -> Optional[str]:
        for path in SECURITY_TXT_PATHS:
            response = await self._http.get(f"{base_url}{path}")
            if response is not None and response.status == 200:
                return f"{base_url}{path}"
        logger.debug("No security.txt on %s", base_url)
        return None

    async def probe(self, url: str) -> Dict[str, Any]:
        """Runs the robots.txt, 404 and security.txt probes and returns their facts."""
        robots_report, not_found, security_txt = await asyncio.gather(
            self.robots_txt.check(url),
            self.not_found_page(url),
            self.security_txt(url),
        )
        return {
            "robots": robots_report.allowed,
            "robots_rules_failed": robots_report.rules_failed,
            "sitemaps": robots_report.sitemaps,
            "not_found_page": not_found,
            "security_txt_url": security_txt,
        }
