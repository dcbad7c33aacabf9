# src/crawler/services/robots_txt_service.py
import asyncio
import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from crawler.services.http_request_service import HttpRequestService
from crawler.utils.url_utils import UrlUtils

logger = logging.getLogger(__name__)

Directive = Tuple[str, str]


class RobotsReport(BaseModel):
    """Verdict of robots.txt for one page URL."""
    allowed: bool = True
    rules_failed: List[str] = Field(default_factory=list)
    sitemaps: List[str] = Field(default_factory=list)


def parse_robots_txt(content: str) -> List[Directive]:
    """
    Splits robots.txt into (directive, value) pairs.
    Directives are lower-cased; comments and blank lines are skipped.
    """
    directives: List[Directive] = []
    for line in re.split(r"\n|\r", content or ""):
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        directive, value = line.split(":", 1)
        directives.append((directive.strip().lower(), value.strip()))
    return directives


def rule_matches(rule: str, path: str) -> bool:
    """Matches a Disallow rule against a URL path. `*` is a wildcard and `$` anchors the end."""
    pattern = "^" + re.escape(rule).replace(r"\*", ".*").replace(r"\$", "$")
    try:
        return re.match(pattern, path) is not None
    except re.error:
        return False


def evaluate(directives: List[Directive], url: str) -> RobotsReport:
    try:
        path = urlparse(url).path or "/"
    except ValueError:
        path = "/"

    report = RobotsReport()
    for directive, value in directives:
        if directive == "disallow" and value and rule_matches(value, path):
            report.allowed = False
            report.rules_failed.append(value)
        elif directive == "sitemap" and value:
            report.sitemaps.append(value)
    return report


class RobotsTxtService:
    """
    Manages fetching, parsing, and caching of robots.txt files.
    Each site's robots.txt is fetched at most once per service instance.
    """

    def __init__(self, http: HttpRequestService):
        self._http = http
        self._directive_cache: Dict[str, Optional[List[Directive]]] = {}
        self._fetch_locks: Dict[str, asyncio.Lock] = {}

    async def _get_directives(self, base_url: str) -> Optional[List[Directive]]:
        """
        Retrieves the parsed directives of a site, fetching if not cached.
        Returns None when robots.txt is unavailable.
        """
        if base_url in self._directive_cache:
            return self._directive_cache[base_url]

        if base_url not in self._fetch_locks:
            self._fetch_locks[base_url] = asyncio.Lock()

        async with self._fetch_locks[base_url]:
            if base_url in self._directive_cache:
                return self._directive_cache[base_url]

            robots_url = f"{base_url}/robots.txt"
            response = await self._http.get(robots_url)
            directives: Optional[List[Directive]] = None
            if response is not None and 200 <= response.status < 300:
                directives = parse_robots_txt(response.body)
                logger.debug("Fetched and parsed robots.txt for %s", base_url)
            else:
                logger.debug("robots.txt not available for %s. Allowing all.", base_url)

            self._directive_cache[base_url] = directives
            return directives

    async def check(self, url: str) -> RobotsReport:
        """
        Evaluates a page URL against its site's Disallow rules and collects the
        declared sitemaps.
        """
        base_url = UrlUtils.get_base_url(url)
        if not base_url:
            return RobotsReport()

        directives = await self._get_directives(base_url)
        if directives is None:
            return RobotsReport()

        report = evaluate(directives, url)
        if not report.allowed:
            logger.debug("robots.txt disallows %s (rules: %s)", url, report.rules_failed)
        return report
