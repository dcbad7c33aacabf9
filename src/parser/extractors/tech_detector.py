# src/parser/extractors/tech_detector.py
import re
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr
from seo_report.model import SeoReportConfig

_STYLESHEET = re.compile(r"\bstylesheet\b", re.IGNORECASE)
_INLINE_GA = re.compile(r"\b(gtag|ga\s*\(|googleAnalytics)", re.IGNORECASE)
_INLINE_PIXEL = re.compile(r"\bfbq\s*\(")

# (name, kind, needles in the script src)
SCRIPT_SIGNATURES = (
    ("Google Analytics", "analytics", ("google-analytics.com", "googletagmanager.com")),
    ("Facebook Pixel", "analytics", ("facebook.net", "connect.facebook")),
    ("Font Awesome", "technology", ("fontawesome", "font-awesome")),
    ("jQuery", "technology", ("jquery",)),
)


def _add(bucket: List[str], name: str):
    if name not in bucket:
        bucket.append(name)


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """Fingerprints analytics and front-end libraries and lists non-minified scripts and stylesheets."""
    analytics: List[str] = []
    technology: List[str] = []
    non_minified_js: List[str] = []
    non_minified_css: List[str] = []

    for node in soup.find_all("script"):
        src = attr(node, "src")
        if src:
            lowered = src.lower()
            for name, kind, needles in SCRIPT_SIGNATURES:
                if any(needle in lowered for needle in needles):
                    _add(analytics if kind == "analytics" else technology, name)
            resolved = UrlUtils.resolve_url(src, base_url)
            path = resolved.split("?", 1)[0].lower()
            if path.endswith(".js") and not path.endswith(".min.js"):
                non_minified_js.append(resolved)
            continue

        inline = node.string or node.get_text() or ""
        if _INLINE_GA.search(inline):
            _add(analytics, "Google Analytics")
        if _INLINE_PIXEL.search(inline):
            _add(analytics, "Facebook Pixel")

    for node in soup.find_all("link"):
        href = attr(node, "href")
        if not href or not _STYLESHEET.search(attr(node, "rel")):
            continue
        resolved = UrlUtils.resolve_url(href, base_url)
        path = resolved.split("?", 1)[0].lower()
        if path.endswith(".css") and not path.endswith(".min.css"):
            non_minified_css.append(resolved)

    return {
        "analytics_detected": analytics,
        "technology_detected": technology,
        "non_minified_js": non_minified_js,
        "non_minified_css": non_minified_css,
    }
