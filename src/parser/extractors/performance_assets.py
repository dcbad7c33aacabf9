# src/parser/extractors/performance_assets.py
import re
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr, find_in_heads
from seo_report.model import SeoReportConfig

_STYLESHEET = re.compile(r"\bstylesheet\b", re.IGNORECASE)
_LAZY = re.compile(r"\blazy\b", re.IGNORECASE)
_EMPTY_VALUES = ("", "0")

# tag -> attribute inspected for empty references
_EMPTY_REFERENCE_ATTRS = (("img", "src"), ("script", "src"), ("iframe", "src"), ("link", "href"), ("a", "href"))


def _is_set(value: str) -> bool:
    return value.strip() not in _EMPTY_VALUES


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """Requested resources per type, empty references, defer usage and render-blocking head resources."""
    http_requests: Dict[str, List[str]] = {
        "JavaScripts": [], "CSS": [], "Images": [], "Audios": [], "Videos": [], "Iframes": [],
    }

    for node in soup.find_all("script"):
        src = attr(node, "src")
        if _is_set(src):
            http_requests["JavaScripts"].append(UrlUtils.resolve_url(src, base_url))

    for node in soup.find_all("link"):
        href = attr(node, "href")
        if _STYLESHEET.search(attr(node, "rel")) and _is_set(href):
            http_requests["CSS"].append(UrlUtils.resolve_url(href, base_url))

    for tag_name, key in (("img", "Images"), ("iframe", "Iframes")):
        for node in soup.find_all(tag_name):
            src = attr(node, "src")
            if _is_set(src) and not _LAZY.search(attr(node, "loading")):
                http_requests[key].append(UrlUtils.resolve_url(src, base_url))

    # --- Empty src/href ---
    empty_src_or_href: List[str] = []
    for tag_name, attr_name in _EMPTY_REFERENCE_ATTRS:
        for node in soup.find_all(tag_name):
            if node.has_attr(attr_name) and not _is_set(attr(node, attr_name)):
                empty_src_or_href.append(f"{tag_name}[{attr_name}]")

    # --- Defer ---
    defer_javascript = [
        UrlUtils.resolve_url(attr(node, "src"), base_url)
        for node in soup.find_all("script")
        if _is_set(attr(node, "src")) and not node.has_attr("defer")
    ]

    # --- Render-blocking (head only) ---
    render_blocking: Dict[str, List[str]] = {"js": [], "css": []}
    for node in find_in_heads(soup, "script"):
        src = attr(node, "src")
        if _is_set(src) and not node.has_attr("defer") and not node.has_attr("async"):
            render_blocking["js"].append(UrlUtils.resolve_url(src, base_url))
    for node in find_in_heads(soup, "link"):
        href = attr(node, "href")
        media = attr(node, "media").strip().lower()
        if _STYLESHEET.search(attr(node, "rel")) and _is_set(href) and media in ("", "all"):
            render_blocking["css"].append(UrlUtils.resolve_url(href, base_url))

    return {
        "http_requests": http_requests,
        "empty_src_or_href": empty_src_or_href,
        "defer_javascript": defer_javascript,
        "render_blocking": render_blocking,
    }
