# src/parser/extractors/content_security.py
import re
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr
from seo_report.model import SeoReportConfig

EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9_-]+)")
_VALID_EMAIL = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(?:\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")

# mixed content key -> (tag, attribute, optional rel filter)
_MIXED_SOURCES = (
    ("JavaScripts", "script", "src", None),
    ("CSS", "link", "href", re.compile(r"\bstylesheet\b", re.IGNORECASE)),
    ("Images", "img", "src", None),
    ("Iframes", "iframe", "src", None),
)


def is_valid_email(candidate: str) -> bool:
    if ".." in candidate or candidate.startswith(".") or "@." in candidate or ".@" in candidate:
        return False
    return bool(_VALID_EMAIL.match(candidate))


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """
    Security-relevant markup: the page scheme, insecure sub-resources on HTTPS
    pages, external `_blank` links without `noopener` and plaintext e-mails.
    """
    http_scheme = UrlUtils.get_scheme(base_url) or None

    mixed_content: Dict[str, List[str]] = {}
    if base_url.startswith("https"):
        for key, tag_name, attr_name, rel_filter in _MIXED_SOURCES:
            for node in soup.find_all(tag_name):
                if rel_filter is not None and not rel_filter.search(attr(node, "rel")):
                    continue
                value = attr(node, attr_name).strip()
                if value.startswith("http://"):
                    mixed_content.setdefault(key, []).append(value)

    unsafe_links: List[str] = []
    for node in soup.find_all("a"):
        href = attr(node, "href")
        if not href:
            continue
        url = UrlUtils.resolve_url(href, base_url)
        if UrlUtils.is_internal_url(url, base_url) or attr(node, "target") != "_blank":
            continue
        rel = attr(node, "rel").lower()
        if "noopener" not in rel and "nofollow" not in rel:
            unsafe_links.append(url)

    emails: List[str] = []
    for match in EMAIL_PATTERN.findall(raw_body or ""):
        if is_valid_email(match) and match not in emails:
            emails.append(match)

    return {
        "http_scheme": http_scheme,
        "mixed_content": mixed_content,
        "unsafe_cross_origin_links": unsafe_links,
        "plaintext_emails": emails,
    }
