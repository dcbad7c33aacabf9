# src/parser/extractors/links.py
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr
from parser.utils.text_utils import clean_tag_text
from seo_report.model import SeoReportConfig

SOCIAL_HOSTS = {
    "twitter.com": "Twitter",
    "www.twitter.com": "Twitter",
    "facebook.com": "Facebook",
    "www.facebook.com": "Facebook",
    "instagram.com": "Instagram",
    "www.instagram.com": "Instagram",
    "youtube.com": "YouTube",
    "www.youtube.com": "YouTube",
    "linkedin.com": "LinkedIn",
    "www.linkedin.com": "LinkedIn",
}


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """
    Classifies every anchor as internal or external and collects unreadable
    URLs, nofollow links and social profile links.
    """
    page_links: Dict[str, List[Dict[str, str]]] = {"Internals": [], "Externals": []}
    unfriendly: List[Dict[str, str]] = []
    nofollow_links: List[Dict[str, str]] = []
    nofollow_count = 0
    social: Dict[str, List[Dict[str, str]]] = {}

    for node in soup.find_all("a"):
        href = attr(node, "href")
        text = clean_tag_text(node.get_text())

        if "nofollow" in attr(node, "rel").lower():
            nofollow_count += 1
            if href:
                nofollow_links.append({"url": UrlUtils.resolve_url(href, base_url), "text": text})

        if not href or href.startswith("#"):
            continue

        resolved = UrlUtils.resolve_url(href, base_url)
        entry = {"url": resolved, "text": text}
        internal = UrlUtils.is_internal_url(resolved, base_url)
        page_links["Internals" if internal else "Externals"].append(entry)

        if UrlUtils.is_unfriendly(resolved):
            unfriendly.append(dict(entry))

        if not internal:
            network = SOCIAL_HOSTS.get(UrlUtils.get_host(resolved))
            if network:
                social.setdefault(network, []).append(dict(entry))

    return {
        "page_links": page_links,
        "unfriendly_link_urls": unfriendly,
        "nofollow_links": nofollow_links,
        "nofollow_count": nofollow_count,
        "social": social,
    }
