# src/parser/extractors/head_meta.py
import re
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr, find_in_heads
from parser.utils.text_utils import clean_tag_text
from seo_report.model import SeoReportConfig

_NOINDEX = re.compile(r"\bnoindex\b", re.IGNORECASE)
_ICON_REL = re.compile(r"\bicon\b", re.IGNORECASE)


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """Title, description, robots meta, language, favicon, canonical, hreflang, viewport and charset."""
    # --- Title ---
    title: Optional[str] = None
    title_tags = find_in_heads(soup, "title")
    for node in title_tags:
        title = (title or "") + clean_tag_text(node.get_text())

    metas = find_in_heads(soup, "meta")
    links = find_in_heads(soup, "link")

    # --- Meta description (last non-empty wins) ---
    meta_description: Optional[str] = None
    for node in metas:
        content = clean_tag_text(attr(node, "content"))
        if attr(node, "name").lower() == "description" and content:
            meta_description = content

    # --- Robots meta ---
    noindex: Optional[str] = None
    robots_directives: List[str] = []
    for node in metas:
        if attr(node, "name").lower() not in ("robots", "googlebot"):
            continue
        content = attr(node, "content").strip()
        if not content:
            continue
        robots_directives.extend(part.strip() for part in content.lower().split(","))
        if _NOINDEX.search(content):
            noindex = content

    # --- Language ---
    language: Optional[str] = None
    for node in soup.find_all("html"):
        lang = attr(node, "lang")
        if lang and lang != "0":
            language = lang

    # --- Favicon, canonical and hreflang ---
    favicon: Optional[str] = None
    canonical_tag: Optional[str] = None
    canonical_tags: List[str] = []
    hreflang: List[Dict[str, str]] = []
    for node in links:
        rel = attr(node, "rel")
        href = attr(node, "href")
        if _ICON_REL.search(rel):
            favicon = UrlUtils.resolve_url(href, base_url)
        if rel.lower() == "canonical" and href:
            canonical = UrlUtils.resolve_url(href, base_url)
            canonical_tags.append(canonical)
            if canonical_tag is None:
                canonical_tag = canonical
        if rel.lower() == "alternate" and attr(node, "hreflang"):
            hreflang.append({
                "hreflang": attr(node, "hreflang"),
                "href": UrlUtils.resolve_url(href, base_url),
            })

    # --- Viewport & charset ---
    meta_viewport: Optional[str] = None
    charset: Optional[str] = None
    for node in metas:
        if attr(node, "name").lower() == "viewport":
            meta_viewport = clean_tag_text(attr(node, "content"))
        node_charset = attr(node, "charset")
        if node_charset and node_charset != "0":
            charset = clean_tag_text(node_charset)

    return {
        "title": title,
        "title_tags_count": len(title_tags),
        "meta_description": meta_description,
        "noindex": noindex,
        "robots_directives": robots_directives,
        "language": language,
        "favicon": favicon,
        "canonical_tag": canonical_tag,
        "canonical_tags": canonical_tags,
        "hreflang": hreflang,
        "meta_viewport": meta_viewport,
        "charset": charset,
    }
