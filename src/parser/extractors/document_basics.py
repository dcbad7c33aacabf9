# src/parser/extractors/document_basics.py
import math
from typing import Any, Dict

from bs4 import BeautifulSoup, Doctype

from parser.utils.text_utils import clean_tag_text, keywords
from seo_report.model import SeoReportConfig


def _doctype_name(soup: BeautifulSoup) -> str:
    for node in soup.contents:
        if isinstance(node, Doctype):
            parts = str(node).split()
            return parts[0].lower() if parts else ""
    return ""


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """
    Page text, keywords, doctype, DOM size, text-to-markup ratio and the
    count of each deprecated tag in use.
    """
    body = soup.find("body")
    page_text = clean_tag_text(body.get_text() if body else None)

    text_ratio = 0
    if raw_body and page_text:
        text_ratio = int(math.floor(len(page_text) / len(raw_body) * 100 + 0.5))

    deprecated: Dict[str, int] = {}
    for tag_name in config.deprecated_html_tags:
        count = len(soup.find_all(tag_name.lower()))
        if count:
            deprecated[tag_name.lower()] = count

    return {
        "page_text": page_text,
        "body_keywords": keywords(page_text),
        "doc_type": _doctype_name(soup),
        "dom_nodes_count": len(soup.find_all(True)),
        "text_ratio": text_ratio,
        "deprecated_html_tags": deprecated,
    }
