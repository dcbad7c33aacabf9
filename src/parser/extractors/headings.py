# src/parser/extractors/headings.py
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from parser.utils.text_utils import clean_tag_text
from seo_report.model import SeoReportConfig

HEADING_LEVELS = ("h1", "h2", "h3", "h4", "h5", "h6")


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """Maps heading levels to their texts and summarizes secondary heading usage."""
    headings: Dict[str, List[str]] = {}
    for level in HEADING_LEVELS:
        texts = [clean_tag_text(node.get_text()) for node in soup.find_all(level)]
        if texts:
            headings[level] = texts

    secondary_usage = {level: len(headings.get(level, [])) for level in HEADING_LEVELS[1:]}

    return {
        "headings": headings,
        "h1_count": len(headings.get("h1", [])),
        "secondary_heading_usage": secondary_usage,
        "secondary_heading_levels": sum(1 for count in secondary_usage.values() if count > 0),
    }
