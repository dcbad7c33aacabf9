# src/parser/extractors/structured_data.py
import json
import logging
import re
from typing import Any, Dict, List

from bs4 import BeautifulSoup

from parser.utils.dom_utils import attr, find_in_heads
from parser.utils.text_utils import clean_tag_text
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)

_OPEN_GRAPH = re.compile(r"\bog:")
_TWITTER = re.compile(r"\btwitter:")
SCHEMA_CONTEXTS = ("https://schema.org", "http://schema.org")
JSON_LD_TYPE = "application/ld+json"
ERROR_PREVIEW_CHARS = 100


def _is_json_ld(node) -> bool:
    return attr(node, "type").strip().lower() == JSON_LD_TYPE


def _parse_json_ld(soup: BeautifulSoup, base_url: str):
    """
    Decodes every JSON-LD script in the document.

    Returns the decoded blocks and one error entry per script that is not
    valid JSON or does not hold an object. A top-level array contributes
    each of its objects as a block of its own.
    """
    blocks: List[Dict[str, Any]] = []
    errors: List[Dict[str, Any]] = []

    index = 0
    for node in soup.find_all("script"):
        if not _is_json_ld(node):
            continue
        content = (node.string or node.get_text() or "").strip()
        if not content:
            continue

        try:
            data = json.loads(content)
        except ValueError as e:
            logger.debug("Invalid JSON-LD block #%d on %s: %s", index, base_url, e)
            errors.append({"index": index, "error": str(e), "preview": content[:ERROR_PREVIEW_CHARS]})
            index += 1
            continue

        if isinstance(data, dict):
            blocks.append(data)
        elif isinstance(data, list) and data and all(isinstance(item, dict) for item in data):
            blocks.extend(data)
        else:
            errors.append({
                "index": index,
                "error": "JSON-LD must be an object or an array of objects",
                "preview": content[:ERROR_PREVIEW_CHARS],
            })
        index += 1

    return blocks, errors


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """Collects Open Graph, Twitter card and JSON-LD structured data."""
    structured: Dict[str, Any] = {}

    for node in find_in_heads(soup, "meta"):
        content = clean_tag_text(attr(node, "content"))
        if not content:
            continue
        prop = attr(node, "property")
        name = attr(node, "name")
        if _OPEN_GRAPH.search(prop):
            structured.setdefault("Open Graph", {})[prop] = content
        if _TWITTER.search(name):
            structured.setdefault("Twitter", {})[name] = content

    for node in find_in_heads(soup, "script"):
        if not _is_json_ld(node):
            continue
        try:
            data = json.loads(node.string or node.get_text() or "")
        except ValueError:
            continue
        if not isinstance(data, dict):
            continue
        context = data.get("@context")
        if isinstance(context, str) and context.strip().lower().rstrip("/") in SCHEMA_CONTEXTS:
            structured["Schema.org"] = data

    json_ld, errors = _parse_json_ld(soup, base_url)

    return {
        "structured_data": structured,
        "json_ld": json_ld,
        "structured_data_errors": errors,
    }
