# src/parser/services/fact_aggregate_service.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from bs4 import BeautifulSoup

from parser.extractors import (
    content_security,
    document_basics,
    head_meta,
    headings,
    links,
    media,
    performance_assets,
    structured_data,
    tech_detector,
)
from parser.model import PageFacts
from parser.utils.dom_utils import attr
from parser.utils.text_utils import difference, intersect, keywords
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)

Extractor = Callable[[BeautifulSoup, str, str, SeoReportConfig], Dict[str, Any]]

DEFAULT_EXTRACTORS: List[Extractor] = [
    document_basics.extract,
    head_meta.extract,
    headings.extract,
    links.extract,
    media.extract,
    performance_assets.extract,
    content_security.extract,
    structured_data.extract,
    tech_detector.extract,
]


class FactAggregateService:
    """
    Runs every fact extractor over one parsed document and folds the
    fragments into a single validated `PageFacts` record.

    The service is stateless; one instance may serve any number of pages.
    """

    def __init__(self, extractors: Optional[Iterable[Extractor]] = None):
        self.extractors = list(extractors) if extractors is not None else list(DEFAULT_EXTRACTORS)

    def aggregate(
            self,
            soup: BeautifulSoup,
            raw_body: str,
            base_url: str,
            config: SeoReportConfig,
            extra_facts: Optional[Mapping[str, Any]] = None,
    ) -> PageFacts:
        facts: Dict[str, Any] = {}
        for extractor in self.extractors:
            facts.update(extractor(soup, raw_body, base_url, config))

        facts.update(self._derived_facts(soup, facts))

        if extra_facts:
            facts.update(extra_facts)

        logger.debug("Aggregated %d facts for %s", len(facts), base_url)
        return PageFacts(**facts)

    # --- Derived facts ---

    @staticmethod
    def _derived_facts(soup: BeautifulSoup, facts: Dict[str, Any]) -> Dict[str, Any]:
        title_keywords = keywords(facts.get("title"))
        meta_keywords = keywords(facts.get("meta_description"))

        heading_texts: List[str] = []
        for texts in (facts.get("headings") or {}).values():
            heading_texts.extend(texts)
        heading_keywords = keywords(" ".join(heading_texts))

        structured = facts.get("structured_data") or {}

        return {
            "title_keywords": title_keywords,
            "keyword_consistency": {
                "title_keywords": title_keywords,
                "in_meta_description": intersect(title_keywords, meta_keywords),
                "in_headings": intersect(title_keywords, heading_keywords),
                "missing_in_meta": difference(title_keywords, meta_keywords),
                "missing_in_headings": difference(title_keywords, heading_keywords),
            },
            "inline_css": [
                attr(node, "style")
                for node in soup.find_all(True)
                if node.name != "svg" and attr(node, "style").strip()
            ],
            "open_graph_data": dict(structured.get("Open Graph") or {}),
            "twitter_data": dict(structured.get("Twitter") or {}),
        }
