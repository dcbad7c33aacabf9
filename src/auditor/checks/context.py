# src/auditor/checks/context.py
from typing import Any, List

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict

from crawler.model import PageResponse, RequestStats
from crawler.utils.url_utils import UrlUtils
from parser.model import PageFacts
from seo_report.model import SeoReportConfig


class AnalysisContext(BaseModel):
    """
    Everything a check may look at for one page, built once after every probe
    has completed. Checks read from it and never mutate it.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str
    facts: PageFacts
    response: PageResponse
    stats: RequestStats
    config: SeoReportConfig
    soup: Any = None
    raw_body: str = ""

    @property
    def document(self) -> BeautifulSoup:
        return self.soup

    @property
    def body_keywords(self) -> List[str]:
        return self.facts.body_keywords

    @property
    def doc_type(self) -> str:
        return self.facts.doc_type

    def resolve_url(self, url: str) -> str:
        return UrlUtils.resolve_url(url, self.url)

    def is_internal_url(self, url: str) -> bool:
        return UrlUtils.is_internal_url(url, self.url)

    @staticmethod
    def normalize_url_for_canonical(url: str) -> str:
        return UrlUtils.normalize_url_for_canonical(url)
