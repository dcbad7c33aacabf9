# src/crawler/model.py (Crawl Layer)
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

Headers = Dict[str, List[str]]


def to_header_map(raw_headers: Any) -> Headers:
    """
    Folds response headers into a case-insensitive mapping of
    lower-cased name -> list of values, keeping repeated headers.
    Accepts aiohttp's multidicts as well as plain dicts.
    """
    folded: Headers = {}
    if raw_headers is None:
        return folded
    items = raw_headers.items() if hasattr(raw_headers, "items") else raw_headers
    for name, value in items:
        values = value if isinstance(value, (list, tuple)) else [value]
        folded.setdefault(str(name).lower(), []).extend(str(v) for v in values)
    return folded


class _HeaderAccess(BaseModel):
    headers: Headers = Field(default_factory=dict)

    @field_validator("headers", mode="before")
    @classmethod
    def _fold_headers(cls, v: Any) -> Headers:
        return to_header_map(v)

    def header_values(self, name: str) -> List[str]:
        return list(self.headers.get(name.lower(), []))

    def header(self, name: str, default: str = "") -> str:
        """Returns all values of a header joined by ', ' (RFC 9110 field combination)."""
        values = self.header_values(name)
        return ", ".join(values) if values else default


class RequestStats(BaseModel):
    """Transfer statistics of the primary page request."""
    model_config = ConfigDict(frozen=True)

    url: str
    total_time: float = 0.0
    size_download: int = 0
    starttransfer_time: float = 0.0
    redirect_count: int = 0


class PageResponse(_HeaderAccess):
    """The final response of a page fetch, after redirects were followed."""
    model_config = ConfigDict(frozen=True)

    url: str
    status: int
    http_version: str = "1.1"
    body: str = ""
    redirect_chain: List[Dict[str, Any]] = Field(default_factory=list)
    stats: Optional[RequestStats] = None


class AssetProbe(_HeaderAccess):
    """Outcome of a HEAD request against a static asset."""
    model_config = ConfigDict(frozen=True)

    url: str
    status: int
    final_url: str
    redirect_count: int = 0

    @property
    def content_length(self) -> Optional[int]:
        raw = self.header("content-length").split(",")[0].strip()
        return int(raw) if raw.isdigit() else None
