# src/seo_report/model.py (Shell Layer)
import random
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_DEPRECATED_HTML_TAGS = "\n".join([
    "acronym", "applet", "basefont", "big", "center", "dir", "font", "frame",
    "frameset", "isindex", "noframes", "s", "strike", "tt", "u",
])


def _split_lines(value: str) -> List[str]:
    return [line.strip() for line in re.split(r"\n|\r", value or "") if line.strip()]


class SeoReportConfig(BaseModel):
    """
    Validated, immutable configuration for one analyzer instance.

    Every threshold consumed by a check lives here so that a missing or
    malformed option fails at startup rather than in the middle of a run.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    # --- Request ---
    request_timeout: int = Field(default=5, gt=0)
    request_http_version: str = "1.1"
    request_user_agent: str = Field(min_length=1)
    request_proxy: str = ""

    # --- Sitemap ---
    sitemap_links: int = -1

    # --- Report limits ---
    report_limit_min_title: int = Field(default=1, ge=0)
    report_limit_max_title: int = Field(default=60, ge=0)
    report_limit_min_words: int = Field(default=500, ge=0)
    report_limit_min_text_ratio: int = Field(default=10, ge=0)
    report_limit_max_links: int = Field(default=150, ge=0)
    report_limit_load_time: float = Field(default=2, ge=0)
    report_limit_page_size: int = Field(default=330000, ge=0)
    report_limit_http_requests: int = Field(default=50, ge=0)
    report_limit_max_dom_nodes: int = Field(default=1500, ge=0)
    report_limit_image_formats: str = "AVIF\nWebP"
    report_limit_deprecated_html_tags: str = DEFAULT_DEPRECATED_HTML_TAGS
    report_limit_image_max_bytes: int = Field(default=0, ge=0)
    report_limit_ttfb: float = Field(default=0, ge=0)
    report_limit_lcp_proxy_bytes: int = Field(default=0, ge=0)

    # --- Score weights ---
    report_score_high: int = Field(default=10, ge=0)
    report_score_medium: int = Field(default=5, ge=0)
    report_score_low: int = Field(default=0, ge=0)

    # --- Session ---
    asset_probe_concurrency: int = Field(default=10, gt=0)

    # --- Optional render service ---
    render_service_enabled: bool = False
    render_service_compose_file: str = ""
    render_service_timeout: int = Field(default=60, gt=0)

    @field_validator("request_http_version", mode="before")
    @classmethod
    def _normalize_http_version(cls, v):
        v = str(v).strip()
        if v not in ("1.0", "1.1", "2"):
            raise ValueError(f"unsupported HTTP version '{v}'")
        return v

    @model_validator(mode="after")
    def _check_title_bounds(self):
        if self.report_limit_min_title > self.report_limit_max_title:
            raise ValueError("report_limit_min_title must not exceed report_limit_max_title")
        return self

    @property
    def proxies(self) -> List[str]:
        return _split_lines(self.request_proxy)

    def pick_proxy(self) -> Optional[str]:
        """Returns one configured proxy at random, or None when none is set."""
        proxies = self.proxies
        return random.choice(proxies) if proxies else None

    @property
    def image_formats(self) -> List[str]:
        return _split_lines(self.report_limit_image_formats)

    @property
    def deprecated_html_tags(self) -> List[str]:
        return _split_lines(self.report_limit_deprecated_html_tags)

    def weight_for(self, importance: str) -> int:
        if importance == "high":
            return self.report_score_high
        if importance == "medium":
            return self.report_score_medium
        return self.report_score_low
