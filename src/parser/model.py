# ============================================
# file: src/parser/model.py
# ============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def _empty_http_requests() -> Dict[str, List[str]]:
    return {"JavaScripts": [], "CSS": [], "Images": [], "Audios": [], "Videos": [], "Iframes": []}


class PageFacts(BaseModel):
    """
    The flat fact record of one analyzed page.

    Every key a check may read is declared here with its default, so checks
    never have to distinguish "missing" from "empty". Where `None` and an empty
    value mean different things (e.g. a missing title versus an empty one),
    the field is Optional.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    # --- Document basics ---
    page_text: str = ""
    body_keywords: List[str] = Field(default_factory=list)
    doc_type: str = ""
    dom_nodes_count: int = 0
    text_ratio: int = 0
    deprecated_html_tags: Dict[str, int] = Field(default_factory=dict)

    # --- Head metadata ---
    title: Optional[str] = None
    title_tags_count: int = 0
    meta_description: Optional[str] = None
    noindex: Optional[str] = None
    robots_directives: List[str] = Field(default_factory=list)
    language: Optional[str] = None
    favicon: Optional[str] = None
    canonical_tag: Optional[str] = None
    canonical_tags: List[str] = Field(default_factory=list)
    hreflang: List[Dict[str, str]] = Field(default_factory=list)
    meta_viewport: Optional[str] = None
    charset: Optional[str] = None

    # --- Headings ---
    headings: Dict[str, List[str]] = Field(default_factory=dict)
    h1_count: int = 0
    secondary_heading_usage: Dict[str, int] = Field(default_factory=dict)
    secondary_heading_levels: int = 0

    # --- Derived keywords ---
    title_keywords: List[str] = Field(default_factory=list)
    keyword_consistency: Dict[str, List[str]] = Field(default_factory=dict)
    inline_css: List[str] = Field(default_factory=list)

    # --- Links ---
    page_links: Dict[str, List[Dict[str, str]]] = Field(
        default_factory=lambda: {"Internals": [], "Externals": []}
    )
    unfriendly_link_urls: List[Dict[str, str]] = Field(default_factory=list)
    nofollow_links: List[Dict[str, str]] = Field(default_factory=list)
    nofollow_count: int = 0
    social: Dict[str, List[Dict[str, str]]] = Field(default_factory=dict)

    # --- Media ---
    image_alts: List[Dict[str, str]] = Field(default_factory=list)
    image_formats_config: List[str] = Field(default_factory=list)
    image_formats: List[Dict[str, str]] = Field(default_factory=list)
    images_missing_dimensions: List[Dict[str, Any]] = Field(default_factory=list)
    images_missing_lazy: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    flash_content: List[str] = Field(default_factory=list)
    iframes: List[Dict[str, str]] = Field(default_factory=list)

    # --- Performance assets ---
    http_requests: Dict[str, List[str]] = Field(default_factory=_empty_http_requests)
    empty_src_or_href: List[str] = Field(default_factory=list)
    defer_javascript: List[str] = Field(default_factory=list)
    render_blocking: Dict[str, List[str]] = Field(default_factory=lambda: {"js": [], "css": []})

    # --- Content security ---
    http_scheme: Optional[str] = None
    mixed_content: Dict[str, List[str]] = Field(default_factory=dict)
    unsafe_cross_origin_links: List[str] = Field(default_factory=list)
    plaintext_emails: List[str] = Field(default_factory=list)

    # --- Structured data ---
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    open_graph_data: Dict[str, str] = Field(default_factory=dict)
    twitter_data: Dict[str, str] = Field(default_factory=dict)
    json_ld: List[Dict[str, Any]] = Field(default_factory=list)
    structured_data_errors: List[Dict[str, Any]] = Field(default_factory=list)

    # --- Technology fingerprints ---
    analytics_detected: List[str] = Field(default_factory=list)
    technology_detected: List[str] = Field(default_factory=list)
    non_minified_js: List[str] = Field(default_factory=list)
    non_minified_css: List[str] = Field(default_factory=list)

    # --- Response (set by the analysis controller) ---
    host_str: str = ""
    base_url: str = ""
    current_url: str = ""
    noindex_header_value: Optional[str] = None
    http_version: str = "1.1"
    server_header: List[str] = Field(default_factory=list)
    hsts_header: List[str] = Field(default_factory=list)
    enc_tokens: List[str] = Field(default_factory=list)
    cache_control: str = ""
    expires_header: str = ""
    has_max_age: bool = False
    redirect_count: int = 0
    redirect_history: List[Dict[str, Any]] = Field(default_factory=list)
    security_headers: Dict[str, str] = Field(default_factory=dict)

    # --- Robots & 404 probes ---
    robots: bool = True
    robots_rules_failed: List[str] = Field(default_factory=list)
    sitemaps: List[str] = Field(default_factory=list)
    not_found_page: Optional[str] = None
    security_txt_url: Optional[str] = None

    # --- Domain data probes ---
    server_ip: Optional[str] = None
    dns_servers: List[str] = Field(default_factory=list)
    dmarc_record: Optional[str] = None
    spf_record: Optional[str] = None
    ssl_certificate: Optional[Dict[str, Any]] = None
    reverse_dns: Optional[str] = None
    llms_txt_url: Optional[str] = None

    # --- Asset probes ---
    main_host: str = ""
    checked_static_assets: List[str] = Field(default_factory=list)
    missing_static_cache: List[str] = Field(default_factory=list)
    cookie_domain_hits: List[str] = Field(default_factory=list)
    asset_redirects: List[Dict[str, Any]] = Field(default_factory=list)
    image_max_bytes: int = 0
    large_images: List[Dict[str, Any]] = Field(default_factory=list)
    largest_image: Optional[Dict[str, Any]] = None
