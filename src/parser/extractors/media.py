# src/parser/extractors/media.py
import re
from typing import Any, Dict, List
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from crawler.utils.url_utils import UrlUtils
from parser.utils.dom_utils import attr
from parser.utils.text_utils import clean_tag_text
from seo_report.model import SeoReportConfig

_FLASH_TYPE = re.compile(r"flash|shockwave", re.IGNORECASE)


def _is_flash(type_value: str, source: str) -> bool:
    return bool(_FLASH_TYPE.search(type_value)) or source.lower().endswith(".swf")


def _extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    filename = path.rsplit("/", 1)[-1]
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def extract(soup: BeautifulSoup, raw_body: str, base_url: str, config: SeoReportConfig) -> Dict[str, Any]:
    """
    Image, flash and iframe facts.

    An image counts against `image_formats` when its file extension is neither
    svg nor one of the configured formats.
    """
    allowed_formats = [fmt.lower() for fmt in config.image_formats]

    image_alts: List[Dict[str, str]] = []
    image_formats: List[Dict[str, str]] = []
    missing_dimensions: List[Dict[str, Any]] = []
    missing_lazy: List[str] = []
    image_urls: List[str] = []

    for node in soup.find_all("img"):
        src = attr(node, "src")
        alt = attr(node, "alt")
        if not src:
            continue
        url = UrlUtils.resolve_url(src, base_url)

        if not alt:
            image_alts.append({"url": url, "text": alt})

        image_urls.append(url)

        missing = [name for name in ("width", "height") if attr(node, name).strip() in ("", "0")]
        if missing:
            missing_dimensions.append({"url": url, "missing": missing})

        if attr(node, "loading").strip().lower() != "lazy":
            missing_lazy.append(url)

        ext = _extension(url)
        if ext != "svg" and ext not in allowed_formats:
            image_formats.append({"url": url, "text": clean_tag_text(alt)})

    # --- Flash ---
    flash_content: List[str] = []
    for node in soup.find_all("object"):
        data = attr(node, "data")
        if _is_flash(attr(node, "type"), data):
            flash_content.append(UrlUtils.resolve_url(data, base_url) if data else "object")
    for node in soup.find_all("embed"):
        src = attr(node, "src")
        if _is_flash(attr(node, "type"), src):
            flash_content.append(UrlUtils.resolve_url(src, base_url) if src else "embed")

    # --- Iframes ---
    iframes = [
        {"url": UrlUtils.resolve_url(attr(node, "src"), base_url), "title": clean_tag_text(attr(node, "title"))}
        for node in soup.find_all("iframe")
        if attr(node, "src")
    ]

    return {
        "image_alts": image_alts,
        "image_formats_config": list(config.image_formats),
        "image_formats": image_formats,
        "images_missing_dimensions": missing_dimensions,
        "images_missing_lazy": missing_lazy,
        "image_urls": image_urls,
        "flash_content": flash_content,
        "iframes": iframes,
    }
