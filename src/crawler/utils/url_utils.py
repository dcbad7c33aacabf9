# src/crawler/utils/url_utils.py
import logging
import re
from typing import Optional
from urllib.parse import urlparse

from yarl import URL

logger = logging.getLogger(__name__)

_ESCAPED_CHARS = (("\\?", "?"), ("\\&", "&"), ("\\#", "#"), ("\\~", "~"), ("\\;", ";"))
_PASSTHROUGH_PREFIXES = ("data:image", "tel", "mailto")
_DEFAULT_PORTS = {"http": 80, "https": 443}
UNFRIENDLY_URL_PATTERN = re.compile(r"[?=_%, ]")


class UrlUtils:
    """A collection of static methods for URL parsing and manipulation."""

    @staticmethod
    def get_host(url: str) -> str:
        """Returns the lower-cased hostname of a URL, or '' when it has none."""
        try:
            return (urlparse(url).hostname or "").lower()
        except ValueError:
            return ""

    @staticmethod
    def get_scheme(url: str) -> str:
        try:
            return urlparse(url).scheme.lower()
        except ValueError:
            return ""

    @staticmethod
    def get_base_url(url: str) -> Optional[str]:
        """
        Extracts the origin (scheme + host) of a URL.
        Returns None when the URL has no host.
        """
        try:
            parsed = urlparse(url)
        except ValueError:
            logger.debug("Could not parse invalid URL: %s", url)
            return None
        if not parsed.hostname:
            return None
        return f"{parsed.scheme or 'https'}://{parsed.hostname}"

    @staticmethod
    def ensure_scheme(url: str) -> str:
        """Prefixes 'https://' when the URL carries no scheme."""
        url = url.strip()
        if not re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
            return "https://" + url.lstrip("/")
        return url

    @staticmethod
    def clean_url(url: str) -> str:
        """
        Produces the bookkeeping form of a URL: no scheme, no 'www.', and no
        trailing slash on a root path.
        """
        try:
            path = urlparse(url).path
        except ValueError:
            path = ""
        base = url.rstrip("/") if path in ("", "/") else url
        for prefix in ("https://www.", "http://www.", "https://", "http://"):
            base = base.replace(prefix, "")
        return base

    @staticmethod
    def resolve_url(url: str, base_url: str) -> str:
        """
        Resolves a URL found in page markup against the final page URL.

        The fragment is dropped. Absolute http(s) URLs come back untouched,
        protocol-relative URLs inherit the page scheme, and data:image, tel and
        mailto references pass through. Every other reference is resolved from
        the site root.
        """
        for escaped, plain in _ESCAPED_CHARS:
            url = url.replace(escaped, plain)

        if "#" in url:
            url = url[:url.index("#")]

        if url.startswith(("http://", "https://")):
            return url

        try:
            parsed_base = urlparse(base_url)
            scheme = parsed_base.scheme or "https"
            host = parsed_base.netloc
        except ValueError:
            scheme, host = "https", ""

        if url.startswith("//"):
            return f"{scheme}://{url.strip('/')}"

        if url.startswith(_PASSTHROUGH_PREFIXES):
            return url

        return f"{scheme}://{host}".rstrip("/") + "/" + url.lstrip("/")

    @staticmethod
    def is_internal_url(url: str, base_url: str) -> bool:
        """
        Checks whether a URL belongs to the page's site.
        The page host itself and any of its subdomains count as internal.
        """
        host = UrlUtils.get_host(url)
        base_host = UrlUtils.get_host(base_url)
        if not host or not base_host:
            return False
        return host == base_host or host.endswith("." + base_host)

    @staticmethod
    def normalize_url_for_canonical(url: str) -> str:
        """
        Reduces a URL to the form used when comparing a page with its canonical:
        lower-case scheme and host, no default port, '/' for an empty path,
        query kept, trailing slashes removed.
        """
        try:
            parsed = URL(url)
        except (ValueError, TypeError):
            return url.rstrip("/")

        scheme = (parsed.scheme or "").lower()
        host = (parsed.raw_host or "").lower()
        port = parsed.explicit_port

        normalized = f"{scheme}://" if scheme else ""
        normalized += host
        if port is not None and _DEFAULT_PORTS.get(scheme) != port:
            normalized += f":{port}"
        normalized += parsed.raw_path or "/"
        if parsed.raw_query_string:
            normalized += "?" + parsed.raw_query_string
        return normalized.rstrip("/")

    @staticmethod
    def is_unfriendly(url: str) -> bool:
        """True for URLs carrying query markers, underscores, escapes, commas or spaces."""
        return bool(UNFRIENDLY_URL_PATTERN.search(url))

    @staticmethod
    def is_probeable(url: str) -> bool:
        """Only absolute http(s) URLs are ever sent a probe request."""
        return UrlUtils.get_scheme(url) in ("http", "https") and bool(UrlUtils.get_host(url))
