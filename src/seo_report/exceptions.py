# src/seo_report/exceptions.py
from typing import Optional


class SeoReportError(Exception):
    """Base class for all errors raised by the report engine."""


class FetchError(SeoReportError):
    """
    Raised when a page (or a sitemap) cannot be fetched.

    The primary request either failed at the transport level, exceeded the
    redirect cap, or ended on a non-2xx status.
    """

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Could not fetch URL: {url} ({reason})")


class ConfigError(SeoReportError):
    """Raised at startup when the configuration is missing or invalid."""


class CheckRegistryError(SeoReportError):
    """Raised when the check catalog declares or emits conflicting result names."""
