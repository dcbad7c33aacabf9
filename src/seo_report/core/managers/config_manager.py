# src/seo_report/core/managers/config_manager.py
import json
import logging
import platform
from typing import Any, Dict, Optional

from pydantic import ValidationError

from seo_report.core.utils.path_utils import PathUtils
from seo_report.exceptions import ConfigError
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)

# Dotted settings.json path -> SeoReportConfig field
_CONFIG_FIELD_MAP: Dict[str, str] = {
    "request.timeout": "request_timeout",
    "request.http_version": "request_http_version",
    "request.user_agent": "request_user_agent",
    "request.proxy": "request_proxy",
    "sitemap.links": "sitemap_links",
    "session.asset_probe_concurrency": "asset_probe_concurrency",
    "report.limits.min_title": "report_limit_min_title",
    "report.limits.max_title": "report_limit_max_title",
    "report.limits.min_words": "report_limit_min_words",
    "report.limits.min_text_ratio": "report_limit_min_text_ratio",
    "report.limits.max_links": "report_limit_max_links",
    "report.limits.load_time": "report_limit_load_time",
    "report.limits.page_size": "report_limit_page_size",
    "report.limits.http_requests": "report_limit_http_requests",
    "report.limits.max_dom_nodes": "report_limit_max_dom_nodes",
    "report.limits.image_formats": "report_limit_image_formats",
    "report.limits.deprecated_html_tags": "report_limit_deprecated_html_tags",
    "report.limits.image_max_bytes": "report_limit_image_max_bytes",
    "report.limits.ttfb": "report_limit_ttfb",
    "report.limits.lcp_proxy_bytes": "report_limit_lcp_proxy_bytes",
    "report.score.high": "report_score_high",
    "report.score.medium": "report_score_medium",
    "report.score.low": "report_score_low",
    "render_service.enabled": "render_service_enabled",
    "render_service.compose_file": "render_service_compose_file",
    "render_service.timeout": "render_service_timeout",
}


def generate_default_user_agent(chrome_version: str = "134.0.0.0") -> str:
    """
    Builds a desktop Chrome User-Agent string for the current operating system.
    Used when 'request.user_agent' is left empty.
    """
    os_part = {
        "Windows": "Windows NT 10.0; Win64; x64",
        "Darwin": "Macintosh; Intel Mac OS X 10_15_7",
        "Linux": "X11; Linux x86_64",
    }.get(platform.system(), "Windows NT 10.0; Win64; x64")

    return (
        f"Mozilla/5.0 ({os_part}) AppleWebKit/537.36 (KHTML, like Gecko) "
        f"Chrome/{chrome_version} Safari/537.36"
    )


class ConfigManager:
    """
    A singleton class to manage the application's configuration.
    It loads settings from settings.json and allows for in-memory modifications.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Loads the configuration from the file."""
        self._config: Dict[str, Any] = {}
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'report.limits.max_title'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration.
        The new value is cast to the type of the value it replaces, when possible.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if original_value is not None:
            try:
                if isinstance(original_value, bool) and isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes", "on")
                else:
                    value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as given.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.debug("Configuration updated: %s = %s", key_path, value)
        return True

    def reset(self):
        """Resets the in-memory configuration from the settings.json file."""
        config_path = PathUtils.get_settings_file()
        if not config_path.exists():
            logger.warning("settings.json not found at %s. Using built-in defaults.", config_path)
            self._config = {}
            return
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = json.load(f)
            logger.debug("Configuration has been (re)loaded from %s.", config_path)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to load {config_path}: {e}") from e

    def build_report_config(self, **overrides: Any) -> SeoReportConfig:
        """
        Maps the nested settings onto a validated SeoReportConfig.

        Args:
            **overrides: Field values that take precedence over settings.json.

        Returns:
            SeoReportConfig: The frozen configuration for an analyzer instance.

        Raises:
            ConfigError: If a value is missing or fails validation.
        """
        values: Dict[str, Any] = {}
        for key_path, field_name in _CONFIG_FIELD_MAP.items():
            value = self.get_nested(key_path)
            if value is not None:
                values[field_name] = value

        if not values.get("request_user_agent"):
            values["request_user_agent"] = generate_default_user_agent(
                self.get_nested("user_agent.chrome_version", "134.0.0.0")
            )
        values.update(overrides)

        try:
            return SeoReportConfig(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
