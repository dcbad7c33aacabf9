# src/seo_report/core/utils/configure_logging.py
import logging
import sys
from typing import Dict, Optional, Union

from tqdm import tqdm

LevelLike = Union[str, int]


class LogWithTqdm(logging.Handler):
    """
    A logging handler that writes through `tqdm.write()`, so log lines emitted
    during a sitemap crawl do not tear the progress bar.
    """
    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


def _to_level(level: LevelLike, fallback: int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), fallback)
    return level


def configure_logger(
        general_level: LevelLike = 'INFO',
        module_specific_levels: Optional[Dict[str, LevelLike]] = None,
        silenced_loggers: Optional[Dict[str, LevelLike]] = None,
) -> None:
    """
    Configures the root logger with a tqdm-friendly handler.

    Args:
        general_level: Level for the root logger.
        module_specific_levels: Per-logger levels, e.g. {'crawler': 'DEBUG'}.
        silenced_loggers: Noisy third-party loggers and the level to clamp them to.
    """
    handler = LogWithTqdm()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - [%(name)s:%(lineno)d] - %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(_to_level(general_level, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name, level in (module_specific_levels or {}).items():
        logging.getLogger(name).setLevel(_to_level(level, logging.INFO))

    for name, level in (silenced_loggers or {}).items():
        logging.getLogger(name).setLevel(_to_level(level, logging.CRITICAL))
