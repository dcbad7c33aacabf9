# src/auditor/services/score_service.py
import logging
from typing import Mapping

from auditor.model import CheckResult
from seo_report.model import SeoReportConfig

logger = logging.getLogger(__name__)


class ScoreService:
    """
    Weighted pass rate over all check results.

    Every result adds its importance weight to the total; passed results also
    add it to the earned points. A report whose weights sum to zero (for
    example one made only of low-importance results) scores 0.
    """

    def __init__(self, config: SeoReportConfig):
        self.config = config

    def score(self, results: Mapping[str, CheckResult]) -> float:
        total = 0
        earned = 0
        for result in results.values():
            weight = self.config.weight_for(result.importance)
            total += weight
            if result.passed:
                earned += weight

        if total == 0:
            logger.debug("All %d results carry zero weight; score is 0.", len(results))
            return 0.0
        return round(100 * earned / total, 2)
