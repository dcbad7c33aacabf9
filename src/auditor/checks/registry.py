# src/auditor/checks/registry.py
import logging
from types import ModuleType
from typing import Callable, Dict, Iterable, List, Optional

from auditor.checks.context import AnalysisContext
from auditor.model import CheckResult
from seo_report.exceptions import CheckRegistryError

logger = logging.getLogger(__name__)

Check = Callable[[AnalysisContext], Dict[str, CheckResult]]


def check_spec(names: List[str]):
    """
    Decorator to declare which result names a check function may return.
    The registry uses the declaration to reject collisions up front.
    """
    def decorator(func):
        func.result_names = list(names)
        return func
    return decorator


class CheckRegistry:
    """
    Ordered catalog of checks grouped by category.

    Result names are unique across the whole registry; registering a check
    whose declared names are already owned raises `CheckRegistryError`.
    """

    def __init__(self):
        self._checks: Dict[str, List[Check]] = {}
        self._owners: Dict[str, str] = {}

    def register(self, category: str, check: Check) -> None:
        names = getattr(check, "result_names", None)
        if not names:
            raise CheckRegistryError(f"Check '{check.__name__}' declares no result names")

        for name in names:
            owner = self._owners.get(name)
            if owner is not None:
                raise CheckRegistryError(
                    f"Result name '{name}' of '{check.__name__}' is already declared by '{owner}'"
                )

        for name in names:
            self._owners[name] = check.__name__
        self._checks.setdefault(category, []).append(check)
        logger.debug("Registered check %s in %s: %s", check.__name__, category, names)

    def register_module(self, category: str, module: ModuleType) -> None:
        """Registers the checks a category module lists in its `CHECKS` sequence."""
        for check in getattr(module, "CHECKS", ()):
            self.register(category, check)

    def categories(self) -> Dict[str, List[str]]:
        """Maps each category to the result names its checks declare, in registration order."""
        return {
            category: [name for check in checks for name in check.result_names]
            for category, checks in self._checks.items()
        }

    def checks(self, category: Optional[str] = None) -> Iterable[Check]:
        if category is not None:
            return list(self._checks.get(category, []))
        return [check for checks in self._checks.values() for check in checks]

    def run(self, context: AnalysisContext) -> Dict[str, CheckResult]:
        """Runs every registered check against one context and merges their named results."""
        results: Dict[str, CheckResult] = {}
        for category, checks in self._checks.items():
            for check in checks:
                produced = check(context) or {}
                undeclared = set(produced) - set(check.result_names)
                if undeclared:
                    raise CheckRegistryError(
                        f"Check '{check.__name__}' returned undeclared results: {sorted(undeclared)}"
                    )
                results.update(produced)
        return results


def build_default_registry() -> CheckRegistry:
    """Builds the registry holding the five standard categories."""
    from auditor.checks import misc, performance, security, seo, technology

    registry = CheckRegistry()
    registry.register_module("seo", seo)
    registry.register_module("performance", performance)
    registry.register_module("security", security)
    registry.register_module("miscellaneous", misc)
    registry.register_module("technology", technology)
    return registry
