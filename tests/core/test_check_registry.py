# tests/core/test_check_registry.py
import types

import pytest

from auditor.checks.registry import CheckRegistry, build_default_registry, check_spec
from auditor.model import CheckResult, Importance
from seo_report.exceptions import CheckRegistryError


@check_spec(names=["alpha", "beta"])
def check_alpha(ctx):
    return {"alpha": CheckResult.evaluate(Importance.LOW, 1, {})}


@check_spec(names=["beta"])
def check_beta_again(ctx):
    return {}


@check_spec(names=["gamma"])
def check_rogue(ctx):
    return {"gamma": CheckResult.evaluate(Importance.LOW, None, {}),
            "delta": CheckResult.evaluate(Importance.LOW, None, {})}


def test_register_and_categories():
    registry = CheckRegistry()
    registry.register("seo", check_alpha)
    assert registry.categories() == {"seo": ["alpha", "beta"]}
    assert registry.checks("seo") == [check_alpha]
    assert registry.checks("unknown") == []


def test_colliding_result_names_are_rejected():
    registry = CheckRegistry()
    registry.register("seo", check_alpha)
    with pytest.raises(CheckRegistryError, match="beta"):
        registry.register("performance", check_beta_again)
    # The rejected check left no trace
    assert registry.categories() == {"seo": ["alpha", "beta"]}


def test_check_without_declared_names_is_rejected():
    registry = CheckRegistry()
    with pytest.raises(CheckRegistryError):
        registry.register("seo", lambda ctx: {})


def test_undeclared_result_is_rejected_at_run_time():
    registry = CheckRegistry()
    registry.register("misc", check_rogue)
    with pytest.raises(CheckRegistryError, match="delta"):
        registry.run(object())


def test_register_module_uses_checks_sequence():
    module = types.SimpleNamespace(CHECKS=[check_alpha])
    registry = CheckRegistry()
    registry.register_module("seo", module)
    assert registry.checks() == [check_alpha]


def test_default_registry_categories():
    categories = build_default_registry().categories()
    assert list(categories) == ["seo", "performance", "security", "miscellaneous", "technology"]

    names = [name for names in categories.values() for name in names]
    assert len(names) == len(set(names))
    assert "title" in categories["seo"]
    assert "http2" in categories["security"]
    assert "ssl_certificate" in categories["technology"]
