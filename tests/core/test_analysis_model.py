# tests/core/test_analysis_model.py
import json

import pytest
from pydantic import ValidationError

from auditor.model import AnalysisResult, CheckResult, Importance
from auditor.services.score_service import ScoreService


# --- CheckResult ---

def test_passed_result_cannot_carry_errors():
    with pytest.raises(ValidationError):
        CheckResult(passed=True, importance=Importance.HIGH, errors={"missing": None})


def test_failed_result_needs_an_error():
    with pytest.raises(ValidationError):
        CheckResult(passed=False, importance=Importance.HIGH)
    with pytest.raises(ValidationError):
        CheckResult(passed=False, importance=Importance.HIGH, errors={})


def test_evaluate_derives_outcome():
    assert CheckResult.evaluate(Importance.LOW, 3, {}).passed is True
    failed = CheckResult.evaluate(Importance.LOW, 3, {"missing": None}, warnings={"note": 1})
    assert failed.passed is False
    assert failed.warnings == {"note": 1}


def test_to_dict_omits_empty_sections():
    data = CheckResult.evaluate(Importance.MEDIUM, "x", {}).to_dict()
    assert data == {"passed": True, "importance": "medium", "value": "x"}


# --- AnalysisResult ---

def _report(**overrides) -> AnalysisResult:
    data = dict(
        url="https://example.com",
        score=50.0,
        results={
            "title": CheckResult.evaluate(Importance.HIGH, "Home", {}),
            "seo_friendly_url": CheckResult.evaluate(Importance.HIGH, "https://example.com/home", {"missing": None}),
        },
        categories={"seo": ["title", "seo_friendly_url"]},
    )
    data.update(overrides)
    return AnalysisResult(**data)


@pytest.mark.parametrize("score", [-1, 100.5])
def test_score_out_of_range_is_rejected(score):
    with pytest.raises(ValidationError):
        _report(score=score)


def test_full_url_prefers_friendly_url_value():
    assert _report().full_url == "https://example.com/home"
    assert _report(results={}).full_url == "https://example.com"


def test_json_round_trip():
    report = _report()
    payload = report.to_json()
    assert json.loads(payload)["results"]["seo_friendly_url"]["errors"] == {"missing": None}

    restored = AnalysisResult.from_json(payload)
    assert restored.to_array() == report.to_array()


# --- Score ---

def test_score_weighs_by_importance(report_config):
    results = {
        "a": CheckResult.evaluate(Importance.HIGH, None, {}),
        "b": CheckResult.evaluate(Importance.MEDIUM, None, {"missing": None}),
        "c": CheckResult.evaluate(Importance.LOW, None, {"missing": None}),
    }
    assert ScoreService(report_config).score(results) == 66.67


def test_score_of_zero_weight_report_is_zero(report_config):
    results = {"a": CheckResult.evaluate(Importance.LOW, None, {})}
    assert ScoreService(report_config).score(results) == 0.0
    assert ScoreService(report_config).score({}) == 0.0


def test_score_all_passed_is_100(report_config):
    results = {
        "a": CheckResult.evaluate(Importance.HIGH, None, {}),
        "b": CheckResult.evaluate(Importance.MEDIUM, None, {}),
    }
    assert ScoreService(report_config).score(results) == 100.0
