# src/auditor/model.py (Audit Layer)
import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Importance(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckResult(BaseModel):
    """
    Outcome of one named check.

    A failed check always carries a non-empty `errors` mapping and a passed
    check never does. `warnings` may accompany either outcome.
    """
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    passed: bool
    importance: Importance
    value: Any = None
    errors: Optional[Dict[str, Any]] = None
    warnings: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _errors_match_outcome(self):
        if self.passed and self.errors is not None:
            raise ValueError("a passed check must not carry errors")
        if not self.passed and not self.errors:
            raise ValueError("a failed check must carry at least one error")
        return self

    @classmethod
    def evaluate(cls, importance: Importance, value: Any, errors: Dict[str, Any],
                 warnings: Optional[Dict[str, Any]] = None) -> "CheckResult":
        """Builds a result whose outcome follows from whether any error was recorded."""
        return cls(
            passed=not errors,
            importance=importance,
            value=value,
            errors=errors or None,
            warnings=warnings or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "passed": self.passed,
            "importance": self.importance,
            "value": self.value,
        }
        if self.errors is not None:
            data["errors"] = self.errors
        if self.warnings is not None:
            data["warnings"] = self.warnings
        return data


class AnalysisResult(BaseModel):
    """The scored report of one analyzed page."""
    model_config = ConfigDict(frozen=True)

    url: str
    score: float
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    results: Dict[str, CheckResult] = Field(default_factory=dict)
    categories: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("score")
    @classmethod
    def _score_in_range(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("score must lie between 0 and 100")
        return v

    @property
    def full_url(self) -> str:
        friendly = self.results.get("seo_friendly_url")
        if friendly is not None and friendly.value:
            return str(friendly.value)
        return self.url

    def to_array(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "score": self.score,
            "generated_at": self.generated_at.isoformat(),
            "results": {name: result.to_dict() for name, result in self.results.items()},
            "categories": {name: list(checks) for name, checks in self.categories.items()},
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_array(), ensure_ascii=False, indent=indent, default=str)

    @classmethod
    def from_json(cls, payload: str) -> "AnalysisResult":
        data = json.loads(payload)
        return cls(
            url=data["url"],
            score=data["score"],
            generated_at=datetime.fromisoformat(data["generated_at"]),
            results={name: CheckResult(**result) for name, result in data.get("results", {}).items()},
            categories=data.get("categories", {}),
        )
