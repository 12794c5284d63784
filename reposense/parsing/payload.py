"""Validated intermediate structure for JSON-shaped backend responses."""

from __future__ import annotations

import math
import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import (
    Complexity,
    Maintainability,
    MetaSummary,
    Report,
    ReportSection,
    SECTION_FIELDS,
)

DEFAULT_SCORE = 5
_INTEGER_RE = re.compile(r"-?\d{1,9}")
_COMPLEXITY_RE = re.compile(r"\b(beginner|intermediate|advanced)\b")
_MAINTAINABILITY_RE = re.compile(r"\b(low|medium|high)\b")
_BULLETS = ("- ", "• ", "* ")


def clean_item(value: str) -> Optional[str]:
    """Trim ``value`` and drop a single leading bullet marker; empty text yields ``None``."""
    text = value.strip()
    for bullet in _BULLETS:
        if text.startswith(bullet):
            text = text[len(bullet) :].strip()
            break
    return text or None


def coerce_score(value: Any) -> int:
    """Extract a 1-10 quality score, defaulting to 5."""
    if isinstance(value, bool) or value is None:
        return DEFAULT_SCORE
    if isinstance(value, float) and not math.isfinite(value):
        return DEFAULT_SCORE
    if isinstance(value, (int, float)):
        score = int(value)
    else:
        match = _INTEGER_RE.search(str(value))
        if match is None:
            return DEFAULT_SCORE
        score = int(match.group(0))
    return min(10, max(1, score))


def coerce_complexity(value: Any) -> Complexity:
    match = _COMPLEXITY_RE.search(value.lower()) if isinstance(value, str) else None
    if match is None:
        return Complexity.INTERMEDIATE
    return Complexity[match.group(1).upper()]


def coerce_maintainability(value: Any) -> Maintainability:
    match = _MAINTAINABILITY_RE.search(value.lower()) if isinstance(value, str) else None
    if match is None:
        return Maintainability.MEDIUM
    return Maintainability[match.group(1).upper()]


class MetaPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    quality_score: int = Field(DEFAULT_SCORE, alias="qualityScore")
    complexity: Complexity = Complexity.INTERMEDIATE
    maintainability: Maintainability = Maintainability.MEDIUM

    @field_validator("quality_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> int:
        return coerce_score(value)

    @field_validator("complexity", mode="before")
    @classmethod
    def _complexity(cls, value: Any) -> Complexity:
        return coerce_complexity(value)

    @field_validator("maintainability", mode="before")
    @classmethod
    def _maintainability(cls, value: Any) -> Maintainability:
        return coerce_maintainability(value)

    def to_meta(self) -> MetaSummary:
        return MetaSummary(
            quality_score=self.quality_score,
            complexity=self.complexity,
            maintainability=self.maintainability,
        )


class ReportPayload(BaseModel):
    """Every field is optional and falls back to a safe default when malformed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    project_overview: List[str] = Field(default_factory=list, alias="projectOverview")
    architecture_summary: List[str] = Field(default_factory=list, alias="architectureSummary")
    component_breakdown: List[str] = Field(default_factory=list, alias="componentBreakdown")
    data_control_flow: List[str] = Field(default_factory=list, alias="dataControlFlow")
    code_quality_risks: List[str] = Field(default_factory=list, alias="codeQualityRisks")
    improvement_suggestions: List[str] = Field(
        default_factory=list, alias="improvementSuggestions"
    )
    meta_analysis: MetaPayload = Field(default_factory=MetaPayload, alias="metaAnalysis")
    architecture_diagram: str = Field("", alias="architectureDiagram")

    @field_validator(*(attribute for attribute, _ in SECTION_FIELDS), mode="before")
    @classmethod
    def _items(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        items: List[str] = []
        for entry in value:
            if isinstance(entry, bool) or not isinstance(entry, (str, int, float)):
                continue
            cleaned = clean_item(str(entry))
            if cleaned:
                items.append(cleaned)
        return items

    @field_validator("meta_analysis", mode="before")
    @classmethod
    def _meta(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("architecture_diagram", mode="before")
    @classmethod
    def _diagram(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @classmethod
    def from_data(cls, data: Any) -> "ReportPayload":
        if not isinstance(data, dict):
            return cls()
        return cls.model_validate(data)

    def to_report(self, *, is_fallback: bool = False) -> Report:
        report = Report(
            meta_analysis=self.meta_analysis.to_meta(),
            architecture_diagram=self.architecture_diagram,
            is_fallback=is_fallback,
        )
        for attribute, title in SECTION_FIELDS:
            setattr(report, attribute, ReportSection(title=title, items=list(getattr(self, attribute))))
        return report


__all__ = [
    "DEFAULT_SCORE",
    "MetaPayload",
    "ReportPayload",
    "clean_item",
    "coerce_complexity",
    "coerce_maintainability",
    "coerce_score",
]


