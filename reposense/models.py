"""Core data models shared across reposense components."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AnalysisMode(str, Enum):
    """Which parts of the report the backend is asked to produce."""

    FULL = "full"
    ARCHITECTURE = "architecture"
    RISKS = "risks"

    @classmethod
    def coerce(cls, value: "AnalysisMode | str | None") -> "AnalysisMode":
        if isinstance(value, cls):
            return value
        if value:
            try:
                return cls(str(value).strip().lower())
            except ValueError:
                pass
        return cls.FULL


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


class Complexity(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Maintainability(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class RepoRef:
    """Owner/name pair identifying a hosted repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class TreeEntry:
    """One node of the remote repository tree."""

    path: str
    kind: EntryKind
    size_bytes: Optional[int] = None
    fetch_handle: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class FileContent:
    """Decoded text of a fetched repository file."""

    path: str
    text: str


@dataclass
class RepoContext:
    """Evidence gathered for a single analysis."""

    tree_paths: List[str] = field(default_factory=list)
    files: List[FileContent] = field(default_factory=list)
    is_fallback: bool = False
    truncated: bool = False

    @classmethod
    def fallback(cls) -> "RepoContext":
        """Name-only context used when the hosting API rate-limits us."""
        return cls(tree_paths=[], files=[], is_fallback=True)


@dataclass
class ReportSection:
    title: str
    items: List[str] = field(default_factory=list)


@dataclass
class MetaSummary:
    quality_score: int = 5
    complexity: Complexity = Complexity.INTERMEDIATE
    maintainability: Maintainability = Maintainability.MEDIUM


# Ordered (attribute, title) pairs for the six report sections.
SECTION_FIELDS: tuple[tuple[str, str], ...] = (
    ("project_overview", "PROJECT OVERVIEW"),
    ("architecture_summary", "ARCHITECTURE SUMMARY"),
    ("component_breakdown", "COMPONENT BREAKDOWN"),
    ("data_control_flow", "DATA & CONTROL FLOW"),
    ("code_quality_risks", "CODE QUALITY & RISKS"),
    ("improvement_suggestions", "IMPROVEMENT SUGGESTIONS"),
)

META_TITLE = "META ANALYSIS"
DIAGRAM_TITLE = "ARCHITECTURE DIAGRAM"


def _section(attribute: str) -> ReportSection:
    return ReportSection(title=dict(SECTION_FIELDS)[attribute])


@dataclass
class Report:
    """Structured technical report; always fully populated."""

    project_overview: ReportSection = field(default_factory=lambda: _section("project_overview"))
    architecture_summary: ReportSection = field(
        default_factory=lambda: _section("architecture_summary")
    )
    component_breakdown: ReportSection = field(
        default_factory=lambda: _section("component_breakdown")
    )
    data_control_flow: ReportSection = field(default_factory=lambda: _section("data_control_flow"))
    code_quality_risks: ReportSection = field(
        default_factory=lambda: _section("code_quality_risks")
    )
    improvement_suggestions: ReportSection = field(
        default_factory=lambda: _section("improvement_suggestions")
    )
    meta_analysis: MetaSummary = field(default_factory=MetaSummary)
    architecture_diagram: str = ""
    is_fallback: bool = False

    def sections(self) -> List[ReportSection]:
        return [getattr(self, attribute) for attribute, _ in SECTION_FIELDS]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        meta = data["meta_analysis"]
        meta["complexity"] = self.meta_analysis.complexity.value
        meta["maintainability"] = self.meta_analysis.maintainability.value
        return data


__all__ = [
    "AnalysisMode",
    "Complexity",
    "DIAGRAM_TITLE",
    "EntryKind",
    "FileContent",
    "META_TITLE",
    "Maintainability",
    "MetaSummary",
    "RepoContext",
    "RepoRef",
    "Report",
    "ReportSection",
    "SECTION_FIELDS",
    "TreeEntry",
]
