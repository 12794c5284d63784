"""reposense: AI technical reports for public GitHub repositories."""

from .locator import parse_repo_ref
from .models import AnalysisMode, RepoContext, RepoRef, Report
from .orchestrator import AnalysisOutcome, AnalysisState, Orchestrator
from .selector import select_files

__all__ = [
    "AnalysisMode",
    "AnalysisOutcome",
    "AnalysisState",
    "Orchestrator",
    "RepoContext",
    "RepoRef",
    "Report",
    "parse_repo_ref",
    "select_files",
]
