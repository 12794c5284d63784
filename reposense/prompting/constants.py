"""Shared constants for report prompting."""

from __future__ import annotations

from ..models import DIAGRAM_TITLE, META_TITLE, AnalysisMode

SECTIONS_FORMAT = "sections"
JSON_FORMAT = "json"
OUTPUT_FORMATS: tuple[str, ...] = (SECTIONS_FORMAT, JSON_FORMAT)

SECTION_MARKER = "==="

FILE_CHAR_BUDGET = 10_000
DEEP_FILE_CHAR_BUDGET = 30_000

SYSTEM_INSTRUCTION = (
    "You are RepoSense, a professional code intelligence engine. "
    "Your task is to analyze the provided GitHub repository context and generate a deep, "
    "system-level technical report. Keep statements concise and grounded in the supplied files."
)

REASONING_INSTRUCTION = (
    "CRITICAL: ENABLE DEEP REASONING. Explain WHY architectural decisions were likely made, "
    "and trace consequences across modules instead of listing surface observations."
)

FALLBACK_NOTICE = (
    "CRITICAL NOTICE: The repository files could not be fetched due to GitHub API rate limiting.\n"
    "You must perform a \"clean room\" analysis based SOLELY on:\n"
    "1. The repository name: \"{repo_name}\"\n"
    "2. Your internal knowledge base if this is a well-known project.\n"
    "3. Standard architectural patterns for this type of application.\n"
    "State explicitly in the PROJECT OVERVIEW that this analysis is inferred from the repository "
    "name and general knowledge, not from the repository's source code."
)

# Title -> (JSON key, guidance) for every heading the backend may emit.
SECTION_GUIDANCE: dict[str, tuple[str, str]] = {
    "PROJECT OVERVIEW": (
        "projectOverview",
        "3-5 items: purpose, target users, core problem solved.",
    ),
    "ARCHITECTURE SUMMARY": (
        "architectureSummary",
        "3-5 items: architecture style, major modules, design decisions.",
    ),
    "COMPONENT BREAKDOWN": (
        "componentBreakdown",
        "One item per key component formatted as 'Name: [Name] | Responsibility: [Resp] | Key Logic: [Logic]'.",
    ),
    "DATA & CONTROL FLOW": (
        "dataControlFlow",
        "3-5 items: entry points, data flow, dependencies.",
    ),
    "CODE QUALITY & RISKS": (
        "codeQualityRisks",
        "3-5 items: bugs, security risks, scalability concerns.",
    ),
    "IMPROVEMENT SUGGESTIONS": (
        "improvementSuggestions",
        "3-5 items: short, medium and long term fixes.",
    ),
    META_TITLE: (
        "metaAnalysis",
        "Exactly three lines: 'Code Quality Score: <1-10>', "
        "'Complexity: <Beginner|Intermediate|Advanced>', 'Maintainability: <Low|Medium|High>'.",
    ),
    DIAGRAM_TITLE: (
        "architectureDiagram",
        "A detailed ASCII art diagram of the system architecture. No bullets.",
    ),
}

MODE_SECTIONS: dict[AnalysisMode, tuple[str, ...]] = {
    AnalysisMode.FULL: tuple(SECTION_GUIDANCE),
    AnalysisMode.ARCHITECTURE: (
        "PROJECT OVERVIEW",
        "ARCHITECTURE SUMMARY",
        "COMPONENT BREAKDOWN",
        "DATA & CONTROL FLOW",
        META_TITLE,
        DIAGRAM_TITLE,
    ),
    AnalysisMode.RISKS: (
        "PROJECT OVERVIEW",
        "CODE QUALITY & RISKS",
        "IMPROVEMENT SUGGESTIONS",
        META_TITLE,
    ),
}


__all__ = [
    "DEEP_FILE_CHAR_BUDGET",
    "FALLBACK_NOTICE",
    "FILE_CHAR_BUDGET",
    "JSON_FORMAT",
    "MODE_SECTIONS",
    "OUTPUT_FORMATS",
    "REASONING_INSTRUCTION",
    "SECTIONS_FORMAT",
    "SECTION_GUIDANCE",
    "SECTION_MARKER",
    "SYSTEM_INSTRUCTION",
]
