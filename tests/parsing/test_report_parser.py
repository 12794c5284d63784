"""Tests for incremental report parsing."""

from __future__ import annotations

import json

import pytest

from reposense.errors import ReportParseError
from reposense.models import Complexity, Maintainability
from reposense.parsing.report_parser import ReportParser, strip_code_fences


def test_parses_complete_sections_report(sample_report_text: str) -> None:
    report = ReportParser().parse(sample_report_text)

    assert report is not None
    assert report.project_overview.items == [
        "A widget factory for the command line",
        "Targets platform engineers",
    ]
    assert report.architecture_summary.items == ["Layered CLI over a small service core"]
    assert report.component_breakdown.items[0].startswith("Name: cli |")
    assert report.data_control_flow.items == ["main() parses flags and calls core.build()"]
    assert report.code_quality_risks.items == ["No input validation on widget names"]
    assert report.improvement_suggestions.items == ["Add schema validation"]
    assert report.meta_analysis.quality_score == 7
    assert report.meta_analysis.complexity is Complexity.ADVANCED
    assert report.meta_analysis.maintainability is Maintainability.HIGH
    assert report.architecture_diagram == "  [cli] ---> [core]\n               |\n            [store]"
    assert report.is_fallback is False


def test_every_prefix_parses_and_final_matches(sample_report_text: str) -> None:
    parser = ReportParser()
    for end in range(len(sample_report_text) + 1):
        report = parser.parse(sample_report_text[:end])
        assert report is not None
        assert len(report.sections()) == 6

    assert parser.parse(sample_report_text) == parser.parse_final(sample_report_text)


def test_streamed_sections_grow_monotonically(sample_report_text: str) -> None:
    parser = ReportParser()
    previous = 0
    for end in range(0, len(sample_report_text) + 1, 7):
        report = parser.parse(sample_report_text[:end])
        assert report is not None
        count = len(report.project_overview.items)
        assert count >= previous
        previous = count


def test_empty_text_yields_default_report() -> None:
    report = ReportParser().parse("")

    assert report is not None
    assert all(section.items == [] for section in report.sections())
    assert [section.title for section in report.sections()] == [
        "PROJECT OVERVIEW",
        "ARCHITECTURE SUMMARY",
        "COMPONENT BREAKDOWN",
        "DATA & CONTROL FLOW",
        "CODE QUALITY & RISKS",
        "IMPROVEMENT SUGGESTIONS",
    ]
    assert report.meta_analysis.quality_score == 5
    assert report.meta_analysis.complexity is Complexity.INTERMEDIATE
    assert report.meta_analysis.maintainability is Maintainability.MEDIUM
    assert report.architecture_diagram == ""


@pytest.mark.parametrize("score", ["NaN", "Infinity", "-Infinity", "1e999"])
def test_non_finite_json_score_defaults(score: str) -> None:
    text = '{"projectOverview": ["ok"], "metaAnalysis": {"qualityScore": %s}}' % score

    partial = ReportParser().parse(text)
    final = ReportParser().parse_final(text)

    assert partial is not None
    assert partial.meta_analysis.quality_score == 5
    assert final.meta_analysis.quality_score == 5
    assert final.project_overview.items == ["ok"]


def test_oversized_score_digits_are_clamped() -> None:
    report = ReportParser().parse("=== META ANALYSIS ===\n- Score: " + "9" * 5000 + "\n")

    assert report is not None
    assert report.meta_analysis.quality_score == 10


def test_text_before_first_heading_is_ignored() -> None:
    report = ReportParser().parse("Sure! Here is your report.\n=== PROJECT OVERVIEW ===\n- One\n")

    assert report is not None
    assert report.project_overview.items == ["One"]


def test_incomplete_heading_is_not_applied() -> None:
    report = ReportParser().parse("=== PROJECT OVERVIEW ===\n- One\n=== ARCHITEC")

    assert report is not None
    assert report.project_overview.items == ["One"]
    assert report.architecture_summary.items == []


def test_bullets_are_stripped_once() -> None:
    text = "=== PROJECT OVERVIEW ===\n- dash\n• dot\n* star\nplain\n- - nested\n\n   \n"

    report = ReportParser().parse(text)

    assert report is not None
    assert report.project_overview.items == ["dash", "dot", "star", "plain", "- nested"]


def test_loose_headings_are_recognised() -> None:
    text = (
        "=== Project Overview ===\n- a\n"
        "=== DATA AND CONTROL FLOW ===\n- b\n"
        "=== Risks ===\n- c\n"
        "=== ARCHITECTURE ===\n- d\n"
        "=== UNRELATED NOTES ===\n- ignored\n"
    )

    report = ReportParser().parse(text)

    assert report is not None
    assert report.project_overview.items == ["a"]
    assert report.data_control_flow.items == ["b"]
    assert report.code_quality_risks.items == ["c"]
    assert report.architecture_summary.items == ["d"]
    assert "ignored" not in json.dumps(report.to_dict())


def test_repeated_heading_replaces_section() -> None:
    text = "=== PROJECT OVERVIEW ===\n- first\n=== PROJECT OVERVIEW ===\n- second\n"

    report = ReportParser().parse(text)

    assert report is not None
    assert report.project_overview.items == ["second"]


def test_diagram_keeps_whitespace_and_drops_fences() -> None:
    text = (
        "=== ARCHITECTURE DIAGRAM ===\n"
        "```text\n"
        "\n"
        "   +-----+     +----+\n"
        "   | api | --> | db |\n"
        "   +-----+     +----+\n"
        "```\n"
        "\n"
    )

    report = ReportParser().parse(text)

    assert report is not None
    assert report.architecture_diagram == (
        "   +-----+     +----+\n   | api | --> | db |\n   +-----+     +----+"
    )


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Code Quality Score: 8/10", 8),
        ("Score: 15", 10),
        ("Score: 0", 1),
        ("Score: -3", 1),
        ("Score: unknown", 5),
    ],
)
def test_quality_score_is_clamped(line: str, expected: int) -> None:
    report = ReportParser().parse(f"=== META ANALYSIS ===\n- {line}\n")

    assert report is not None
    assert report.meta_analysis.quality_score == expected


def test_meta_values_are_case_insensitive() -> None:
    text = "=== META ANALYSIS ===\n- complexity: beginner\n- MAINTAINABILITY: low\n"

    report = ReportParser().parse(text)

    assert report is not None
    assert report.meta_analysis.complexity is Complexity.BEGINNER
    assert report.meta_analysis.maintainability is Maintainability.LOW


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("Maintainability: High (follows clear patterns)", Maintainability.HIGH),
        ("Maintainability: Medium, slowly improving", Maintainability.MEDIUM),
        ("Maintainability: High despite low test coverage", Maintainability.HIGH),
    ],
)
def test_maintainability_matches_whole_words(line: str, expected: Maintainability) -> None:
    report = ReportParser().parse(f"=== META ANALYSIS ===\n- {line}\n")

    assert report is not None
    assert report.meta_analysis.maintainability is expected


def test_complexity_matches_whole_words() -> None:
    text = "=== META ANALYSIS ===\n- Complexity: Intermediate, not for beginners\n"

    report = ReportParser().parse(text)

    assert report is not None
    assert report.meta_analysis.complexity is Complexity.INTERMEDIATE


def test_fallback_flag_is_carried() -> None:
    report = ReportParser().parse("=== PROJECT OVERVIEW ===\n- inferred\n", is_fallback=True)

    assert report is not None
    assert report.is_fallback is True


JSON_REPORT = {
    "projectOverview": ["- Builds widgets", "Targets engineers"],
    "architectureSummary": ["Layered"],
    "componentBreakdown": [],
    "dataControlFlow": ["main -> core"],
    "codeQualityRisks": ["No validation"],
    "improvementSuggestions": ["Validate input"],
    "metaAnalysis": {"qualityScore": 12, "complexity": "Advanced", "maintainability": "High"},
    "architectureDiagram": "[cli] --> [core]",
}


def test_parses_fenced_json_report() -> None:
    text = "```json\n" + json.dumps(JSON_REPORT, indent=2) + "\n```"

    report = ReportParser().parse_final(text)

    assert report.project_overview.items == ["Builds widgets", "Targets engineers"]
    assert report.data_control_flow.items == ["main -> core"]
    assert report.meta_analysis.quality_score == 10
    assert report.meta_analysis.complexity is Complexity.ADVANCED
    assert report.architecture_diagram == "[cli] --> [core]"


def test_partial_json_produces_snapshots() -> None:
    text = json.dumps(JSON_REPORT)
    cut = text.index("Targets") + 3

    report = ReportParser().parse(text[:cut])

    assert report is not None
    assert report.project_overview.items == ["Builds widgets", "Tar"]
    assert report.architecture_summary.items == []


def test_undecodable_partial_json_returns_none() -> None:
    assert ReportParser().parse('{"projectOverview": ]') is None


def test_json_with_bad_types_uses_defaults() -> None:
    text = json.dumps(
        {
            "projectOverview": "not a list",
            "architectureSummary": ["ok", 3, None, {"x": 1}],
            "metaAnalysis": {"qualityScore": "seven", "complexity": 4},
            "architectureDiagram": ["nope"],
        }
    )

    report = ReportParser().parse_final(text)

    assert report.project_overview.items == []
    assert report.architecture_summary.items == ["ok", "3"]
    assert report.meta_analysis.quality_score == 5
    assert report.meta_analysis.complexity is Complexity.INTERMEDIATE
    assert report.architecture_diagram == ""


def test_invalid_final_json_raises() -> None:
    with pytest.raises(ReportParseError):
        ReportParser().parse_final('{"projectOverview": ["unterminated"')


def test_forced_format_skips_detection() -> None:
    parser = ReportParser(output_format="sections")

    assert parser.detect_format('{"projectOverview": []}') == "sections"
    assert ReportParser().detect_format("```json\n{") == "json"
    assert ReportParser().detect_format("=== PROJECT OVERVIEW ===") == "sections"


def test_unknown_parser_format_rejected() -> None:
    with pytest.raises(ValueError):
        ReportParser(output_format="yaml")


def test_strip_code_fences() -> None:
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert strip_code_fences("  {}  ") == "{}"
    assert strip_code_fences("```") == ""
