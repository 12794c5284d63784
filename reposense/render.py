"""Plain-text rendering of reports for terminal output."""

from __future__ import annotations

from typing import List

from .models import DIAGRAM_TITLE, META_TITLE, Report

FALLBACK_BANNER = (
    "NOTE: GitHub rate limits prevented reading the repository. "
    "This report is inferred from the repository name and may be inaccurate."
)


def render_report(report: Report, *, title: str | None = None) -> str:
    """Render ``report`` as Markdown-flavoured text, skipping empty sections."""
    lines: List[str] = []
    if title:
        lines.extend([f"# {title}", ""])
    if report.is_fallback:
        lines.extend([FALLBACK_BANNER, ""])

    for section in report.sections():
        if not section.items:
            continue
        lines.append(f"## {section.title}")
        lines.extend(f"- {item}" for item in section.items)
        lines.append("")

    meta = report.meta_analysis
    lines.append(f"## {META_TITLE}")
    lines.append(f"- Code Quality Score: {meta.quality_score}/10")
    lines.append(f"- Complexity: {meta.complexity.value}")
    lines.append(f"- Maintainability: {meta.maintainability.value}")
    lines.append("")

    if report.architecture_diagram:
        lines.extend([f"## {DIAGRAM_TITLE}", "```", report.architecture_diagram, "```", ""])

    return "\n".join(lines).rstrip() + "\n"


__all__ = ["FALLBACK_BANNER", "render_report"]
