"""Incremental reconstruction of a Report from streamed backend text."""

from __future__ import annotations

import json
import re
from typing import Dict, List, Optional

from ..errors import ReportParseError
from ..logging import get_logger
from ..models import DIAGRAM_TITLE, META_TITLE, MetaSummary, Report, ReportSection, SECTION_FIELDS
from ..prompting.constants import JSON_FORMAT, SECTION_MARKER, SECTIONS_FORMAT
from .partial_json import load_partial_json
from .payload import (
    ReportPayload,
    clean_item,
    coerce_complexity,
    coerce_maintainability,
    coerce_score,
)

AUTO_FORMAT = "auto"
PARSER_FORMATS = (AUTO_FORMAT, SECTIONS_FORMAT, JSON_FORMAT)

_META = "__meta__"
_DIAGRAM = "__diagram__"
_TITLE_TO_KEY: Dict[str, str] = {title: attribute for attribute, title in SECTION_FIELDS}
_TITLE_TO_KEY[META_TITLE] = _META
_TITLE_TO_KEY[DIAGRAM_TITLE] = _DIAGRAM

# Loose heading keywords, checked in order when a heading is not an exact title.
_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("DIAGRAM", _DIAGRAM),
    ("META", _META),
    ("OVERVIEW", "project_overview"),
    ("COMPONENT", "component_breakdown"),
    ("FLOW", "data_control_flow"),
    ("RISK", "code_quality_risks"),
    ("QUALITY", "code_quality_risks"),
    ("IMPROVEMENT", "improvement_suggestions"),
    ("SUGGESTION", "improvement_suggestions"),
    ("ARCHITECTURE", "architecture_summary"),
)
_WHITESPACE_RE = re.compile(r"\s+")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence line and a trailing ``` fence."""
    stripped = text.strip()
    if stripped.startswith("```"):
        newline = stripped.find("\n")
        stripped = "" if newline == -1 else stripped[newline + 1 :]
    stripped = stripped.rstrip()
    if stripped.endswith("```"):
        stripped = stripped[:-3]
    return stripped.strip()


class ReportParser:
    """Re-derives a complete Report from the text accumulated so far.

    Each call re-scans the whole buffer; no state is kept between calls. Two
    shapes are understood: ``=== TITLE ===`` delimited sections, and a (possibly
    truncated, possibly fenced) JSON document. ``auto`` picks the shape from the
    first non-fence character.
    """

    def __init__(self, output_format: str = AUTO_FORMAT) -> None:
        if output_format not in PARSER_FORMATS:
            raise ValueError(
                f"Unknown output format '{output_format}'. Expected one of {PARSER_FORMATS}."
            )
        self.output_format = output_format
        self.logger = get_logger("parser")

    def detect_format(self, text: str) -> str:
        if self.output_format != AUTO_FORMAT:
            return self.output_format
        body = strip_code_fences(text)
        return JSON_FORMAT if body.startswith(("{", "[")) else SECTIONS_FORMAT

    def parse(self, text: str, *, is_fallback: bool = False) -> Optional[Report]:
        """Best-effort parse of a partial buffer; never raises.

        Returns ``None`` only when a JSON-shaped buffer cannot be completed yet, in
        which case the caller skips the progress update for this chunk.
        """
        if self.detect_format(text) == JSON_FORMAT:
            data = load_partial_json(strip_code_fences(text))
            if data is None:
                self.logger.debug("Partial JSON not decodable yet (%d chars)", len(text))
                return None
            return ReportPayload.from_data(data).to_report(is_fallback=is_fallback)
        return self.parse_sections(text, is_fallback=is_fallback)

    def parse_final(self, text: str, *, is_fallback: bool = False) -> Report:
        """Parse the complete response; malformed JSON raises ``ReportParseError``."""
        if self.detect_format(text) == JSON_FORMAT:
            try:
                data = json.loads(strip_code_fences(text))
            except json.JSONDecodeError as exc:
                raise ReportParseError(
                    "Failed to parse analysis results. The model output was not valid JSON."
                ) from exc
            return ReportPayload.from_data(data).to_report(is_fallback=is_fallback)
        return self.parse_sections(text, is_fallback=is_fallback)

    def parse_sections(self, text: str, *, is_fallback: bool = False) -> Report:
        items: Dict[str, List[str]] = {attribute: [] for attribute, _ in SECTION_FIELDS}
        meta_lines: List[str] = []
        diagram_lines: List[str] = []
        current: Optional[str] = None

        for raw_line in text.split("\n"):
            line = raw_line.rstrip("\r")
            stripped = line.strip()
            if stripped.startswith(SECTION_MARKER):
                title = self._header_title(stripped)
                if title is None:
                    # Incomplete heading still streaming in.
                    continue
                current = self._resolve_section(title)
                if current == _META:
                    meta_lines = []
                elif current == _DIAGRAM:
                    diagram_lines = []
                elif current is not None:
                    items[current] = []
                continue
            if current is None:
                continue
            if current == _DIAGRAM:
                if not stripped.startswith("```"):
                    diagram_lines.append(line)
                continue
            item = clean_item(stripped)
            if item is None:
                continue
            if current == _META:
                meta_lines.append(item)
            else:
                items[current].append(item)

        report = Report(
            meta_analysis=self._meta_from_lines(meta_lines),
            architecture_diagram=self._join_diagram(diagram_lines),
            is_fallback=is_fallback,
        )
        for attribute, title in SECTION_FIELDS:
            setattr(report, attribute, ReportSection(title=title, items=items[attribute]))
        return report

    @staticmethod
    def _header_title(stripped: str) -> Optional[str]:
        if len(stripped) <= len(SECTION_MARKER) or not stripped.endswith(SECTION_MARKER):
            return None
        title = stripped.strip("=").strip()
        return title or None

    @staticmethod
    def _resolve_section(title: str) -> Optional[str]:
        normalised = _WHITESPACE_RE.sub(" ", title.upper().replace(" AND ", " & ")).strip()
        if normalised in _TITLE_TO_KEY:
            return _TITLE_TO_KEY[normalised]
        for keyword, key in _KEYWORDS:
            if keyword in normalised:
                return key
        return None

    @staticmethod
    def _meta_from_lines(lines: List[str]) -> MetaSummary:
        meta = MetaSummary()
        for line in lines:
            lowered = line.lower()
            if "score" in lowered:
                meta.quality_score = coerce_score(line)
            if "complexity" in lowered:
                meta.complexity = coerce_complexity(line)
            if "maintainability" in lowered:
                meta.maintainability = coerce_maintainability(line)
        return meta

    @staticmethod
    def _join_diagram(lines: List[str]) -> str:
        start, end = 0, len(lines)
        while start < end and not lines[start].strip():
            start += 1
        while end > start and not lines[end - 1].strip():
            end -= 1
        return "\n".join(lines[start:end])


__all__ = ["AUTO_FORMAT", "PARSER_FORMATS", "ReportParser", "strip_code_fences"]
