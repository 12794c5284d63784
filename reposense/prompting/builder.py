"""Builds generation requests from repository context and mode flags."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from ..models import DIAGRAM_TITLE, META_TITLE, AnalysisMode, RepoContext
from .constants import (
    DEEP_FILE_CHAR_BUDGET,
    FALLBACK_NOTICE,
    FILE_CHAR_BUDGET,
    JSON_FORMAT,
    MODE_SECTIONS,
    OUTPUT_FORMATS,
    REASONING_INSTRUCTION,
    SECTION_GUIDANCE,
    SECTION_MARKER,
    SECTIONS_FORMAT,
    SYSTEM_INSTRUCTION,
)


@dataclass(frozen=True)
class PromptMessage:
    """Represents a single chat message for LLM prompting."""

    role: str
    content: str


@dataclass
class ReportRequest:
    """Everything the generation backend needs for one report."""

    repo_name: str
    mode: AnalysisMode
    deep_reasoning: bool
    output_format: str
    system_instruction: str
    structure_instruction: str
    reasoning_instruction: Optional[str]
    prompt: str
    response_schema: Optional[Dict[str, Any]] = None
    metadata: Dict[str, object] = field(default_factory=dict)

    @property
    def system(self) -> str:
        parts = [self.system_instruction, self.structure_instruction]
        if self.reasoning_instruction:
            parts.append(self.reasoning_instruction)
        return "\n\n".join(parts)

    @property
    def messages(self) -> List[PromptMessage]:
        return [
            PromptMessage(role="system", content=self.system),
            PromptMessage(role="user", content=self.prompt),
        ]


class ReportPromptBuilder:
    """Assembles the instruction payload and the context block for a report."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        output_format: str = SECTIONS_FORMAT,
        file_char_budget: int = FILE_CHAR_BUDGET,
        deep_file_char_budget: int = DEEP_FILE_CHAR_BUDGET,
    ) -> None:
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"Unknown output format '{output_format}'. Expected one of {OUTPUT_FORMATS}."
            )
        self.output_format = output_format
        self.file_char_budget = file_char_budget
        self.deep_file_char_budget = deep_file_char_budget
        self._env = self._create_env(templates_dir)

    def build(
        self,
        repo_name: str,
        context: RepoContext,
        mode: AnalysisMode | str = AnalysisMode.FULL,
        *,
        deep_reasoning: bool = False,
    ) -> ReportRequest:
        resolved_mode = AnalysisMode.coerce(mode)
        reasoning = REASONING_INSTRUCTION if deep_reasoning else None
        budget = self.char_budget(deep_reasoning)

        template = self._env.get_template("prompt.j2")
        prompt = template.render(
            repo_name=repo_name,
            mode=resolved_mode.value,
            is_fallback=context.is_fallback,
            fallback_notice=FALLBACK_NOTICE.format(repo_name=repo_name),
            tree_paths=context.tree_paths,
            files=[
                {"path": item.path, "body": item.text[:budget]}
                for item in context.files
            ],
        ).strip()

        return ReportRequest(
            repo_name=repo_name,
            mode=resolved_mode,
            deep_reasoning=deep_reasoning,
            output_format=self.output_format,
            system_instruction=SYSTEM_INSTRUCTION,
            structure_instruction=self.structure_instruction(resolved_mode),
            reasoning_instruction=reasoning,
            prompt=prompt,
            response_schema=(
                self.response_schema(resolved_mode) if self.output_format == JSON_FORMAT else None
            ),
            metadata={
                "is_fallback": context.is_fallback,
                "file_count": 0 if context.is_fallback else len(context.files),
                "char_budget": budget,
            },
        )

    def char_budget(self, deep_reasoning: bool) -> int:
        return self.deep_file_char_budget if deep_reasoning else self.file_char_budget

    def structure_instruction(self, mode: AnalysisMode) -> str:
        titles = MODE_SECTIONS[mode]
        if self.output_format == JSON_FORMAT:
            lines = [
                "Respond with a single JSON object and nothing else. Do not use Markdown inside "
                "the JSON values. Include these keys:",
            ]
            for title in titles:
                key, guidance = SECTION_GUIDANCE[title]
                lines.append(f"- {key}: {guidance}")
            return "\n".join(lines)

        lines = [
            "Respond in plain text. Start every section with a header line of the form "
            f"'{SECTION_MARKER} TITLE {SECTION_MARKER}' and put each item on its own line "
            "starting with '- '. Emit these sections in order:",
        ]
        for title in titles:
            _, guidance = SECTION_GUIDANCE[title]
            lines.append(f"{SECTION_MARKER} {title} {SECTION_MARKER}")
            lines.append(f"  {guidance}")
        if DIAGRAM_TITLE in titles:
            lines.append(
                f"The {DIAGRAM_TITLE} section is copied verbatim, so keep its alignment and "
                "emit it without bullets or code fences."
            )
        return "\n".join(lines)

    @staticmethod
    def response_schema(mode: AnalysisMode) -> Dict[str, Any]:
        """JSON schema describing the structured response for ``mode``."""
        properties: Dict[str, Any] = {}
        for title, (key, guidance) in SECTION_GUIDANCE.items():
            if title == META_TITLE:
                properties[key] = {
                    "type": "object",
                    "properties": {
                        "qualityScore": {"type": "number", "description": "Score 1-10"},
                        "complexity": {
                            "type": "string",
                            "enum": ["Beginner", "Intermediate", "Advanced"],
                        },
                        "maintainability": {
                            "type": "string",
                            "enum": ["Low", "Medium", "High"],
                        },
                    },
                    "required": ["qualityScore", "complexity", "maintainability"],
                }
            elif title == DIAGRAM_TITLE:
                properties[key] = {"type": "string", "description": guidance}
            else:
                properties[key] = {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": guidance,
                }
        return {
            "type": "object",
            "properties": properties,
            "required": [SECTION_GUIDANCE[title][0] for title in MODE_SECTIONS[mode]],
        }

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["PromptMessage", "ReportPromptBuilder", "ReportRequest"]
