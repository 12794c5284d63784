"""Prompt assembly for report generation."""

from .builder import PromptMessage, ReportPromptBuilder, ReportRequest

__all__ = ["PromptMessage", "ReportPromptBuilder", "ReportRequest"]
