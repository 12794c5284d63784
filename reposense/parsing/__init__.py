"""Parsing of streamed report text."""

from .partial_json import load_partial_json
from .payload import ReportPayload
from .report_parser import ReportParser, strip_code_fences

__all__ = ["ReportParser", "ReportPayload", "load_partial_json", "strip_code_fences"]
