"""Pipeline orchestration: locate, fetch, request and incrementally parse a report."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from .config import RepoSenseConfig
from .errors import (
    AnalysisCancelledError,
    BackendError,
    BackendErrorCategory,
    ErrorKind,
    RepoSenseError,
)
from .github.fetcher import ContextFetcher
from .llm.runner import LLMRunner
from .locator import parse_repo_ref
from .logging import get_logger
from .models import AnalysisMode, RepoContext, Report
from .parsing.report_parser import ReportParser
from .prompting.builder import ReportPromptBuilder

ProgressCallback = Callable[[Report], None]
UpdateCallback = Callable[["AnalysisUpdate"], None]


class AnalysisState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class AnalysisError:
    """Terminal error surfaced to callers as a value."""

    kind: ErrorKind
    message: str
    category: Optional[BackendErrorCategory] = None

    @classmethod
    def from_exception(cls, exc: RepoSenseError) -> "AnalysisError":
        category = exc.category if isinstance(exc, BackendError) else None
        return cls(kind=exc.kind, message=str(exc), category=category)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "category": self.category.value if self.category else None,
        }


@dataclass(frozen=True)
class AnalysisUpdate:
    """One step of an analysis: a state change or a progressive report snapshot."""

    state: AnalysisState
    message: str
    report: Optional[Report] = None
    error: Optional[AnalysisError] = None
    is_fallback: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in {AnalysisState.COMPLETE, AnalysisState.ERROR}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "message": self.message,
            "report": self.report.to_dict() if self.report else None,
            "error": self.error.to_dict() if self.error else None,
            "is_fallback": self.is_fallback,
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Final result of ``Orchestrator.run``."""

    state: AnalysisState
    message: str
    report: Optional[Report] = None
    error: Optional[AnalysisError] = None

    @property
    def ok(self) -> bool:
        return self.state is AnalysisState.COMPLETE


class Orchestrator:
    """Coordinates one analysis per call; no state is shared between calls."""

    def __init__(
        self,
        config: RepoSenseConfig | None = None,
        *,
        fetcher: ContextFetcher | None = None,
        prompt_builder: ReportPromptBuilder | None = None,
        llm_runner: LLMRunner | None = None,
        parser: ReportParser | None = None,
    ) -> None:
        self.config = config or RepoSenseConfig()
        self.fetcher = fetcher or self._default_fetcher(self.config)
        self.prompt_builder = prompt_builder or ReportPromptBuilder(
            output_format=self.config.report.output_format
        )
        self.llm_runner = llm_runner or self._default_runner(self.config)
        self.parser = parser or ReportParser()
        self.logger = get_logger("orchestrator")

    def run(
        self,
        reference: str,
        *,
        mode: AnalysisMode | str | None = None,
        deep_reasoning: bool | None = None,
        github_token: str | None = None,
        api_key: str | None = None,
        on_progress: ProgressCallback | None = None,
        on_update: UpdateCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AnalysisOutcome:
        """Run a full analysis and return its outcome; never raises for pipeline failures."""
        last: AnalysisUpdate | None = None
        for update in self.iter_updates(
            reference,
            mode=mode,
            deep_reasoning=deep_reasoning,
            github_token=github_token,
            api_key=api_key,
            cancel_event=cancel_event,
        ):
            if on_update is not None:
                on_update(update)
            if (
                on_progress is not None
                and update.state is AnalysisState.ANALYZING
                and update.report is not None
            ):
                on_progress(update.report)
            last = update

        if last is None or not last.is_terminal:  # pragma: no cover - iter_updates always terminates
            raise RuntimeError("analysis ended without a terminal update")
        return AnalysisOutcome(
            state=last.state,
            message=last.message,
            report=last.report if last.state is AnalysisState.COMPLETE else None,
            error=last.error,
        )

    def iter_updates(
        self,
        reference: str,
        *,
        mode: AnalysisMode | str | None = None,
        deep_reasoning: bool | None = None,
        github_token: str | None = None,
        api_key: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[AnalysisUpdate]:
        """Yield state changes and report snapshots, ending with one terminal update."""
        resolved_mode = AnalysisMode.coerce(mode or self.config.report.mode)
        deep = self.config.report.deep_reasoning if deep_reasoning is None else deep_reasoning
        token = github_token or self.config.github.token

        ref = parse_repo_ref(reference)
        if ref is None:
            self.logger.info("Rejected repository reference %r", reference)
            yield self._error_update(
                AnalysisError(
                    kind=ErrorKind.INVALID_REFERENCE,
                    message="Invalid URL. Please use format: https://github.com/owner/repo",
                )
            )
            return

        self.logger.info("Starting %s analysis for %s", resolved_mode.value, ref.full_name)
        yield AnalysisUpdate(state=AnalysisState.FETCHING, message="Scanning repository...")
        try:
            context = self.fetcher.fetch(ref, token, cancel_event=cancel_event)
        except RepoSenseError as exc:
            self.logger.error("Fetching %s failed: %s", ref.full_name, exc)
            yield self._error_update(AnalysisError.from_exception(exc))
            return

        if context.is_fallback:
            message = "GitHub API limit reached. Using inferred analysis..."
        else:
            message = "Analyzing system structure..."
        yield AnalysisUpdate(
            state=AnalysisState.ANALYZING, message=message, is_fallback=context.is_fallback
        )

        try:
            for is_final, report in self._report_stream(
                ref.name, context, resolved_mode, deep, api_key, cancel_event
            ):
                if is_final:
                    self.logger.info("Analysis of %s complete", ref.full_name)
                    yield AnalysisUpdate(
                        state=AnalysisState.COMPLETE,
                        message="Analysis complete.",
                        report=report,
                        is_fallback=context.is_fallback,
                    )
                else:
                    yield AnalysisUpdate(
                        state=AnalysisState.ANALYZING,
                        message=self._progress_message(report),
                        report=report,
                        is_fallback=context.is_fallback,
                    )
        except RepoSenseError as exc:
            self.logger.error("Report generation for %s failed: %s", ref.full_name, exc)
            yield self._error_update(AnalysisError.from_exception(exc))

    def generate_report(
        self,
        repo_name: str,
        context: RepoContext,
        mode: AnalysisMode | str = AnalysisMode.FULL,
        *,
        deep_reasoning: bool = False,
        api_key: str | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Report:
        """Request and parse one report for an already fetched context.

        Safe to call again with the same context to retry a failed generation.
        Raises ``BackendError``, ``ReportParseError`` or ``AnalysisCancelledError``.
        """
        for is_final, report in self._report_stream(
            repo_name, context, AnalysisMode.coerce(mode), deep_reasoning, api_key, cancel_event
        ):
            if is_final:
                return report
            if on_progress is not None:
                on_progress(report)
        raise RuntimeError("report stream ended without a final report")  # pragma: no cover

    def _report_stream(
        self,
        repo_name: str,
        context: RepoContext,
        mode: AnalysisMode,
        deep_reasoning: bool,
        api_key: str | None,
        cancel_event: threading.Event | None,
    ) -> Iterator[Tuple[bool, Report]]:
        self._check_cancelled(cancel_event)
        request = self.prompt_builder.build(
            repo_name, context, mode, deep_reasoning=deep_reasoning
        )
        self.logger.debug(
            "Prompt for %s: %d chars, %d files, fallback=%s",
            repo_name,
            len(request.prompt),
            request.metadata.get("file_count", 0),
            context.is_fallback,
        )

        text = ""
        last_snapshot: Report | None = None
        chunks = self.llm_runner.stream(request, api_key=api_key)
        try:
            for chunk in chunks:
                self._check_cancelled(cancel_event)
                text += chunk
                snapshot = self.parser.parse(text, is_fallback=context.is_fallback)
                if snapshot is None or snapshot == last_snapshot:
                    continue
                last_snapshot = snapshot
                yield False, snapshot
        finally:
            close = getattr(chunks, "close", None)
            if close is not None:
                close()

        if not text.strip():
            raise BackendError(
                BackendErrorCategory.MALFORMED_RESPONSE,
                "Generation backend returned an empty response.",
            )
        yield True, self.parser.parse_final(text, is_fallback=context.is_fallback)

    @staticmethod
    def _progress_message(report: Report) -> str:
        if report.architecture_diagram:
            return "Drawing architecture diagram..."
        if report.code_quality_risks.items:
            return "Identifying security risks..."
        if report.component_breakdown.items:
            return "Analyzing core components..."
        return "Generating technical report..."

    @staticmethod
    def _check_cancelled(cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelledError("Analysis cancelled")

    @staticmethod
    def _error_update(error: AnalysisError) -> AnalysisUpdate:
        return AnalysisUpdate(state=AnalysisState.ERROR, message=error.message, error=error)

    @staticmethod
    def _default_fetcher(config: RepoSenseConfig) -> ContextFetcher:
        return ContextFetcher(
            strategy=config.github.strategy,
            api_base_url=config.github.api_base_url,
            listing_timeout=config.github.listing_timeout,
            file_timeout=config.github.file_timeout,
            max_tree_paths=config.github.max_tree_paths,
        )

    @staticmethod
    def _default_runner(config: RepoSenseConfig) -> LLMRunner:
        llm = config.llm
        kwargs: Dict[str, Any] = {"model": llm.model, "deep_model": llm.deep_model}
        if llm.base_url:
            kwargs["base_url"] = llm.base_url
        if llm.api_key:
            kwargs["api_key"] = llm.api_key
        if llm.temperature is not None:
            kwargs["temperature"] = llm.temperature
        if llm.max_tokens is not None:
            kwargs["max_tokens"] = llm.max_tokens
        if llm.request_timeout is not None:
            kwargs["request_timeout"] = llm.request_timeout
        return LLMRunner(**kwargs)


__all__ = [
    "AnalysisError",
    "AnalysisOutcome",
    "AnalysisState",
    "AnalysisUpdate",
    "Orchestrator",
]
