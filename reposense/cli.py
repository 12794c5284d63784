"""CLI entrypoint for reposense."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import configure_logging
from .models import AnalysisMode
from .orchestrator import AnalysisState, AnalysisUpdate, Orchestrator
from .render import render_report


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reposense",
        description="Generate an AI technical report for a public GitHub repository.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a repository and print the report.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument(
        "url",
        help="Repository URL, e.g. https://github.com/owner/repo or github.com/owner/repo.",
    )
    analyze_parser.add_argument(
        "--mode",
        choices=[mode.value for mode in AnalysisMode],
        default=None,
        help="Report scope (defaults to the configured mode, usually 'full').",
    )
    analyze_parser.add_argument(
        "--deep",
        action="store_true",
        default=None,
        help="Request deep reasoning with larger file budgets.",
    )
    analyze_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format for the final report.",
    )
    analyze_parser.add_argument("--github-token", default=None, help="GitHub API token.")
    analyze_parser.add_argument("--api-key", default=None, help="Generation backend API key.")
    analyze_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .reposense.yml (defaults to the current directory).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for reposense commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    orchestrator = Orchestrator(config)

    def _report_update(update: AnalysisUpdate) -> None:
        if update.report is None and not update.is_terminal:
            print(update.message, file=sys.stderr)

    outcome = orchestrator.run(
        args.url,
        mode=args.mode,
        deep_reasoning=args.deep,
        github_token=args.github_token,
        api_key=args.api_key,
        on_update=_report_update,
    )

    if outcome.state is AnalysisState.ERROR or outcome.report is None:
        message = outcome.error.message if outcome.error else outcome.message
        parser.exit(1, f"reposense analyze failed: {message}\nRun with --verbose for more details.\n")

    if args.format == "json":
        print(json.dumps(outcome.report.to_dict(), indent=2))
    else:
        print(render_report(outcome.report, title=args.url), end="")


if __name__ == "__main__":
    main(sys.argv[1:])
