"""Configuration loading for reposense (.reposense.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

import yaml

from .github.client import DEFAULT_API_BASE_URL
from .logging import get_logger
from .models import AnalysisMode
from .prompting.constants import OUTPUT_FORMATS, SECTIONS_FORMAT

CONFIG_FILENAME = ".reposense.yml"
GITHUB_TOKEN_ENV_KEYS = ("REPOSENSE_GITHUB_TOKEN", "GITHUB_TOKEN")
_STRATEGIES = ("shallow", "deep")

logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class GitHubConfig:
    """Source-hosting API settings."""

    token: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    strategy: str = "shallow"
    listing_timeout: float = 3.0
    file_timeout: float = 3.5
    max_tree_paths: int = 200


@dataclass
class LLMConfig:
    """Generation backend settings."""

    model: Optional[str] = None
    deep_model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class ReportConfig:
    """Defaults for the analysis request itself."""

    mode: AnalysisMode = AnalysisMode.FULL
    output_format: str = SECTIONS_FORMAT
    deep_reasoning: bool = False


@dataclass
class RepoSenseConfig:
    """Represents the high-level settings defined in .reposense.yml."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    source: Optional[Path] = None


def load_config(
    config_path: Path | None = None, *, environ: Mapping[str, str] | None = None
) -> RepoSenseConfig:
    """Load configuration from disk, falling back to defaults when the file is absent."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path or Path.cwd())

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig(
        token=_as_str(github_data.get("token")) or _first_env_value(env, GITHUB_TOKEN_ENV_KEYS),
        api_base_url=_as_str(github_data.get("api_base_url")) or DEFAULT_API_BASE_URL,
        strategy=_choice(github_data.get("strategy"), _STRATEGIES, "shallow", "github.strategy"),
        listing_timeout=_as_float(github_data.get("listing_timeout")) or 3.0,
        file_timeout=_as_float(github_data.get("file_timeout")) or 3.5,
        max_tree_paths=_as_int(github_data.get("max_tree_paths")) or 200,
    )

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        model=_as_str(llm_data.get("model")),
        deep_model=_as_str(llm_data.get("deep_model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    report_data = _as_dict(data.get("report"))
    mode_value = _choice(
        report_data.get("mode"),
        tuple(mode.value for mode in AnalysisMode),
        AnalysisMode.FULL.value,
        "report.mode",
    )
    report = ReportConfig(
        mode=AnalysisMode(mode_value),
        output_format=_choice(
            report_data.get("output_format"), OUTPUT_FORMATS, SECTIONS_FORMAT, "report.output_format"
        ),
        deep_reasoning=_as_bool(report_data.get("deep_reasoning")) or False,
    )

    return RepoSenseConfig(
        github=github,
        llm=llm,
        report=report,
        source=config_file if config_file.exists() else None,
    )


def _resolve_config_path(config_path: Path) -> Path:
    candidate = config_path.expanduser()
    if candidate.is_dir():
        candidate = candidate / CONFIG_FILENAME
    return candidate.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc
    if loaded is None:
        return {}
    if isinstance(loaded, dict):
        return loaded
    raise ConfigError(f"{path.name} must contain a mapping at the root")


def _first_env_value(env: Mapping[str, str], keys: Sequence[str]) -> Optional[str]:
    return next((env[key] for key in keys if env.get(key)), None)


def _choice(value: Any, allowed: Sequence[str], default: str, label: str) -> str:
    text = _as_str(value)
    if text is None:
        return default
    if text.lower() in allowed:
        return text.lower()
    logger.warning("Ignoring unknown %s '%s'; using '%s'", label, text, default)
    return default


def _as_dict(value: Any) -> Dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _number(value: Any, cast: Callable[[Any], Any]) -> Any:
    # YAML booleans are ints to Python; never read them as numbers.
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        return cast(value)
    except ValueError:
        return None


def _as_float(value: Any) -> Optional[float]:
    return _number(value, float)


def _as_int(value: Any) -> Optional[int]:
    return _number(value, int)


_TRUTHY = frozenset({"true", "yes", "on", "1"})
_FALSY = frozenset({"false", "no", "off", "0"})


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool) or value is None:
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GitHubConfig",
    "LLMConfig",
    "RepoSenseConfig",
    "ReportConfig",
    "load_config",
]
