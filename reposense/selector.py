"""Heuristics for choosing which repository files to send as evidence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .models import TreeEntry

# Canonical manifests, configs and readmes (matched case-insensitively by file name).
PRIORITY_FILENAMES = frozenset(
    {
        "readme",
        "readme.md",
        "readme.rst",
        "readme.txt",
        "package.json",
        "tsconfig.json",
        "requirements.txt",
        "pyproject.toml",
        "setup.py",
        "setup.cfg",
        "go.mod",
        "cargo.toml",
        "pom.xml",
        "build.gradle",
        "build.gradle.kts",
        "composer.json",
        "gemfile",
        "dockerfile",
        "docker-compose.yml",
        "docker-compose.yaml",
        "makefile",
    }
)

CODE_SUFFIXES = frozenset(
    {
        ".py",
        ".js",
        ".jsx",
        ".ts",
        ".tsx",
        ".go",
        ".rs",
        ".java",
        ".kt",
        ".c",
        ".h",
        ".cpp",
        ".hpp",
        ".cc",
        ".cs",
        ".rb",
        ".php",
        ".swift",
        ".scala",
    }
)

_TEST_MARKERS = (".test.", ".spec.")
_DECLARATION_SUFFIXES = (".d.ts",)

PRIORITY_CAP = 3
CODE_CAP = 4
GLOBAL_CAP = 7
MAX_DEPTH = 3


def is_priority_file(name: str) -> bool:
    return name.lower() in PRIORITY_FILENAMES


def is_code_file(name: str) -> bool:
    lowered = name.lower()
    if lowered.endswith(_DECLARATION_SUFFIXES):
        return False
    if any(marker in lowered for marker in _TEST_MARKERS):
        return False
    dot = lowered.rfind(".")
    return dot > 0 and lowered[dot:] in CODE_SUFFIXES


@dataclass(frozen=True)
class FileSelector:
    """Ranks tree entries into a small, capped context set.

    Tier one holds canonical config/manifest/readme files, tier two holds source
    files. Each tier is capped before the tiers are concatenated, deduplicated by
    path and truncated to the global cap. Ordering is purely positional.
    """

    priority_cap: int = PRIORITY_CAP
    code_cap: int = CODE_CAP
    global_cap: int = GLOBAL_CAP
    max_depth: int = MAX_DEPTH

    def select(self, entries: Iterable[TreeEntry]) -> List[TreeEntry]:
        files = [entry for entry in entries if entry.is_file]

        priority = [entry for entry in files if is_priority_file(entry.name)][: self.priority_cap]
        code = [
            entry
            for entry in files
            if not is_priority_file(entry.name)
            and is_code_file(entry.name)
            and self._within_depth(entry.path)
        ][: self.code_cap]

        selected: List[TreeEntry] = []
        seen: set[str] = set()
        for entry in priority + code:
            if entry.path in seen:
                continue
            seen.add(entry.path)
            selected.append(entry)
        return selected[: self.global_cap]

    def _within_depth(self, path: str) -> bool:
        return len([part for part in path.split("/") if part]) <= self.max_depth


_DEFAULT_SELECTOR = FileSelector()


def select_files(entries: Sequence[TreeEntry]) -> List[TreeEntry]:
    """Select the context set using the default caps."""
    return _DEFAULT_SELECTOR.select(entries)


__all__ = [
    "CODE_CAP",
    "FileSelector",
    "GLOBAL_CAP",
    "PRIORITY_CAP",
    "is_code_file",
    "is_priority_file",
    "select_files",
]
