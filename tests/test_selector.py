"""Tests for reposense.selector."""

from __future__ import annotations

from reposense.models import EntryKind, TreeEntry
from reposense.selector import GLOBAL_CAP, FileSelector, is_code_file, select_files


def _file(path: str) -> TreeEntry:
    return TreeEntry(path=path, kind=EntryKind.FILE)


def _dir(path: str) -> TreeEntry:
    return TreeEntry(path=path, kind=EntryKind.DIRECTORY)


def _paths(entries) -> list[str]:  # type: ignore[no-untyped-def]
    return [entry.path for entry in entries]


def test_mixed_listing_selects_configs_then_code() -> None:
    entries = [
        _file("README.md"),
        _file("package.json"),
        _file("Dockerfile"),
        _file("src/index.ts"),
        _file("src/index.test.ts"),
    ] + [_file(f"tools/script_{i}.py") for i in range(6)]

    selected = _paths(select_files(entries))

    assert "src/index.test.ts" not in selected
    assert selected[:3] == ["README.md", "package.json", "Dockerfile"]
    assert selected[3:] == ["src/index.ts", "tools/script_0.py", "tools/script_1.py", "tools/script_2.py"]
    assert len(selected) <= GLOBAL_CAP


def test_output_never_exceeds_global_cap() -> None:
    entries = [_file(f"pkg/module_{i}.py") for i in range(250)]
    entries += [_file("docs/readme.md") for _ in range(250)]
    assert len(entries) == 500

    assert len(select_files(entries)) <= GLOBAL_CAP


def test_priority_tier_capped_at_three() -> None:
    configs = [
        "README.md",
        "package.json",
        "tsconfig.json",
        "go.mod",
        "Cargo.toml",
        "requirements.txt",
        "pom.xml",
        "Dockerfile",
        "docker-compose.yml",
        "Makefile",
    ]
    selected = _paths(select_files([_file(name) for name in configs]))
    assert selected == ["README.md", "package.json", "tsconfig.json"]


def test_priority_names_match_case_insensitively() -> None:
    selected = _paths(select_files([_file("readme.MD"), _file("DOCKERFILE"), _file("notes.txt")]))
    assert selected == ["readme.MD", "DOCKERFILE"]


def test_entry_matching_both_tiers_appears_once() -> None:
    selected = _paths(select_files([_file("setup.py"), _file("main.py")]))
    assert selected == ["setup.py", "main.py"]


def test_duplicate_paths_are_deduplicated() -> None:
    selected = _paths(select_files([_file("app.py"), _file("app.py"), _file("README.md")]))
    assert selected == ["README.md", "app.py"]


def test_selection_is_idempotent() -> None:
    entries = [_file(f"src/m{i}.go") for i in range(9)] + [
        _file("go.mod"),
        _file("README.md"),
        _file("Makefile"),
        _file("LICENSE"),
        _file("Dockerfile"),
    ]
    first = select_files(entries)
    assert select_files(first) == first


def test_directories_tests_and_declarations_are_skipped() -> None:
    entries = [
        _dir("lib.py"),
        _dir("README.md"),
        _file("types/index.d.ts"),
        _file("src/button.spec.tsx"),
        _file("src/button.tsx"),
    ]
    assert _paths(select_files(entries)) == ["src/button.tsx"]


def test_depth_filter_limits_code_tier() -> None:
    selector = FileSelector(max_depth=2)
    selected = _paths(selector.select([_file("a/b/c.py"), _file("a/b.py"), _file("c.py")]))
    assert selected == ["a/b.py", "c.py"]


def test_is_code_file_rules() -> None:
    assert is_code_file("main.rs")
    assert is_code_file("App.TSX")
    assert not is_code_file("index.test.js")
    assert not is_code_file("global.d.ts")
    assert not is_code_file("notes.md")
    assert not is_code_file(".py")
