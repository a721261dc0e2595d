from __future__ import annotations

import os
from pathlib import Path

import allure
import pytest

from unit_packager.packaging.errors import NoMatchError
from unit_packager.packaging.patterns import (
    build_ordered_patterns,
    list_candidate_files,
    resolve_file_paths,
)

pytestmark = [
    allure.epic("Packaging"),
    allure.feature("Pattern Resolution"),
]


def test_include_resurrects_file_removed_by_broader_exclude(tree) -> None:
    root = tree("a/keep.txt", "a/drop.txt")

    assert resolve_file_paths(root, exclude=["a/**"], include=["a/keep.txt"]) == ["a/keep.txt"]


def test_include_applied_after_exclude_wins(tree) -> None:
    root = tree("a/keep.txt", "a/drop.txt")

    result = resolve_file_paths(root, exclude=["a/keep.txt"], include=["a/**"])

    assert set(result) == {"a/keep.txt", "a/drop.txt"}


def test_empty_selection_raises_no_match(tmp_path: Path) -> None:
    with pytest.raises(NoMatchError, match="No file matches include / exclude patterns"):
        resolve_file_paths(tmp_path, include=["nonexistent/**"])


def test_everything_excluded_and_nothing_reincluded_raises_no_match(tree) -> None:
    root = tree("a/keep.txt")

    with pytest.raises(NoMatchError):
        resolve_file_paths(root, exclude=["**"], include=["nonexistent/**"])


def test_missing_root_raises_no_match(tmp_path: Path) -> None:
    with pytest.raises(NoMatchError):
        resolve_file_paths(tmp_path / "missing")


def test_all_files_selected_without_patterns(tree) -> None:
    root = tree("handler.js", "lib/util.js", ".env.local", ".git/config")

    assert resolve_file_paths(root) == [".env.local", ".git/config", "handler.js", "lib/util.js"]


def test_dotfiles_match_wildcard_excludes(tree) -> None:
    root = tree("handler.js", ".git/config", ".git/objects/ab/cd", ".gitignore")

    assert resolve_file_paths(root, exclude=[".git/**", ".gitignore"]) == ["handler.js"]


def test_single_star_does_not_cross_directories(tree) -> None:
    root = tree("root.txt", "nested/inner.txt", "nested/code.js")

    assert resolve_file_paths(root, exclude=["*.txt"]) == ["nested/code.js", "nested/inner.txt"]


def test_negated_exclude_reincludes_at_its_position(tree) -> None:
    root = tree("src/app.py", "docs/readme.md", "setup.cfg")

    assert resolve_file_paths(root, exclude=["**", "!src/**"]) == ["src/app.py"]


def test_later_exclude_overrides_earlier_negated_exclude(tree) -> None:
    root = tree("src/app.py", "src/app_test.py")

    result = resolve_file_paths(root, exclude=["**", "!src/**", "src/*_test.py"])

    assert result == ["src/app.py"]


def test_negated_include_acts_as_exclude(tree) -> None:
    root = tree("README.md", "index.js")

    assert resolve_file_paths(root, include=["!*.md"]) == ["index.js"]


def test_node_modules_subpath_survives_broad_exclude(tree) -> None:
    root = tree(
        "handler.js",
        "node_modules/left-pad/index.js",
        "node_modules/needed/index.js",
        "node_modules/needed/lib/core.js",
    )

    result = resolve_file_paths(
        root,
        exclude=["node_modules/**"],
        include=["node_modules/needed/**"],
    )

    assert result == [
        "handler.js",
        "node_modules/needed/index.js",
        "node_modules/needed/lib/core.js",
    ]


def test_brace_patterns_expand(tree) -> None:
    root = tree("a.js", "b.ts", "c.md")

    assert resolve_file_paths(root, exclude=["*.{js,ts}"]) == ["c.md"]


def test_ordered_patterns_put_negated_excludes_before_includes() -> None:
    patterns = build_ordered_patterns(
        exclude=["node_modules/**", "!node_modules/aws-sdk/**"],
        include=["node_modules/needed/**"],
    )

    assert patterns == [
        "!node_modules/**",
        "node_modules/aws-sdk/**",
        "node_modules/needed/**",
    ]


def test_candidates_never_contain_directories(tree) -> None:
    root = tree("a/b/c.txt")
    (root / "empty").mkdir()

    assert list_candidate_files(root) == ["a/b/c.txt"]


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_symlinked_directories_are_followed(tree, tmp_path: Path) -> None:
    root = tree("app/handler.js")
    shared = tmp_path.parent / f"{tmp_path.name}-shared"
    shared.mkdir()
    (shared / "lib.js").write_text("shared", "utf-8")
    (root / "app" / "shared").symlink_to(shared, target_is_directory=True)

    assert resolve_file_paths(root / "app") == ["handler.js", "shared/lib.js"]


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_symlink_loops_are_walked_once(tree) -> None:
    root = tree("a/file.txt")
    (root / "a" / "loop").symlink_to(root / "a", target_is_directory=True)

    assert resolve_file_paths(root) == ["a/file.txt"]


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_linked_directory_inside_root_is_listed_under_both_paths(tree) -> None:
    root = tree("handler.js", "packages/pkg/index.js")
    (root / "node_modules").mkdir()
    (root / "node_modules" / "pkg").symlink_to(Path("../packages/pkg"), target_is_directory=True)

    assert list_candidate_files(root) == [
        "handler.js",
        "node_modules/pkg/index.js",
        "packages/pkg/index.js",
    ]
    assert resolve_file_paths(root, exclude=["packages/**"]) == [
        "handler.js",
        "node_modules/pkg/index.js",
    ]


@pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
def test_sibling_links_to_one_directory_are_each_listed(tree) -> None:
    root = tree("shared/lib.js")
    (root / "left").symlink_to(root / "shared", target_is_directory=True)
    (root / "right").symlink_to(root / "shared", target_is_directory=True)

    assert resolve_file_paths(root) == ["left/lib.js", "right/lib.js", "shared/lib.js"]
