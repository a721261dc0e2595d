"""Ordered include/exclude resolution of the files that go into an archive.

Patterns are applied in one ordered pass: every exclude pattern first (as a
negation), then every include pattern. A later pattern overwrites the verdict
of an earlier one for the same path, so an include can bring back a file that
a broader exclude removed (``exclude=["node_modules/**"]`` followed by
``include=["node_modules/needed/**"]``). The result is intentionally not a
set-theoretic union/difference of the pattern lists.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from wcmatch import glob

from unit_packager.packaging.errors import NoMatchError

logger = logging.getLogger(__name__)

GLOB_FLAGS = glob.GLOBSTAR | glob.DOTGLOB | glob.BRACE | glob.EXTGLOB | glob.FORCEUNIX
MATCH_ALL = "**"


def resolve_file_paths(
    root_dir: Path,
    exclude: Sequence[str] = (),
    include: Sequence[str] = (),
) -> list[str]:
    """Return sorted root-relative POSIX paths selected by the patterns.

    Raises ``NoMatchError`` when nothing is selected, so a misconfigured unit
    never produces an empty archive.
    """

    ordered = build_ordered_patterns(exclude=exclude, include=include)
    candidates = list_candidate_files(root_dir, include=[_normalize(p) for p in include])

    states = dict.fromkeys(candidates, True)
    for pattern in ordered:
        is_exclude = pattern.startswith("!")
        glob_pattern = pattern[1:] if is_exclude else pattern
        for path in glob.globfilter(candidates, glob_pattern, flags=GLOB_FLAGS):
            states[path] = not is_exclude

    file_paths = [path for path, included in states.items() if included]
    logger.debug(
        "Resolved %d of %d candidate files under %s",
        len(file_paths),
        len(candidates),
        root_dir,
    )
    if not file_paths:
        raise NoMatchError("No file matches include / exclude patterns")
    return file_paths


def build_ordered_patterns(*, exclude: Sequence[str], include: Sequence[str]) -> list[str]:
    """Excludes as negations followed by includes; the order is load-bearing."""

    patterns: list[str] = []
    for pattern in exclude:
        # A negated exclude re-includes at the exclude position.
        patterns.append(pattern[1:] if pattern.startswith("!") else f"!{pattern}")
    patterns.extend(include)
    return [_normalize(pattern) for pattern in patterns]


def list_candidate_files(root_dir: Path, *, include: Sequence[str] = ()) -> list[str]:
    """Every file under ``root_dir`` matching ``**`` or one of ``include``, sorted."""

    scope = [MATCH_ALL, *include]
    return sorted(
        relative
        for relative in _walk_files(root_dir)
        if glob.globmatch(relative, scope, flags=GLOB_FLAGS)
    )


def _walk_files(root_dir: Path) -> Iterator[str]:
    root = Path(root_dir)
    if not root.is_dir():
        return
    yield from _walk_directory(root, root, frozenset())


def _walk_directory(root: Path, directory: Path, ancestors: frozenset[str]) -> Iterator[str]:
    # A directory reached again along its own parent chain is a link cycle.
    real = os.path.realpath(directory)
    if real in ancestors:
        return
    ancestors = ancestors | {real}
    try:
        with os.scandir(directory) as scan:
            entries = sorted(scan, key=lambda entry: entry.name)
    except OSError as error:
        logger.warning("Skipping unreadable directory %s: %s", directory, error)
        return
    for entry in entries:
        path = Path(entry.path)
        if entry.is_dir():
            yield from _walk_directory(root, path, ancestors)
        elif entry.is_file():
            yield path.relative_to(root).as_posix()


def _normalize(pattern: str) -> str:
    if os.sep == "\\":
        return pattern.replace("\\", "/")
    return pattern
