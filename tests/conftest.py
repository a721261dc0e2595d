"""Shared test fixtures."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from unit_packager.packaging.backend import CompileRequest, CompileResult


def write_tree(root: Path, paths: Iterable[str]) -> None:
    for relative in paths:
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"content of {relative}\n", "utf-8")


class FakeCompiler:
    """Compiler backend that writes a fixed set of files into the output dir."""

    def __init__(
        self,
        *,
        outputs: tuple[str, ...] = ("App.dll", "App.runtimeconfig.json"),
        exit_code: int = 0,
        delay: Callable[[], None] | None = None,
    ) -> None:
        self.outputs = outputs
        self.exit_code = exit_code
        self.delay = delay
        self.requests: list[CompileRequest] = []
        self.running = 0
        self.max_running = 0
        self._lock = threading.Lock()

    def run(self, request: CompileRequest) -> CompileResult:
        with self._lock:
            self.requests.append(request)
            self.running += 1
            self.max_running = max(self.max_running, self.running)
        try:
            if self.delay is not None:
                self.delay()
            if self.exit_code != 0:
                return CompileResult(
                    exit_code=self.exit_code,
                    stdout="Restoring packages",
                    stderr="error CS1002: ; expected",
                )
            for name in self.outputs:
                built = f"built {request.project_path.name}"
                (request.output_dir / name).write_text(built, "utf-8")
            return CompileResult(exit_code=0, stdout="Build succeeded.", stderr="")
        finally:
            with self._lock:
                self.running -= 1


@pytest.fixture()
def tree(tmp_path: Path) -> Callable[..., Path]:
    """Create files under ``tmp_path`` and return the root."""

    def _make(*paths: str) -> Path:
        write_tree(tmp_path, paths)
        return tmp_path

    return _make
