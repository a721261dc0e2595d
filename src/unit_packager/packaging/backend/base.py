"""Compiler backend interface for compiled-runtime units."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class CompileRequest:
    """Inputs required to compile one project into an output directory."""

    project_path: Path
    output_dir: Path
    working_dir: Path
    configuration: str = "Release"
    timeout_seconds: int = 1800


@dataclass(slots=True)
class CompileResult:
    """Execution outcome from a compiler backend."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class CompilerBackend(Protocol):
    """Protocol implemented by compiler runners."""

    def run(self, request: CompileRequest) -> CompileResult:
        """Compile the project and return execution metadata."""
