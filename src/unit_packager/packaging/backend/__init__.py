"""Compiler backend implementations."""

from unit_packager.packaging.backend.base import CompileRequest, CompileResult, CompilerBackend
from unit_packager.packaging.backend.dotnet import DEFAULT_COMMAND_TEMPLATE, DotnetCompilerBackend

__all__ = [
    "DEFAULT_COMMAND_TEMPLATE",
    "CompileRequest",
    "CompileResult",
    "CompilerBackend",
    "DotnetCompilerBackend",
]
