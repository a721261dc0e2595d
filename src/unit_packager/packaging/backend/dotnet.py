"""Subprocess-based compiler backend for .NET projects."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess

from unit_packager.packaging.backend.base import CompileRequest, CompileResult
from unit_packager.packaging.errors import BuildError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TEMPLATE = (
    "dotnet publish {project} -c {configuration} -o {output_dir} "
    "--nologo /p:GenerateRuntimeConfigurationFiles=true"
)


class DotnetCompilerBackend:
    """Run a publish command template resolved per project."""

    def __init__(self, command_template: str = DEFAULT_COMMAND_TEMPLATE) -> None:
        self.command_template = command_template

    def run(self, request: CompileRequest) -> CompileResult:
        run_args, command_head = _build_run_args(
            command_template=self.command_template,
            project=str(request.project_path),
            output_dir=str(request.output_dir),
            configuration=request.configuration,
        )
        logger.debug("Running compiler: %s", run_args)
        try:
            completed = subprocess.run(  # noqa: S603
                run_args,
                cwd=request.working_dir,
                capture_output=True,
                text=True,
                timeout=request.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise BuildError(
                f"Compiler command not found: {command_head}",
                project=str(request.project_path),
            ) from error
        except subprocess.TimeoutExpired as error:
            return CompileResult(
                exit_code=124,
                stdout=_decode(error.stdout),
                stderr=_decode(error.stderr),
                timed_out=True,
            )
        except OSError as error:
            raise BuildError(
                f"Compiler failed to start: {error}",
                project=str(request.project_path),
            ) from error

        return CompileResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def _build_run_args(
    *,
    command_template: str,
    project: str,
    output_dir: str,
    configuration: str,
    os_name: str | None = None,
) -> tuple[str | list[str], str]:
    stripped = command_template.strip()
    if not stripped:
        raise ConfigurationError("Compiler command template is empty.")
    if "{project}" not in stripped:
        raise ConfigurationError("Compiler command template must include {project}.")

    current_os_name = os_name or os.name
    quote = _quote_windows if current_os_name == "nt" else shlex.quote
    try:
        rendered = stripped.format(
            project=quote(project),
            output_dir=quote(output_dir),
            configuration=quote(configuration),
        )
    except (KeyError, IndexError) as error:
        raise ConfigurationError(
            f"Unsupported compiler command template placeholder: {error}",
        ) from error

    if current_os_name == "nt":
        return rendered, rendered.split(maxsplit=1)[0]

    argv = shlex.split(rendered)
    if not argv:
        raise ConfigurationError("Compiler command template rendered empty command.")
    return argv, argv[0]


def _quote_windows(value: str) -> str:
    return subprocess.list2cmdline([value])


def _decode(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output
