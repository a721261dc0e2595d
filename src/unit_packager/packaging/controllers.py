"""Controllers for packaging CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from unit_packager.config import Settings
from unit_packager.packaging.errors import NoMatchError, PackagingError
from unit_packager.packaging.models import ServiceManifest
from unit_packager.packaging.patterns import resolve_file_paths
from unit_packager.packaging.service import PackagingService


@dataclass(slots=True)
class PackageCommand:
    """CLI input for a packaging run."""

    service_file: Path
    service_dir: Path | None = None


@dataclass(slots=True)
class ResolveCommand:
    """CLI input for previewing the resolved file set of a directory."""

    root_dir: Path
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(slots=True)
class PackagingCommandResult:
    """Report to render in CLI."""

    lines: list[str]
    success: bool


class PackagingCliController:
    """Coordinates packaging runs and pattern previews for the CLI."""

    def package(self, command: PackageCommand) -> PackagingCommandResult:
        settings = Settings.from_env()
        try:
            settings.validate()
            service = _load_service(command)
        except (ValueError, OSError, PackagingError) as error:
            return PackagingCommandResult(lines=[f"Invalid configuration: {error}"], success=False)

        progress: list[str] = []
        packaging = PackagingService(
            service=service,
            settings=settings,
            on_progress=progress.append,
        )
        summary = packaging.package_service()

        lines = list(progress)
        for name, artifact in summary.artifacts.items():
            lines.append(f"{name}: {artifact}")
        if summary.service_artifact is not None:
            lines.append(f"{service.name} (service): {summary.service_artifact}")
        for name in summary.skipped:
            lines.append(f"{name}: skipped")
        for name, error in summary.failures.items():
            lines.append(f"{name}: FAILED ({type(error).__name__}: {error})")
        lines.append(
            f"Packaged {len(summary.artifacts) + (summary.service_artifact is not None)} "
            f"artifact(s), {len(summary.failures)} failure(s).",
        )
        return PackagingCommandResult(lines=lines, success=summary.ok)

    def resolve(self, command: ResolveCommand) -> PackagingCommandResult:
        try:
            file_paths = resolve_file_paths(
                command.root_dir,
                exclude=command.exclude,
                include=command.include,
            )
        except NoMatchError as error:
            return PackagingCommandResult(lines=[str(error)], success=False)
        return PackagingCommandResult(lines=file_paths, success=True)


def _load_service(command: PackageCommand) -> ServiceManifest:
    data = json.loads(command.service_file.read_text("utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{command.service_file} must contain a JSON object.")
    service_dir = command.service_dir or command.service_file.resolve().parent
    service = ServiceManifest.from_dict(data, service_dir=service_dir)
    if service.config_path is None:
        service.config_path = command.service_file
    return service
