"""Runtime configuration for packaging runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from unit_packager.packaging.backend.dotnet import DEFAULT_COMMAND_TEMPLATE

DEFAULT_EXCLUDES: tuple[str, ...] = (
    ".git/**",
    ".gitignore",
    ".DS_Store",
    "npm-debug.log",
    "yarn-*.log",
    ".serverless/**",
    ".serverless_plugins/**",
)


@dataclass(slots=True)
class PackagingSettings:
    """File selection and archive output settings."""

    artifact_dir: str = ".serverless"
    default_excludes: tuple[str, ...] = DEFAULT_EXCLUDES
    max_workers: int = 8


@dataclass(slots=True)
class BuildSettings:
    """Compiled-runtime toolchain settings."""

    default_runtime: str = "nodejs12.x"
    compiled_runtime_prefixes: tuple[str, ...] = ("dotnet",)
    project_file_suffixes: tuple[str, ...] = (".csproj", ".fsproj", ".vbproj")
    output_dir: str = ".bin"
    configuration: str = "Release"
    command_template: str = DEFAULT_COMMAND_TEMPLATE
    timeout_seconds: int = 1_800


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    packaging: PackagingSettings = field(default_factory=PackagingSettings)
    build: BuildSettings = field(default_factory=BuildSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults matching the deploy tooling."""

        return cls(
            packaging=PackagingSettings(
                artifact_dir=os.getenv("UNIT_PACKAGER_ARTIFACT_DIR", ".serverless"),
                default_excludes=_env_tuple("UNIT_PACKAGER_DEFAULT_EXCLUDES", DEFAULT_EXCLUDES),
                max_workers=int(os.getenv("UNIT_PACKAGER_MAX_WORKERS", "8")),
            ),
            build=BuildSettings(
                default_runtime=os.getenv("UNIT_PACKAGER_DEFAULT_RUNTIME", "nodejs12.x"),
                compiled_runtime_prefixes=_env_tuple(
                    "UNIT_PACKAGER_COMPILED_RUNTIME_PREFIXES",
                    ("dotnet",),
                ),
                project_file_suffixes=_env_tuple(
                    "UNIT_PACKAGER_PROJECT_FILE_SUFFIXES",
                    (".csproj", ".fsproj", ".vbproj"),
                ),
                output_dir=os.getenv("UNIT_PACKAGER_BUILD_OUTPUT_DIR", ".bin"),
                configuration=os.getenv("UNIT_PACKAGER_BUILD_CONFIGURATION", "Release"),
                command_template=os.getenv(
                    "UNIT_PACKAGER_COMPILER_COMMAND",
                    DEFAULT_COMMAND_TEMPLATE,
                ),
                timeout_seconds=int(os.getenv("UNIT_PACKAGER_COMPILER_TIMEOUT_SECONDS", "1800")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the packaging service cannot use."""

        if self.packaging.max_workers <= 0:
            raise ValueError("UNIT_PACKAGER_MAX_WORKERS must be > 0.")
        if not self.packaging.artifact_dir.strip():
            raise ValueError("UNIT_PACKAGER_ARTIFACT_DIR must not be empty.")
        if not self.build.output_dir.strip():
            raise ValueError("UNIT_PACKAGER_BUILD_OUTPUT_DIR must not be empty.")
        if self.build.timeout_seconds <= 0:
            raise ValueError("UNIT_PACKAGER_COMPILER_TIMEOUT_SECONDS must be > 0.")
        if "{project}" not in self.build.command_template:
            raise ValueError("UNIT_PACKAGER_COMPILER_COMMAND must include {project}.")
        for suffix in self.build.project_file_suffixes:
            if not suffix.startswith("."):
                raise ValueError(
                    f"Project file suffix must start with '.': {suffix!r}",
                )


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())
