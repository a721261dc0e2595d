"""Packaging service: decides what goes into each unit archive and builds it."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path, PurePosixPath

from unit_packager.config import Settings
from unit_packager.packaging.archiver import Archiver, ZipArchiver
from unit_packager.packaging.backend import CompileRequest, CompilerBackend, DotnetCompilerBackend
from unit_packager.packaging.build_queue import SequentialTaskQueue
from unit_packager.packaging.dedup import BuildRegistry
from unit_packager.packaging.errors import BuildError, ConfigurationError
from unit_packager.packaging.filesystem import ensure_directory
from unit_packager.packaging.models import DeployableUnit, PackagingRunSummary, ServiceManifest
from unit_packager.packaging.patterns import resolve_file_paths

logger = logging.getLogger(__name__)


class PackagingService:
    """Packages every function and layer of a service into deployment archives.

    Units are packaged concurrently. Builds for compiled runtimes go through a
    :class:`BuildRegistry` so a project shared by several functions is compiled
    once, and through a :class:`SequentialTaskQueue` so no two compiler
    invocations ever overlap.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        service: ServiceManifest,
        settings: Settings | None = None,
        archiver: Archiver | None = None,
        compiler: CompilerBackend | None = None,
        build_queue: SequentialTaskQueue | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.service = service
        self.settings = settings or Settings()
        self.service_dir = Path(service.service_dir).resolve()
        self.archiver = archiver or ZipArchiver(
            service_dir=self.service_dir,
            artifact_dir=self.settings.packaging.artifact_dir,
        )
        self.compiler = compiler or DotnetCompilerBackend(self.settings.build.command_template)
        self.build_queue = build_queue or SequentialTaskQueue()
        self.registry = BuildRegistry(self.build_queue)
        self._on_progress = on_progress or (lambda _msg: None)

    # -- pattern assembly ------------------------------------------------------

    def get_includes(self, include: Iterable[str] = ()) -> list[str]:
        return _union(self.service.package.include, include)

    def get_runtime(self, runtime: str | None) -> str:
        return runtime or self.service.provider_runtime or self.settings.build.default_runtime

    def get_excludes(
        self,
        exclude: Iterable[str] = (),
        *,
        exclude_layers: bool,
        layer_root: str | None = None,
    ) -> list[str]:
        """Default, service, layer and unit excludes in precedence order.

        ``exclude_layers`` drops every declared layer path (functions and the
        service archive). ``layer_root`` drops only layers nested inside that
        root, relative to it (a layer's own archive).
        """

        config_exclude = [self.service.config_path.name] if self.service.config_path else []
        plugins_exclude = (
            [self.service.plugins_local_path] if self.service.plugins_local_path else []
        )
        if exclude_layers:
            layer_exclude = [
                f"{self.service.get_layer(name).path}/**" for name in self.service.get_all_layers()
            ]
        elif layer_root is not None:
            layer_exclude = self._nested_layer_excludes(layer_root)
        else:
            layer_exclude = []
        env_exclude = [".env*"] if self.service.use_dotenv else []

        return _union(
            self.settings.packaging.default_excludes,
            config_exclude,
            plugins_exclude,
            self.service.package.exclude,
            layer_exclude,
            env_exclude,
            exclude,
        )

    def _nested_layer_excludes(self, layer_root: str) -> list[str]:
        root = PurePosixPath(layer_root.replace("\\", "/"))
        excludes: list[str] = []
        for name in self.service.get_all_layers():
            other = PurePosixPath((self.service.get_layer(name).path or "").replace("\\", "/"))
            if other == root or root not in other.parents:
                continue
            excludes.append(f"{other.relative_to(root).as_posix()}/**")
        return excludes

    # -- run -------------------------------------------------------------------

    def package_service(self) -> PackagingRunSummary:
        """Package every unit of the service, collecting per-unit failures."""

        self._progress("Packaging service...")
        self.registry = BuildRegistry(self.build_queue)
        summary = PackagingRunSummary()
        needs_service_archive = False

        jobs: dict[str, Future[Path | None]] = {}
        with ThreadPoolExecutor(
            max_workers=self.settings.packaging.max_workers,
            thread_name_prefix="unit-packager",
        ) as executor:
            for function_name in self.service.get_all_functions():
                function = self.service.get_function(function_name)
                if function.image:
                    summary.skipped.append(function_name)
                    continue
                if function.package.disable:
                    self._progress(f'Packaging disabled for function: "{function_name}"')
                    summary.skipped.append(function_name)
                    continue
                if function.package.artifact:
                    summary.skipped.append(function_name)
                    continue
                if function.package.individually or self.service.package.individually:
                    jobs[function_name] = executor.submit(self._package_individually, function_name)
                    continue
                needs_service_archive = True

            for layer_name in self.service.get_all_layers():
                layer = self.service.get_layer(layer_name)
                if layer.package.disable or layer.package.artifact:
                    summary.skipped.append(layer_name)
                    continue
                jobs[layer_name] = executor.submit(self.package_layer, layer_name)

        for name, job in jobs.items():
            error = job.exception()
            if error is not None:
                logger.error("Packaging %s failed: %s", name, error)
                summary.failures[name] = error
                continue
            artifact = job.result()
            if artifact is not None:
                summary.artifacts[name] = artifact

        if needs_service_archive and not self.service.package.artifact:
            try:
                summary.service_artifact = self.package_all()
            except Exception as error:  # noqa: BLE001
                logger.error("Packaging service %s failed: %s", self.service.name, error)
                summary.failures[self.service.name] = error

        return summary

    def _package_individually(self, function_name: str) -> Path | None:
        self.build_function(function_name)
        return self.package_function(function_name)

    def package_all(self) -> Path:
        """Archive the whole service for functions not packaged individually."""

        file_paths = resolve_file_paths(
            self.service_dir,
            exclude=self.get_excludes(exclude_layers=True),
            include=self.get_includes(),
        )
        artifact = self.archiver.create_archive(file_paths, f"{self.service.name}.zip")
        # Only set the default artifact when none was declared explicitly.
        if not self.service.package.artifact:
            self.service.package.artifact = str(artifact)
            self.service.artifact = str(artifact)
        return artifact

    def package_function(self, function_name: str) -> Path | None:
        function = self.service.get_function(function_name)
        if function.image:
            return None

        if function.package.artifact:
            artifact = self.service_dir / function.package.artifact
            if not function.artifact_assigned:
                function.package.artifact = str(artifact)
            return artifact

        if self.service.package.artifact and not function.package.individually:
            artifact = self.service_dir / self.service.package.artifact
            return function.assign_artifact(artifact)

        file_paths = resolve_file_paths(
            self.service_dir,
            exclude=self.get_excludes(function.package.exclude, exclude_layers=True),
            include=self.get_includes(function.package.include),
        )
        artifact = self.archiver.create_archive(file_paths, f"{function_name}.zip")
        return function.assign_artifact(artifact)

    def package_layer(self, layer_name: str) -> Path:
        layer = self.service.get_layer(layer_name)
        if not layer.path:
            raise ConfigurationError(f"Layer {layer_name!r} must declare a 'path'.")
        layer_dir = (self.service_dir / layer.path).resolve()

        relative_paths = resolve_file_paths(
            layer_dir,
            exclude=self.get_excludes(
                layer.package.exclude,
                exclude_layers=False,
                layer_root=layer.path,
            ),
            include=self.get_includes(layer.package.include),
        )
        file_paths = [layer_dir / path for path in relative_paths]
        artifact = self.archiver.create_archive(file_paths, f"{layer_name}.zip", layer_dir)
        return layer.assign_artifact(artifact)

    # -- compiled runtimes -----------------------------------------------------

    def build_function(self, function_name: str) -> Path | None:
        """Compile the function's project when its runtime needs a toolchain."""

        function = self.service.get_function(function_name)
        runtime = self.get_runtime(function.runtime)
        logger.debug("Ready function %s for %s", function_name, runtime)
        if not runtime.startswith(self.settings.build.compiled_runtime_prefixes):
            return None
        return self._build_compiled_function(function)

    def _build_compiled_function(self, function: DeployableUnit) -> Path:
        project = self._project_reference(function)
        artifact = self.registry.build_once(
            project,
            lambda: self._compile_and_archive(function.name, project),
        )
        return function.assign_artifact(artifact)

    def _project_reference(self, function: DeployableUnit) -> str:
        if not function.package.include:
            raise ConfigurationError(
                "You must specify the project file (e.g. .csproj) in the package include "
                f"section of function {function.name!r}.",
            )
        suffixes = self.settings.build.project_file_suffixes
        projects = [
            pattern for pattern in self.get_includes(function.package.include)
            if pattern.endswith(suffixes)
        ]
        if not projects:
            raise ConfigurationError(
                f"Function {function.name!r} has no project file ({', '.join(suffixes)}) "
                "in its package include section.",
            )
        if len(projects) > 1:
            raise ConfigurationError(
                f"Function {function.name!r} references more than one project file: "
                f"{', '.join(projects)}.",
            )
        return projects[0]

    def _compile_and_archive(self, function_name: str, project: str) -> Path:
        build = self.settings.build
        output_dir = Path(build.output_dir) / function_name
        logger.debug("building %s", project)
        ensure_directory(self.service_dir / output_dir)

        result = self.compiler.run(
            CompileRequest(
                project_path=self.service_dir / project,
                output_dir=self.service_dir / output_dir,
                working_dir=self.service_dir,
                configuration=build.configuration,
                timeout_seconds=build.timeout_seconds,
            ),
        )
        if result.stdout:
            logger.info(result.stdout)
        if not result.ok:
            reason = "timed out" if result.timed_out else f"exited with code {result.exit_code}"
            logger.error("An error occurred while building %s", project)
            if result.stderr:
                logger.error(result.stderr)
            raise BuildError(
                f"Build of {project} {reason}",
                project=project,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

        file_paths = resolve_file_paths(self.service_dir / output_dir, include=["**"])
        return self.archiver.create_archive(
            [output_dir / path for path in file_paths],
            f"{function_name}.zip",
            output_dir,
        )

    def _progress(self, message: str) -> None:
        logger.info(message)
        self._on_progress(message)


def _union(*groups: Iterable[str] | Sequence[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for group in groups:
        for item in group:
            if item in seen:
                continue
            seen.add(item)
            merged.append(item)
    return merged
