"""Artifact packaging for functions and layers.

Why not a general build tool (make, doit, SCons)?
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
There is no graph of build steps here. Each deployable unit needs exactly two
things: an ordered include/exclude resolution of its files, and for compiled
runtimes a single publish of its project. The only coordination required is
that publishes never overlap (they share intermediate output directories) and
that a project referenced by several functions is published once per run.
A lock-guarded FIFO plus a per-run registry of futures covers that.
"""

from unit_packager.packaging.build_queue import SequentialTaskQueue
from unit_packager.packaging.dedup import BuildRegistry
from unit_packager.packaging.errors import (
    ArchiveError,
    BuildError,
    BuildQueueAborted,
    ConfigurationError,
    FilesystemError,
    NoMatchError,
    PackagingError,
    PackagingRunError,
)
from unit_packager.packaging.models import (
    DeployableUnit,
    PackageConfig,
    PackagingRunSummary,
    ServiceManifest,
    UnitKind,
)
from unit_packager.packaging.patterns import resolve_file_paths

__all__ = [
    "ArchiveError",
    "BuildError",
    "BuildQueueAborted",
    "BuildRegistry",
    "ConfigurationError",
    "DeployableUnit",
    "FilesystemError",
    "NoMatchError",
    "PackageConfig",
    "PackagingError",
    "PackagingRunError",
    "PackagingRunSummary",
    "SequentialTaskQueue",
    "ServiceManifest",
    "UnitKind",
    "resolve_file_paths",
]
