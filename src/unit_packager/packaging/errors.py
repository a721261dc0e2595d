"""Error taxonomy for packaging runs."""

from __future__ import annotations

from pathlib import Path


class PackagingError(RuntimeError):
    """Base class for every packaging failure."""


class ConfigurationError(PackagingError):
    """Unit or service configuration cannot be packaged as declared."""


class NoMatchError(PackagingError):
    """Include/exclude patterns selected no files."""


class BuildError(PackagingError):
    """External compiler invocation failed."""

    def __init__(
        self,
        message: str,
        *,
        project: str | None = None,
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.project = project
        self.exit_code = exit_code
        self.stderr = stderr


class FilesystemError(PackagingError):
    """Directory creation failed for a reason other than already existing."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class ArchiveError(PackagingError):
    """Archive could not be written."""


class BuildQueueAborted(PackagingError):
    """Queued task was dropped because its drainer exited abnormally."""


class PackagingRunError(PackagingError):
    """One or more units failed during a packaging run."""

    def __init__(self, failures: dict[str, Exception]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(f"Packaging failed for: {names}")
        self.failures = failures
