"""Zip archive creation for resolved unit file sets."""

from __future__ import annotations

import logging
import os
import stat
import zipfile
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from unit_packager.packaging.errors import ArchiveError
from unit_packager.packaging.filesystem import ensure_directory

logger = logging.getLogger(__name__)


class Archiver(Protocol):
    """Protocol implemented by archive writers."""

    def create_archive(
        self,
        file_paths: Sequence[str | Path],
        archive_name: str,
        base_path: str | Path | None = None,
    ) -> Path:
        """Write the files into ``archive_name`` and return its absolute path."""


class ZipArchiver:
    """Writes deflated zip archives into the service artifact directory.

    Relative file paths are resolved against the service directory. Entry
    names are relative to ``base_path`` (itself relative to the service
    directory unless absolute), or to the service directory when omitted.
    """

    def __init__(self, *, service_dir: Path, artifact_dir: str = ".serverless") -> None:
        self.service_dir = Path(service_dir).resolve()
        self.output_dir = self.service_dir / artifact_dir

    def create_archive(
        self,
        file_paths: Sequence[str | Path],
        archive_name: str,
        base_path: str | Path | None = None,
    ) -> Path:
        base_dir = self.service_dir / base_path if base_path is not None else self.service_dir
        archive_path = ensure_directory(self.output_dir) / archive_name
        logger.debug("Zipping %d files into %s", len(file_paths), archive_path)
        try:
            with zipfile.ZipFile(archive_path, "w", zipfile.ZIP_DEFLATED) as archive:
                for file_path in file_paths:
                    source = self.service_dir / file_path
                    arcname = os.path.relpath(source, base_dir).replace(os.sep, "/")
                    archive.writestr(_zip_info(source, arcname), source.read_bytes())
        except (OSError, zipfile.BadZipFile, ValueError) as error:
            raise ArchiveError(f"Failed to create archive {archive_path}: {error}") from error
        return archive_path


def _zip_info(source: Path, arcname: str) -> zipfile.ZipInfo:
    # Fixed timestamp keeps archives byte-identical across runs.
    info = zipfile.ZipInfo(arcname, date_time=(1980, 1, 1, 0, 0, 0))
    info.compress_type = zipfile.ZIP_DEFLATED
    mode = source.stat().st_mode
    info.external_attr = (stat.S_IMODE(mode) | stat.S_IFREG) << 16
    return info
