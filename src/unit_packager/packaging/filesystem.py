"""Filesystem helpers used while preparing build output directories."""

from __future__ import annotations

import errno
from pathlib import Path

from unit_packager.packaging.errors import FilesystemError

_TOLERATED_ERRNOS = {errno.EACCES, errno.EPERM, errno.EISDIR}


def ensure_directory(target: Path) -> Path:
    """Create ``target`` and its parents one level at a time.

    Existing directories are fine at every level. Permission failures on
    intermediate levels are tolerated (the directory may exist but be
    unlistable); they are raised only for ``target`` itself.
    """

    target = Path(target).resolve()
    current = Path(target.anchor)
    for part in target.parts[1:]:
        parent = current
        current = current / part
        try:
            current.mkdir()
        except FileExistsError:
            continue
        except FileNotFoundError as error:
            raise FilesystemError(
                f"Permission denied creating directory under {parent}",
                path=parent,
            ) from error
        except OSError as error:
            if error.errno not in _TOLERATED_ERRNOS or current == target:
                raise FilesystemError(
                    f"Cannot create directory {current}: {error.strerror or error}",
                    path=current,
                ) from error
    if not target.is_dir():
        raise FilesystemError(f"{target} exists and is not a directory", path=target)
    return target
