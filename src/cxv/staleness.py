# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Staleness checks deciding when a cached artifact must be rebuilt."""

import logging
from pathlib import Path

from cxv.model import BuildRecord

logger = logging.getLogger(__name__)


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


def file_newer(path: Path, reference: Path | float | None) -> bool:
    """Check whether ``path`` was modified after ``reference``.

    Args:
        path: File whose modification time is compared.
        reference: Another file, or a timestamp. A missing reference counts
            as infinitely old.

    Returns:
        True when ``path`` is newer than the reference. A missing ``path``
        is never newer than an existing reference.
    """
    if reference is None:
        return True
    reference_mtime = _mtime(reference) if isinstance(reference, Path) else reference
    if reference_mtime is None:
        return True
    path_mtime = _mtime(path)
    return path_mtime is not None and path_mtime > reference_mtime


def needs_build(
    record: BuildRecord, extra_args: list[str], database_path: Path
) -> bool:
    """Decide whether an artifact must be rebuilt.

    Args:
        record: Build record of the artifact.
        extra_args: Extra arguments the next build would use.
        database_path: Compilation database the record was loaded from.

    Returns:
        True when arguments changed or the source or database is newer than
        the artifact.
    """
    if list(extra_args) != record.last_extra_args:
        logger.debug(
            f"Extra arguments changed (artifact={record.artifact} "
            f"previous={record.last_extra_args} current={extra_args})"
        )
        return True
    if _mtime(record.source) is None:
        return True
    if file_newer(record.source, record.artifact):
        return True
    return file_newer(database_path, record.artifact)
