"""Extraction of uploaded source archives."""

import zipfile
from pathlib import Path

from ..utils.logging import get_logger

logger = get_logger("archive")


class ArchiveError(ValueError):
    """The uploaded archive is not a readable zip or contains unsafe entries."""


def extract_zip(archive_path: Path, destination: Path) -> int:
    """Extract ``archive_path`` into ``destination``.

    Entries that would land outside ``destination`` (absolute paths, ``..``)
    reject the whole archive.

    Returns:
        Number of files extracted
    """
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()

    try:
        with zipfile.ZipFile(archive_path) as archive:
            members = archive.infolist()
            for member in members:
                target = (root / member.filename).resolve()
                if target != root and root not in target.parents:
                    raise ArchiveError(f"Unsafe path in archive: {member.filename}")
            archive.extractall(root)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Not a zip archive: {archive_path.name}") from e

    count = sum(1 for member in members if not member.is_dir())
    logger.info(f"Extracted {count} files from {archive_path.name}")
    return count
