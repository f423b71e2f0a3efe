"""Archive expansion for downloaded release assets."""

import logging
import tarfile
import zipfile
from pathlib import Path

from runkit.errors import ExtractionError

logger = logging.getLogger(__name__)

_TAR_MODES = {
    ".tar.gz": "r:gz",
    ".tgz": "r:gz",
    ".tar": "r:",
}


def archive_format(name: str) -> str | None:
    """Return "zip", a tarfile open mode, or None for unsupported names."""
    lowered = name.lower()
    if lowered.endswith(".zip"):
        return "zip"
    for suffix, mode in _TAR_MODES.items():
        if lowered.endswith(suffix):
            return mode
    return None


def is_archive(path: Path) -> bool:
    return archive_format(path.name) is not None


def _extract_zip(archive: Path, dest: Path) -> None:
    root = dest.resolve()
    with zipfile.ZipFile(archive) as zf:
        for member in zf.namelist():
            target = (dest / member).resolve()
            if not target.is_relative_to(root):
                raise ExtractionError(f"Archive member escapes extraction directory: {member}")
        zf.extractall(dest)


def extract_archive(archive: Path, dest: Path) -> Path:
    """Expand archive into dest and return dest.

    Supports .zip, .tar.gz/.tgz and .tar.

    Raises:
        ExtractionError: Unsupported format, corrupt archive or unsafe member paths
    """
    fmt = archive_format(archive.name)
    if fmt is None:
        raise ExtractionError(f"Unsupported archive format: {archive.name}")

    dest.mkdir(parents=True, exist_ok=True)
    logger.debug("Extracting %s into %s", archive, dest)
    try:
        if fmt == "zip":
            _extract_zip(archive, dest)
        else:
            with tarfile.open(archive, fmt) as tf:
                tf.extractall(dest, filter="data")
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise ExtractionError(f"Failed to extract {archive.name}: {e}") from e
    return dest
