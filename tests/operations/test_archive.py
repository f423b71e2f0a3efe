"""Tests for archive extraction."""

import io
import zipfile
from pathlib import Path

import pytest

from runkit.errors import ExtractionError, InstallStage
from runkit.operations.archive import archive_format, extract_archive, is_archive


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("kernel.zip", "zip"),
        ("kernel.TAR.GZ", "r:gz"),
        ("kernel.tgz", "r:gz"),
        ("kernel.tar", "r:"),
        ("kernel.jar", None),
        ("kernel", None),
    ],
)
def test_archive_format(name: str, expected: str | None) -> None:
    """Test format detection by file name."""
    assert archive_format(name) == expected


def test_extract_tar_gz(tmp_path: Path, tar_gz) -> None:
    """Test that tar.gz members are expanded with their directories."""
    archive = tmp_path / "k.tar.gz"
    archive.write_bytes(tar_gz({"pkg/bin/runkit-run": b"binary", "pkg/README": b"docs"}))

    dest = extract_archive(archive, tmp_path / "out")

    assert (dest / "pkg" / "bin" / "runkit-run").read_bytes() == b"binary"
    assert (dest / "pkg" / "README").read_bytes() == b"docs"


def test_extract_zip(tmp_path: Path, zip_bytes) -> None:
    """Test that zip members are expanded."""
    archive = tmp_path / "k.zip"
    archive.write_bytes(zip_bytes({"runkit-run.exe": b"binary"}))

    dest = extract_archive(archive, tmp_path / "out")

    assert (dest / "runkit-run.exe").read_bytes() == b"binary"
    assert is_archive(archive)


def test_unsupported_format_raises(tmp_path: Path) -> None:
    """Test that unknown formats fail in the extract stage."""
    archive = tmp_path / "k.rar"
    archive.write_bytes(b"")

    with pytest.raises(ExtractionError, match="Unsupported archive format") as exc_info:
        extract_archive(archive, tmp_path / "out")

    assert exc_info.value.stage == InstallStage.EXTRACT


def test_corrupt_archive_raises(tmp_path: Path) -> None:
    """Test that a truncated archive is an extraction failure."""
    archive = tmp_path / "k.tar.gz"
    archive.write_bytes(b"\x1f\x8b not really gzip")

    with pytest.raises(ExtractionError, match="Failed to extract k.tar.gz"):
        extract_archive(archive, tmp_path / "out")


def test_zip_path_traversal_rejected(tmp_path: Path) -> None:
    """Test that members escaping the destination are refused."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("../escape.txt", b"nope")
    archive = tmp_path / "evil.zip"
    archive.write_bytes(buffer.getvalue())

    with pytest.raises(ExtractionError, match="escapes extraction directory"):
        extract_archive(archive, tmp_path / "out")

    assert not (tmp_path / "escape.txt").exists()
