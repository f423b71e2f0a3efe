"""Shared fixtures for runkit tests."""

import io
import tarfile
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest

from runkit.context import RunkitContext
from runkit.settings import Settings

ArchiveBuilder = Callable[[dict[str, bytes]], bytes]


def _build_tar_gz(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def _build_zip(files: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def tar_gz() -> ArchiveBuilder:
    """Build an in-memory .tar.gz from a name -> bytes mapping."""
    return _build_tar_gz


@pytest.fixture
def zip_bytes() -> ArchiveBuilder:
    """Build an in-memory .zip from a name -> bytes mapping."""
    return _build_zip


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


@pytest.fixture
def ctx(state_dir: Path) -> RunkitContext:
    """Test context with fakes and auto-update disabled."""
    return RunkitContext.for_test(state_dir=state_dir)


@pytest.fixture
def kernel_file(tmp_path: Path) -> Path:
    """A local kernel executable suitable for 'kernel install --path'."""
    path = tmp_path / "build" / "my-kernel"
    path.parent.mkdir(parents=True)
    path.write_text("#!/bin/sh\necho '{}'\n", encoding="utf-8")
    return path


@pytest.fixture
def update_settings(state_dir: Path) -> Settings:
    """Settings with auto-update enabled and a one-year interval."""
    return Settings.for_state_dir(state_dir, auto_update_interval=365 * 24 * 3600)
