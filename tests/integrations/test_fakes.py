"""Tests for the fake integrations used throughout the suite."""

from pathlib import Path

import pytest

from runkit.errors import RemoteError
from runkit.integrations.process.abc import ProcessResult
from runkit.integrations.process.fake import FakeProcessRunner
from runkit.integrations.remote.fake import FakeRemote


def test_fake_remote_unknown_url_is_not_found(tmp_path: Path) -> None:
    """Test that unconfigured URLs behave like a 404."""
    remote = FakeRemote()

    assert remote.get_json("https://x/a.json") is None
    assert remote.get_text("https://x/VERSION") is None
    with pytest.raises(RemoteError, match="HTTP 404"):
        remote.download("https://x/a.tar.gz", tmp_path / "a.tar.gz")


def test_fake_remote_failing_url() -> None:
    """Test that failing URLs raise and are still recorded."""
    remote = FakeRemote(failing_urls={"https://x/down"})

    with pytest.raises(RemoteError):
        remote.get_json("https://x/down")

    assert remote.requested_urls == ["https://x/down"]


def test_fake_remote_download_writes_file(tmp_path: Path) -> None:
    """Test that canned files are written to the destination."""
    remote = FakeRemote(files={"https://x/a.bin": b"data"})
    dest = tmp_path / "nested" / "a.bin"

    remote.download("https://x/a.bin", dest)

    assert dest.read_bytes() == b"data"
    assert remote.downloads == [("https://x/a.bin", dest)]


def test_fake_remote_tracking_returns_copies() -> None:
    """Test that tracking lists cannot be mutated from outside."""
    remote = FakeRemote()
    remote.get_text("https://x/a")

    remote.requested_urls.clear()

    assert remote.requested_urls == ["https://x/a"]


def test_fake_process_runner_results_by_program() -> None:
    """Test that results are looked up by the program's base name."""
    runner = FakeProcessRunner(
        results={"npm": ProcessResult(exit_code=1, stdout="", stderr="boom")}
    )

    assert not runner.run(["/usr/bin/npm", "ci"]).ok
    assert runner.run(["git", "status"]).ok
    assert [call.cmd for call in runner.calls] == [("/usr/bin/npm", "ci"), ("git", "status")]


def test_fake_process_runner_missing_program() -> None:
    """Test that missing programs raise like a real spawn failure."""
    runner = FakeProcessRunner(missing_programs={"java"})

    with pytest.raises(FileNotFoundError):
        runner.run_kernel(["java", "-jar", "k.jar"])
