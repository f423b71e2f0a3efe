"""Tests for interval-gated tool and kernel updates."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from runkit.context import RunkitContext
from runkit.integrations.process.abc import ProcessResult
from runkit.integrations.process.fake import FakeProcessRunner
from runkit.integrations.remote.fake import FakeRemote
from runkit.integrations.time.fake import DEFAULT_FAKE_NOW, FakeTime
from runkit.models.manifest import KernelEntry
from runkit.operations.auto_update import AutoUpdater, ToolUpdateStatus, tool_version_url
from runkit.operations.install import InstallRequest
from runkit.operations.resolve import current_platform, latest_release_url
from runkit.settings import Settings

VERSION_URL = tool_version_url("runkit-dev/runkit-release")
RS_REPO = "runkit-dev/runkit-kernel-rs"
NOW = int(DEFAULT_FAKE_NOW.timestamp())


def _updater(ctx: RunkitContext, current_version: str = "1.0.0") -> AutoUpdater:
    return AutoUpdater(
        ctx.settings,
        ctx.remote,
        ctx.process,
        ctx.time,
        ctx.update_cache,
        ctx.manifest_store,
        ctx.resolver(),
        ctx.installer(),
        current_version=current_version,
        python_executable="/usr/bin/python3",
    )


def test_second_check_within_interval_makes_no_request(
    state_dir: Path, update_settings: Settings
) -> None:
    """Test that a one-year interval allows exactly one network call."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.0.0\n"})
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    updater = _updater(ctx)

    first = updater.maybe_update_tool()
    second = updater.maybe_update_tool()

    assert first.status == ToolUpdateStatus.UP_TO_DATE
    assert second.status == ToolUpdateStatus.NOT_DUE
    assert remote.requested_urls == [VERSION_URL]


def test_check_is_due_again_after_interval(state_dir: Path) -> None:
    """Test that the timer re-arms once the interval has elapsed."""
    settings = Settings.for_state_dir(state_dir, auto_update_interval=3600)
    remote = FakeRemote(text_responses={VERSION_URL: "1.0.0"})
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=settings, remote=remote)
    _updater(ctx).maybe_update_tool()

    later = RunkitContext.for_test(
        state_dir=state_dir,
        settings=settings,
        remote=remote,
        time=FakeTime(now=DEFAULT_FAKE_NOW + timedelta(hours=1)),
    )
    _updater(later).maybe_update_tool()

    assert remote.requested_urls == [VERSION_URL, VERSION_URL]


def test_fetch_records_version_cache_and_timestamps(
    state_dir: Path, update_settings: Settings
) -> None:
    """Test that a successful fetch refreshes every update record."""
    remote = FakeRemote(text_responses={VERSION_URL: "v1.0.0"})
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)

    _updater(ctx).maybe_update_tool()

    cached = ctx.update_cache.read_version_cache()
    assert cached is not None
    assert cached.version == "1.0.0"
    assert cached.fetched_at == "2025-01-01T00:00:00Z"
    assert ctx.update_cache.read_cli_check().last_check == NOW
    assert ctx.manifest_store.load().last_update_check == "2025-01-01T00:00:00Z"
    assert update_settings.update_stamp_path.read_text(encoding="utf-8") == f"{NOW}\n"


def test_failed_check_still_advances_timer(
    state_dir: Path, update_settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that an unreachable server costs one attempt per interval."""
    remote = FakeRemote(failing_urls={VERSION_URL})
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    updater = _updater(ctx)

    first = updater.maybe_update_tool()
    second = updater.maybe_update_tool()

    assert first.status == ToolUpdateStatus.FAILED
    assert second.status == ToolUpdateStatus.NOT_DUE
    assert remote.requested_urls == [VERSION_URL]
    assert ctx.update_cache.read_cli_check().last_check == NOW
    assert "Tool update check failed" in capsys.readouterr().err


def test_newer_version_is_installed(state_dir: Path, update_settings: Settings) -> None:
    """Test that a newer published version triggers pip."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.1.0"})
    process = FakeProcessRunner()
    ctx = RunkitContext.for_test(
        state_dir=state_dir, settings=update_settings, remote=remote, process=process
    )

    outcome = _updater(ctx).maybe_update_tool()

    assert outcome.status == ToolUpdateStatus.UPDATED
    assert outcome.latest == "1.1.0"
    assert process.calls[0].cmd == (
        "/usr/bin/python3",
        "-m",
        "pip",
        "install",
        "--upgrade",
        "runkit==1.1.0",
    )
    assert ctx.update_cache.read_cli_check().version == "1.1.0"


def test_failed_self_install_warns(
    state_dir: Path, update_settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that a pip failure is a warning and the timer still advances."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.1.0"})
    process = FakeProcessRunner(
        results={"python3": ProcessResult(exit_code=1, stdout="", stderr="ERROR: no network")}
    )
    ctx = RunkitContext.for_test(
        state_dir=state_dir, settings=update_settings, remote=remote, process=process
    )

    outcome = _updater(ctx).maybe_update_tool()

    assert outcome.status == ToolUpdateStatus.FAILED
    assert "Self-update failed: ERROR: no network" in capsys.readouterr().err
    assert ctx.update_cache.read_cli_check().last_check == NOW


def test_self_install_timeout_only_warns(
    state_dir: Path, update_settings: Settings, capsys: pytest.CaptureFixture[str]
) -> None:
    """Test that pip hitting its timeout is a warning and the timer still advances."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.1.0"})
    process = FakeProcessRunner(timed_out_programs={"python3"})
    ctx = RunkitContext.for_test(
        state_dir=state_dir, settings=update_settings, remote=remote, process=process
    )
    updater = _updater(ctx)

    first = updater.maybe_update_tool()
    second = updater.maybe_update_tool()

    assert first.status == ToolUpdateStatus.FAILED
    assert second.status == ToolUpdateStatus.NOT_DUE
    assert "Self-update failed: Command did not finish" in capsys.readouterr().err
    assert ctx.update_cache.read_cli_check().last_check == NOW
    assert len(process.calls) == 1


def test_disabled_skips_without_requests(state_dir: Path) -> None:
    """Test that the disable flag prevents every automatic check."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.1.0"})
    ctx = RunkitContext.for_test(state_dir=state_dir, remote=remote)

    outcome = _updater(ctx).maybe_update_tool()

    assert outcome.status == ToolUpdateStatus.SKIPPED
    assert remote.requested_urls == []


def test_force_ignores_disable_flag_and_interval(state_dir: Path) -> None:
    """Test that an explicit self-update always checks."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.0.0"})
    ctx = RunkitContext.for_test(state_dir=state_dir, remote=remote)
    updater = _updater(ctx)

    updater.maybe_update_tool(force=True)
    outcome = updater.maybe_update_tool(force=True)

    assert outcome.status == ToolUpdateStatus.UP_TO_DATE
    assert len(remote.requested_urls) == 2


def test_reinstall_installs_same_version(state_dir: Path) -> None:
    """Test that reinstall runs pip even when already current."""
    remote = FakeRemote(text_responses={VERSION_URL: "1.0.0"})
    process = FakeProcessRunner()
    ctx = RunkitContext.for_test(state_dir=state_dir, remote=remote, process=process)

    outcome = _updater(ctx).maybe_update_tool(force=True, reinstall=True)

    assert outcome.status == ToolUpdateStatus.UPDATED
    assert process.calls[0].cmd[-1] == "runkit==1.0.0"


def test_source_checkout_never_self_updates(state_dir: Path) -> None:
    """Test that a development checkout is left alone."""
    settings = Settings.for_state_dir(state_dir, source_checkout=True)
    remote = FakeRemote(text_responses={VERSION_URL: "9.9.9"})
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=settings, remote=remote)

    outcome = _updater(ctx).maybe_update_tool(force=True)

    assert outcome.status == ToolUpdateStatus.SKIPPED
    assert remote.requested_urls == []


def _rs_asset_url(version: str) -> str:
    return (
        f"https://github.com/{RS_REPO}/releases/download/runkit-run-v{version}/"
        f"runkit-run-{current_platform()}.{_rs_extension()}"
    )


def _rs_extension() -> str:
    return "zip" if current_platform().startswith("windows-") else "tar.gz"


def _install_local_rs(ctx: RunkitContext, tmp_path: Path) -> KernelEntry:
    binary = tmp_path / "rs-build"
    binary.write_text("#!/bin/sh\n", encoding="utf-8")
    result = ctx.installer().install(
        InstallRequest(kernel_id="rs", local_path=binary, version="1.0.0")
    )
    return result.entry


def test_kernel_is_updated_to_new_release(
    state_dir: Path, tmp_path: Path, update_settings: Settings, tar_gz, zip_bytes
) -> None:
    """Test that a newer kernel release replaces the installed one."""
    build = zip_bytes if _rs_extension() == "zip" else tar_gz
    name = "runkit-run.exe" if _rs_extension() == "zip" else "runkit-run"
    remote = FakeRemote(
        json_responses={latest_release_url(RS_REPO): {"tag_name": "runkit-run-v1.1.0"}},
        files={_rs_asset_url("1.1.0"): build({f"pkg/{name}": b"rs-1.1"})},
    )
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    entry = _install_local_rs(ctx, tmp_path)

    updated = _updater(ctx).maybe_update_kernel(entry)

    assert updated.version == "1.1.0"
    assert Path(updated.path).read_bytes() == b"rs-1.1"
    assert ctx.update_cache.read_kernel_checks().get("rs").version == "1.1.0"


def test_kernel_update_failure_keeps_entry(
    state_dir: Path, tmp_path: Path, update_settings: Settings
) -> None:
    """Test that a failed kernel update runs the installed version and re-arms the timer."""
    remote = FakeRemote(
        json_responses={latest_release_url(RS_REPO): {"tag_name": "runkit-run-v1.1.0"}}
    )
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    entry = _install_local_rs(ctx, tmp_path)
    updater = _updater(ctx)

    first = updater.maybe_update_kernel(entry)
    requests_after_first = len(remote.requested_urls)
    second = updater.maybe_update_kernel(entry)

    assert first == entry
    assert second == entry
    check = ctx.update_cache.read_kernel_checks().get("rs")
    assert check.version == "1.0.0"
    assert check.last_check == NOW
    assert len(remote.requested_urls) == requests_after_first


def test_kernel_already_current(state_dir: Path, tmp_path: Path, update_settings: Settings) -> None:
    """Test that an up-to-date kernel is left in place."""
    remote = FakeRemote(
        json_responses={latest_release_url(RS_REPO): {"tag_name": "runkit-run-v1.0.0"}}
    )
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    entry = _install_local_rs(ctx, tmp_path)

    assert _updater(ctx).maybe_update_kernel(entry) == entry
    assert remote.downloads == []


def test_custom_and_unversioned_kernels_are_skipped(
    state_dir: Path, update_settings: Settings
) -> None:
    """Test that only versioned catalogue kernels are auto-updated."""
    remote = FakeRemote()
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    updater = _updater(ctx)

    custom = KernelEntry(id="custom", version="1.0.0", path="/bin/custom")
    unversioned = KernelEntry(id="rs", version=None, path="/bin/rs")

    assert updater.maybe_update_kernel(custom) == custom
    assert updater.maybe_update_kernel(unversioned) == unversioned
    assert remote.requested_urls == []


def test_kernel_checks_use_their_own_timer(
    state_dir: Path, tmp_path: Path, update_settings: Settings
) -> None:
    """Test that the tool timer does not gate kernel checks."""
    remote = FakeRemote(
        text_responses={VERSION_URL: "1.0.0"},
        json_responses={latest_release_url(RS_REPO): {"tag_name": "runkit-run-v1.0.0"}},
    )
    ctx = RunkitContext.for_test(state_dir=state_dir, settings=update_settings, remote=remote)
    entry = _install_local_rs(ctx, tmp_path)
    updater = _updater(ctx)

    updater.maybe_update_tool()
    updater.maybe_update_kernel(entry)

    assert latest_release_url(RS_REPO) in remote.requested_urls
    data = json.loads(update_settings.kernel_update_cache_path.read_text(encoding="utf-8"))
    assert data == {"kernels": {"rs": {"version": "1.0.0", "lastCheck": NOW}}}


def test_fake_time_is_utc() -> None:
    """Test that the default fake clock is timezone-aware."""
    assert FakeTime().now() == datetime(2025, 1, 1, tzinfo=UTC)
