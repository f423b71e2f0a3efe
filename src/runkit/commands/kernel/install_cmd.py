"""Install command for placing a kernel in the bin directory."""

from pathlib import Path

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.errors import InvalidArgumentError
from runkit.operations.install import InstallRequest, InstallStatus
from runkit.operations.resolve import SUPPORTED_PLATFORMS
from runkit.output import user_output


@click.command("install")
@click.argument("kernel_id")
@click.option(
    "--path",
    "local_path",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Install a local kernel binary instead of downloading a release.",
)
@click.option(
    "--from-release",
    is_flag=True,
    help="Download the kernel from its release repository (default without --path).",
)
@click.option("--version", "version", help="Release version to install (default: latest).")
@click.option(
    "--platform",
    "platform_id",
    type=click.Choice(SUPPORTED_PLATFORMS),
    help="Target platform (default: detected).",
)
@click.option("--repo", help="Release repository as owner/repo.")
@click.option("--force", is_flag=True, help="Reinstall even if the kernel is already installed.")
@click.pass_obj
@cli_error_boundary
def install_cmd(
    ctx: RunkitContext,
    kernel_id: str,
    local_path: Path | None,
    from_release: bool,
    version: str | None,
    platform_id: str | None,
    repo: str | None,
    force: bool,
) -> None:
    """Install KERNEL_ID from a release or a local file.

    Examples:

      runkit kernel install rs

      runkit kernel install java --version 0.3.1

      runkit kernel install custom --path ./build/my-kernel
    """
    if local_path is not None and from_release:
        raise InvalidArgumentError("--path and --from-release are mutually exclusive")
    if local_path is not None and (platform_id is not None or repo is not None):
        raise InvalidArgumentError("--platform and --repo only apply to release installs")

    request = InstallRequest(
        kernel_id=kernel_id,
        local_path=local_path,
        version=version,
        platform=platform_id,
        repo=repo,
        force=force,
    )
    result = ctx.installer().install(request)
    entry = result.entry
    version_label = entry.version or "unversioned"

    if result.status == InstallStatus.UNCHANGED:
        user_output(f"Kernel '{entry.id}' {version_label} is already installed at {entry.path}")
        return

    verb = "Reinstalled" if result.status == InstallStatus.REINSTALLED else "Installed"
    message = f"{verb} kernel '{entry.id}' {version_label} at {entry.path}"
    user_output(click.style("✓ ", fg="green") + message)
    if ctx.manifest_store.load().default_kernel == entry.id:
        user_output(f"Default kernel: {entry.id}")
