"""Remove command for uninstalling kernels."""

from pathlib import Path

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.operations.packaging import remove_runtime_slots
from runkit.output import user_output


@click.command("remove")
@click.argument("kernel_id")
@click.pass_obj
@cli_error_boundary
def remove_cmd(ctx: RunkitContext, kernel_id: str) -> None:
    """Remove KERNEL_ID from the manifest and delete its binary and runtime files."""
    entry = ctx.manifest_store.remove(kernel_id)

    path = Path(entry.path)
    if path.parent == ctx.settings.bin_dir and path.exists():
        path.unlink()
    remove_runtime_slots(ctx.settings.runtimes_dir, kernel_id)

    user_output(click.style("✓ ", fg="green") + f"Removed kernel '{kernel_id}'")
    default = ctx.manifest_store.load().default_kernel
    if default is None:
        user_output("No default kernel configured")
    else:
        user_output(f"Default kernel: {default}")
