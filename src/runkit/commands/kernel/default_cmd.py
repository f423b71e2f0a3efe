"""Default command for selecting the kernel used by 'runkit run'."""

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.errors import NoDefaultKernelError
from runkit.output import machine_output, user_output


@click.command("default")
@click.argument("kernel_id", required=False)
@click.pass_obj
@cli_error_boundary
def default_cmd(ctx: RunkitContext, kernel_id: str | None) -> None:
    """Set the default kernel, or print it when KERNEL_ID is omitted."""
    if kernel_id is None:
        current = ctx.manifest_store.load().default_kernel
        if current is None:
            raise NoDefaultKernelError()
        machine_output(current)
        return

    ctx.manifest_store.set_default(kernel_id)
    user_output(click.style("✓ ", fg="green") + f"Default kernel set to '{kernel_id}'")
