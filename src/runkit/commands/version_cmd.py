"""Version command."""

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.output import machine_output, user_output
from runkit.version import __version__


@click.command("version")
@click.pass_obj
@cli_error_boundary
def version_cmd(ctx: RunkitContext) -> None:
    """Print the runkit version."""
    machine_output(__version__)

    cached = ctx.update_cache.read_version_cache()
    if cached is not None and cached.version != __version__ and not ctx.settings.source_checkout:
        user_output(f"runkit {cached.version} is available. Run 'runkit self-update'.")
