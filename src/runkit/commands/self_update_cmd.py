"""Self-update command."""

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.errors import RunkitError
from runkit.operations.auto_update import ToolUpdateStatus
from runkit.output import user_output
from runkit.version import __version__


@click.command("self-update")
@click.option("--force", is_flag=True, help="Reinstall even if already up to date.")
@click.pass_obj
@cli_error_boundary
def self_update_cmd(ctx: RunkitContext, force: bool) -> None:
    """Update runkit to the latest published version.

    Runs immediately, regardless of the auto-update interval or
    RUNKIT_NO_AUTO_UPDATE.
    """
    if ctx.settings.source_checkout:
        raise RunkitError("runkit is running from a source checkout; update it with git instead")

    outcome = ctx.auto_updater().maybe_update_tool(force=True, reinstall=force)
    if outcome.status == ToolUpdateStatus.UP_TO_DATE:
        user_output(f"runkit {__version__} is up to date")
    elif outcome.status == ToolUpdateStatus.FAILED:
        raise SystemExit(1)
