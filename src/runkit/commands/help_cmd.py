"""Help command."""

import click

from runkit.output import machine_output


@click.command("help")
@click.pass_context
def help_cmd(click_ctx: click.Context) -> None:
    """Show this message and exit."""
    parent = click_ctx.parent
    assert parent is not None
    machine_output(parent.get_help())
