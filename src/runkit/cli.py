import logging

import click

from runkit.commands.cache_cmd import cache_group
from runkit.commands.help_cmd import help_cmd
from runkit.commands.kernel import kernel_group
from runkit.commands.run_cmd import run_cmd
from runkit.commands.self_update_cmd import self_update_cmd
from runkit.commands.version_cmd import version_cmd
from runkit.context import RunkitContext, create_context
from runkit.error_boundary import cli_error_boundary
from runkit.errors import RunkitError
from runkit.output import user_warning
from runkit.version import __version__

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])

# Commands that never trigger the tool update check
NO_AUTO_UPDATE_COMMANDS = frozenset({"help", "version", "self-update"})


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG,
        format="[DEBUG %(name)s:%(lineno)d] %(message)s",
    )


def _run_tool_update_check(ctx: RunkitContext) -> None:
    try:
        ctx.auto_updater().maybe_update_tool()
    except (RunkitError, OSError) as e:
        user_warning(f"Tool update check failed: {e}")


@click.group(invoke_without_command=True, context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="runkit")
@click.option("--debug", is_flag=True, help="Show debug logging on stderr.")
@click.pass_context
@cli_error_boundary
def cli(click_ctx: click.Context, debug: bool) -> None:
    """Install, update and run runtime kernels."""
    # Only create context if not already provided (e.g., by tests)
    if click_ctx.obj is None:
        click_ctx.obj = create_context(debug=debug)

    ctx: RunkitContext = click_ctx.obj
    if ctx.debug:
        _configure_logging()

    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        return

    if click_ctx.invoked_subcommand not in NO_AUTO_UPDATE_COMMANDS:
        _run_tool_update_check(ctx)


cli.add_command(cache_group)
cli.add_command(help_cmd)
cli.add_command(kernel_group)
cli.add_command(run_cmd)
cli.add_command(self_update_cmd)
cli.add_command(version_cmd)


def main() -> None:
    """Entry point with error boundary."""
    cli_error_boundary(cli)()


if __name__ == "__main__":
    main()
