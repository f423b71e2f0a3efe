"""Run command: dispatch a compose to the selected kernel."""

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.operations.dispatch import select_kernel
from runkit.output import machine_output, user_output


def _raw_bytes(text: str) -> bytes:
    """Re-encode kernel output, restoring bytes that were not valid UTF-8."""
    try:
        return text.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError:
        return text.encode("utf-8", errors="backslashreplace")


@click.command(
    "run",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.option("--kernel", "kernel_id", help="Kernel to run (default: the configured default).")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
@cli_error_boundary
def run_cmd(ctx: RunkitContext, kernel_id: str | None, args: tuple[str, ...]) -> None:
    """Run a compose with the selected kernel.

    The first argument names the compose; KEY=VALUE arguments are passed to
    the kernel as one JSON object. Prefix a value with "json:" to require
    it to parse as JSON. Other arguments are forwarded unchanged.

    Examples:

      runkit run demo.yaml text='{"success":true}'

      runkit run --kernel java -- --compose demo.yaml count=3
    """
    entry = select_kernel(ctx.manifest_store.load(), kernel_id)
    entry = ctx.auto_updater().maybe_update_kernel(entry)

    result = ctx.dispatcher().dispatch(entry, list(args))
    if result.output.stderr:
        user_output(_raw_bytes(result.output.stderr), nl=False)
    if result.output.stdout:
        machine_output(_raw_bytes(result.output.stdout), nl=False)
    raise SystemExit(result.exit_code)
