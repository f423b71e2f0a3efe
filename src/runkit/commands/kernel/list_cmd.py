"""List command for showing installed kernels."""

import json

import click
from rich.console import Console
from rich.table import Table

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.output import machine_output, user_output


@click.command("list")
@click.option("--json", "as_json", is_flag=True, help="Print the manifest as JSON.")
@click.pass_obj
@cli_error_boundary
def list_cmd(ctx: RunkitContext, as_json: bool) -> None:
    """List installed kernels."""
    manifest = ctx.manifest_store.load()

    if as_json:
        machine_output(json.dumps(manifest.to_json_dict(), indent=2))
        return

    if not manifest.installed_kernels:
        user_output("No kernels installed. Run 'runkit kernel install <id>'.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("", no_wrap=True, width=1)
    table.add_column("id", style="cyan", no_wrap=True)
    table.add_column("version", no_wrap=True)
    table.add_column("path", no_wrap=True)

    for entry in manifest.installed_kernels:
        marker = "*" if entry.id == manifest.default_kernel else ""
        table.add_row(marker, entry.id, entry.version or "-", entry.path)

    console = Console(stderr=True, width=200, force_terminal=True)
    console.print(table)
