"""Cache commands."""

import shutil

import click

from runkit.context import RunkitContext
from runkit.error_boundary import cli_error_boundary
from runkit.output import user_output


@click.group("cache")
def cache_group() -> None:
    """Manage downloaded assets and cached release manifests."""


@cache_group.command("clean")
@click.pass_obj
@cli_error_boundary
def clean_cmd(ctx: RunkitContext) -> None:
    """Delete the cache directory."""
    cache_dir = ctx.settings.cache_dir
    if not cache_dir.exists():
        user_output(f"Cache is already empty ({cache_dir})")
        return

    files = [p for p in cache_dir.rglob("*") if p.is_file()]
    total_bytes = sum(p.stat().st_size for p in files)
    shutil.rmtree(cache_dir)
    user_output(
        click.style("✓ ", fg="green")
        + f"Removed {len(files)} cached file(s), {total_bytes} bytes, from {cache_dir}"
    )
