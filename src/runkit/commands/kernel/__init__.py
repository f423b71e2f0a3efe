"""Kernel management commands."""

import click

from runkit.commands.kernel.default_cmd import default_cmd
from runkit.commands.kernel.install_cmd import install_cmd
from runkit.commands.kernel.list_cmd import list_cmd
from runkit.commands.kernel.remove_cmd import remove_cmd


@click.group("kernel")
def kernel_group() -> None:
    """Install, list, remove and select kernels."""


kernel_group.add_command(install_cmd)
kernel_group.add_command(list_cmd)
kernel_group.add_command(list_cmd, name="ls")
kernel_group.add_command(remove_cmd)
kernel_group.add_command(remove_cmd, name="rm")
kernel_group.add_command(default_cmd)
