"""Output helpers with clear intent.

user_output() writes diagnostics for people to stderr so that stdout stays
reserved for machine_output(), which carries data other programs consume
(the projected kernel result, --json listings).
"""

from typing import Any

import click


def user_output(message: Any = "", nl: bool = True) -> None:
    """Write a human-facing message to stderr."""
    click.echo(message, err=True, nl=nl)


def machine_output(message: Any = "", nl: bool = True) -> None:
    """Write machine-readable output to stdout."""
    click.echo(message, nl=nl)


def user_warning(message: str) -> None:
    """Write a yellow-prefixed warning to stderr."""
    user_output(click.style("Warning: ", fg="yellow") + message)
