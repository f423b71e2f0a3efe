"""Error boundary handling for CLI commands.

This module provides decorators to catch well-known exceptions at CLI entry points
and display clean error messages without stack traces.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any

import click

from runkit.errors import InstallError, RunkitError
from runkit.output import user_output

logger = logging.getLogger(__name__)


def _fail(e: Exception) -> None:
    logger.debug("Exception details:", exc_info=True)
    if isinstance(e, InstallError):
        logger.debug("Install failed during stage: %s", e.stage.value)
    user_output(click.style("Error: ", fg="red") + str(e))
    raise SystemExit(1) from None


def cli_error_boundary[T: Callable[..., Any]](func: T) -> T:
    """Decorator that catches well-known exceptions and displays clean error messages.

    Catches:
        - RunkitError: every error the tool detects itself
        - FileNotFoundError: Missing files/directories
        - PermissionError: Permission denied errors
        - ValueError: Invalid input or configuration

    The traceback is still available with --debug. All other exceptions bubble
    up normally with full stack traces.

    Example:
        @click.command()
        @cli_error_boundary
        def my_command():
            ...
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except RunkitError as e:
            _fail(e)
        except FileNotFoundError as e:
            _fail(e)
        except PermissionError as e:
            _fail(e)
        except ValueError as e:
            _fail(e)

    return wrapper  # type: ignore[return-value]
