"""Shared utilities for NodeVault CLI commands."""
import asyncio
import sys
from typing import Any, Awaitable, Callable

import click

from ..config import VaultConfig, load_config, get_base_path
from ..coordinator import BackupCoordinator
from ..errors import BackupConflictError, VaultError
from ..store import StoreError

# Verbosity levels
VERBOSITY_QUIET = 0
VERBOSITY_NORMAL = 1
VERBOSITY_VERBOSE = 2

EXIT_FAILURE = 1
EXIT_CONFLICT = 2


def should_print(verbosity: int, message_level: int) -> bool:
    """Determine if a message should be printed based on verbosity settings."""
    return verbosity >= message_level


def echo_verbose(message: str, verbosity: int) -> None:
    """Print a message only in verbose mode."""
    if should_print(verbosity, VERBOSITY_VERBOSE):
        click.echo(message, err=False)


def echo_normal(message: str, verbosity: int) -> None:
    """Print a message in normal and verbose modes."""
    if should_print(verbosity, VERBOSITY_NORMAL):
        click.echo(message, err=False)


def echo_quiet(message: str, verbosity: int) -> None:
    """Print a critical message that should always be shown (even in quiet mode)."""
    click.echo(message, err=False)


def load_ctx_config(ctx: click.Context) -> VaultConfig:
    """Load the config for the base path selected on the command line."""
    try:
        return load_config(get_base_path(ctx.obj.get('data_dir')))
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(EXIT_FAILURE)


def run_operation(ctx: click.Context, operation: Callable[[BackupCoordinator], Awaitable[Any]]) -> Any:
    """
    Build a coordinator from config and run one operation to completion.

    Typed failures are printed in red; conflicts exit with status 2,
    everything else with status 1.
    """
    config = load_ctx_config(ctx)
    try:
        coordinator = BackupCoordinator.from_config(config)
    except (ValueError, ImportError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(EXIT_FAILURE)

    try:
        return asyncio.run(operation(coordinator))
    except BackupConflictError as e:
        click.echo(click.style(f"Conflict: {e}", fg="red"), err=True)
        sys.exit(EXIT_CONFLICT)
    except (VaultError, StoreError, ValueError) as e:
        code = getattr(e, "code", type(e).__name__)
        click.echo(click.style(f"Error [{code}]: {e}", fg="red"), err=True)
        sys.exit(EXIT_FAILURE)
