"""NodeVault CLI - versioned node backups from the command line

Command groups are organized into separate modules:
- vault.py: init, backup, restore, list, check, sign-out
- config.py: config set, get, show
- common.py: shared utilities
"""
import logging
from pathlib import Path

import click

from .. import __version__
from ..config import get_base_path
from .common import VERBOSITY_QUIET, VERBOSITY_NORMAL, VERBOSITY_VERBOSE
from .config import config_group
from .vault import vault_group


@click.group()
@click.version_option(version=__version__, prog_name="nodevault")
@click.option('--data-dir', type=click.Path(), default=None, envvar='NODEVAULT_BASE_PATH',
              help='Base directory for NodeVault data (default: ~/.nodevault)')
@click.option('--verbose', '-v', is_flag=True, default=False,
              help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, default=False,
              help='Suppress non-essential output')
@click.pass_context
def cli(ctx, data_dir, verbose, quiet):
    """NodeVault - versioned, conflict-aware node backups

    \b
    Key Commands:
        init              Create config.yaml
        backup            Upload a new backup version
        restore           Download the active backup
        list              List nodes with backups
        check             Check backup ID ownership
        sign-out          Revoke the store session
        config            Configuration management

    \b
    Examples:
        nodevault init
        nodevault check node1 abc && nodevault backup node1 abc channel.db
        nodevault restore node1 abc
    """
    ctx.ensure_object(dict)

    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive")

    if quiet:
        ctx.obj['verbosity'] = VERBOSITY_QUIET
        log_level = logging.ERROR
    elif verbose:
        ctx.obj['verbosity'] = VERBOSITY_VERBOSE
        log_level = logging.DEBUG
    else:
        ctx.obj['verbosity'] = VERBOSITY_NORMAL
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ctx.obj['data_dir'] = Path(data_dir) if data_dir else None


for command_name in ('init', 'backup', 'restore', 'list', 'check', 'sign-out'):
    cli.add_command(vault_group.commands[command_name])

cli.add_command(config_group, name='config')


def main():
    """Entry point for the CLI."""
    cli()


__all__ = [
    '__version__',
    'cli',
    'main',
    'get_base_path',
]
