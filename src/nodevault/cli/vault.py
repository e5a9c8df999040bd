"""Backup and restore commands for NodeVault CLI."""
import json
import sys
from typing import Tuple

import click

from ..config import CONFIG_FILE_NAME, DEFAULT_CONFIG_TEMPLATE, get_base_path
from .common import (
    EXIT_CONFLICT,
    echo_normal,
    echo_quiet,
    echo_verbose,
    run_operation,
)

silent_option = click.option(
    '--silent', is_flag=True, default=False,
    help='Only use cached credentials; never prompt for sign-in',
)


@click.group()
def vault_group():
    """Backup and restore commands."""
    pass


@vault_group.command("init")
@click.pass_context
def init(ctx) -> None:
    """Initialize the NodeVault data directory.

    Creates the base directory and a config.yaml using the local store.
    """
    base_path = get_base_path(ctx.obj.get('data_dir'))
    verbosity = ctx.obj.get('verbosity', 1)

    echo_normal(click.style("Initializing NodeVault...", fg="cyan", bold=True), verbosity)
    base_path.mkdir(parents=True, exist_ok=True)
    echo_normal(f" ✓ Created directory: {base_path}", verbosity)

    config_path = base_path / CONFIG_FILE_NAME
    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG_TEMPLATE.format(base_path=base_path))
        echo_normal(f" ✓ Created config: {config_path}", verbosity)
    else:
        echo_normal(f" ⚠ Config exists: {config_path}", verbosity)


@vault_group.command("backup")
@click.argument('node_id')
@click.argument('backup_id')
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@silent_option
@click.pass_context
def backup(ctx, node_id: str, backup_id: str, paths: Tuple[str, ...], silent: bool) -> None:
    """Upload PATHS as the new backup of NODE_ID owned by BACKUP_ID.

    Examples:
        nodevault backup node1 abc channel.db wallet.db
    """
    verbosity = ctx.obj.get('verbosity', 1)
    echo_verbose(f"Backing up {len(paths)} files for {node_id}", verbosity)

    async def operation(coordinator):
        return await coordinator.backup(node_id, backup_id, list(paths), silent=silent)

    run_operation(ctx, operation)
    echo_normal(click.style(f"✓ Backed up {len(paths)} files for {node_id}", fg="green"), verbosity)


@vault_group.command("restore")
@click.argument('node_id')
@click.argument('backup_id')
@silent_option
@click.pass_context
def restore(ctx, node_id: str, backup_id: str, silent: bool) -> None:
    """Claim NODE_ID for BACKUP_ID and download its active backup."""
    verbosity = ctx.obj.get('verbosity', 1)

    async def operation(coordinator):
        return await coordinator.restore(node_id, backup_id, silent=silent)

    paths = run_operation(ctx, operation)
    echo_normal(click.style(f"✓ Restored {len(paths)} files for {node_id}", fg="green"), verbosity)
    for path in paths:
        echo_quiet(path, verbosity)


@vault_group.command("list")
@click.option('--json', 'json_output', is_flag=True, help='Output as JSON')
@silent_option
@click.pass_context
def list_backups(ctx, json_output: bool, silent: bool) -> None:
    """List nodes that have a backup folder."""
    verbosity = ctx.obj.get('verbosity', 1)

    async def operation(coordinator):
        return await coordinator.list_available(silent=silent)

    folders = run_operation(ctx, operation)
    if json_output:
        echo_quiet(json.dumps(folders, indent=2, sort_keys=True), verbosity)
        return
    if not folders:
        echo_normal("No backups found.", verbosity)
        return
    for node_id in sorted(folders):
        echo_quiet(f"{node_id}\t{folders[node_id]}", verbosity)


@vault_group.command("check")
@click.argument('node_id')
@click.argument('backup_id')
@silent_option
@click.pass_context
def check(ctx, node_id: str, backup_id: str, silent: bool) -> None:
    """Check whether BACKUP_ID may back up NODE_ID without a conflict."""
    verbosity = ctx.obj.get('verbosity', 1)

    async def operation(coordinator):
        return await coordinator.check_safe(node_id, backup_id, silent=silent)

    result = run_operation(ctx, operation)
    if result.is_conflict:
        click.echo(click.style(
            f"Conflict: {node_id} is owned by backup ID '{result.existing}'", fg="red",
        ), err=True)
        sys.exit(EXIT_CONFLICT)
    echo_normal(click.style(f"✓ Safe to back up {node_id} as {backup_id}", fg="green"), verbosity)


@vault_group.command("sign-out")
@click.pass_context
def sign_out(ctx) -> None:
    """Revoke the store session."""
    verbosity = ctx.obj.get('verbosity', 1)

    async def operation(coordinator):
        return await coordinator.sign_out()

    run_operation(ctx, operation)
    echo_normal(click.style("✓ Signed out", fg="green"), verbosity)
