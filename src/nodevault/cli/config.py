"""Configuration management commands for NodeVault CLI."""
import sys

import click
import yaml

from ..config import CONFIG_FILE_NAME, VaultConfig, get_base_path
from .common import echo_quiet, echo_normal


def _config_path(ctx):
    base_path = get_base_path(ctx.obj.get('data_dir'))
    config_path = base_path / CONFIG_FILE_NAME
    if not config_path.exists():
        verbosity = ctx.obj.get('verbosity', 1)
        echo_quiet(click.style("Error: NodeVault not initialized. Run 'nodevault init' first.", fg="red"), verbosity)
        sys.exit(1)
    return base_path, config_path


def _parse_value(value: str):
    """Interpret a command-line value the way YAML would (numbers, booleans, null)."""
    parsed = yaml.safe_load(value)
    if isinstance(parsed, (dict, list)):
        return value
    return parsed


@click.group()
def config_group():
    """Configuration management commands."""
    pass


@config_group.command('set')
@click.argument('key')
@click.argument('value')
@click.pass_context
def config_set(ctx, key: str, value: str) -> None:
    """Set a configuration value.

    Examples:
        nodevault config set store.backend s3
        nodevault config set store.bucket my-bucket
        nodevault config set sync.interval_seconds 30
    """
    base_path, config_path = _config_path(ctx)
    verbosity = ctx.obj.get('verbosity', 1)

    config_data = yaml.safe_load(config_path.read_text()) or {}

    # Parse nested keys (e.g., 'store.bucket')
    keys = key.split('.')
    current = config_data
    for k in keys[:-1]:
        if not isinstance(current.get(k), dict):
            current[k] = {}
        current = current[k]
    current[keys[-1]] = _parse_value(value)

    try:
        VaultConfig.from_dict(config_data, base_path=base_path)
    except ValueError as e:
        echo_quiet(click.style(f"Error: {e}", fg="red"), verbosity)
        sys.exit(1)

    config_path.write_text(yaml.dump(config_data, default_flow_style=False))
    echo_normal(click.style(f"✓ Set {key} = {value}", fg="green"), verbosity)


@config_group.command('get')
@click.argument('key')
@click.pass_context
def config_get(ctx, key: str) -> None:
    """Get a configuration value.

    Examples:
        nodevault config get store.backend
    """
    _, config_path = _config_path(ctx)
    verbosity = ctx.obj.get('verbosity', 1)

    config_data = yaml.safe_load(config_path.read_text()) or {}
    current = config_data
    for k in key.split('.'):
        if not isinstance(current, dict) or k not in current:
            echo_quiet(click.style(f"Key '{key}' not found", fg="yellow"), verbosity)
            sys.exit(1)
        current = current[k]

    echo_quiet(str(current), verbosity)


@config_group.command('show')
@click.pass_context
def config_show(ctx) -> None:
    """Display full configuration."""
    _, config_path = _config_path(ctx)
    verbosity = ctx.obj.get('verbosity', 1)

    echo_normal(click.style("Current configuration:", fg="cyan", bold=True), verbosity)
    echo_quiet(config_path.read_text(), verbosity)
