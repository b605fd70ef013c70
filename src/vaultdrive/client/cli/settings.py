"""Settings commands for the vaultdrive CLI.

Commands:
- config show: Print the current settings
- config set: Change one setting
"""

from __future__ import annotations

import sys

import click

from vaultdrive.client.cli.config import get_config_file, load_drive_config, save_drive_config
from vaultdrive.core.config import ConfigError, DriveConfig

# Settings editable with 'config set', and how to parse them
SETTABLE: dict[str, type] = {
    "storage_location": str,
    "visible_folder_name": str,
    "sync_interval_minutes": int,
    "auto_sync": bool,
    "sync_on_save": bool,
    "manual_sync": bool,
    "timeout": float,
    "vault_path": str,
    "client_id": str,
    "client_secret": str,
}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"Expected a boolean, got '{value}'")


@click.group("config")
def config_group() -> None:
    """View or change settings."""


@config_group.command("show")
def config_show() -> None:
    """Print the current settings."""
    drive_config = load_drive_config()

    click.echo(f"Config file:       {get_config_file()}")
    click.echo(f"Vault:             {drive_config.vault_path or '(not set)'}")
    click.echo(f"Storage location:  {drive_config.storage_location.name.lower()}")
    click.echo(f"Visible folder:    {drive_config.visible_folder_name}")
    click.echo(f"Sync interval:     {drive_config.sync_interval_ms // 60000} min")
    click.echo(f"Auto sync:         {drive_config.auto_sync}")
    click.echo(f"Sync on save:      {drive_config.sync_on_save}")
    click.echo(f"Manual sync:       {drive_config.manual_sync}")
    click.echo(f"Client ID:         {drive_config.client_id or '(not set)'}")
    click.echo(f"Authorized:        {drive_config.is_authorized}")


@config_group.command("set")
@click.argument("key", type=click.Choice(sorted(SETTABLE)))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Set KEY to VALUE."""
    current = load_drive_config().to_dict()

    try:
        kind = SETTABLE[key]
        if key == "sync_interval_minutes":
            current["sync_interval_ms"] = int(value) * 60000
        elif kind is bool:
            current[key] = _parse_bool(value)
        else:
            current[key] = kind(value)
        updated = DriveConfig.from_dict(current)
    except (ConfigError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    save_drive_config(updated)
    click.echo(f"{key} updated.")
