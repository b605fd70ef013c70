"""Initialization command for the vaultdrive CLI.

Commands:
- init: Configure the vault folder, API credentials and storage location
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from vaultdrive.client.cli.config import (
    get_config_file,
    get_vault_folder,
    load_config,
    save_drive_config,
)
from vaultdrive.core.config import DEFAULT_FOLDER_NAME, ConfigError, DriveConfig


@click.command()
@click.option("--vault", "vault_path", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("--client-id", default=None, help="OAuth client ID of your Drive API app.")
@click.option("--client-secret", default=None, help="OAuth client secret.")
@click.option(
    "--storage",
    type=click.Choice(["hidden", "visible"]),
    default=None,
    help="Hidden app-data space or a visible folder.",
)
@click.option("--folder", default=None, help="Folder name for visible storage.")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration.")
def init(
    vault_path: Path | None,
    client_id: str | None,
    client_secret: str | None,
    storage: str | None,
    folder: str | None,
    force: bool,
) -> None:
    """Configure vaultdrive for a vault.

    Prompts for any value not given as an option.
    """
    if load_config() and not force:
        click.echo(
            f"Error: vaultdrive is already configured ({get_config_file()}). "
            "Use --force to reconfigure.",
            err=True,
        )
        sys.exit(1)

    if vault_path is None:
        vault_path = click.prompt(
            "Vault folder",
            default=str(get_vault_folder()),
            type=click.Path(file_okay=False, path_type=Path),
        )
    if client_id is None:
        client_id = click.prompt("Client ID")
    if client_secret is None:
        client_secret = click.prompt("Client secret", hide_input=True)
    if storage is None:
        storage = click.prompt(
            "Storage location",
            type=click.Choice(["hidden", "visible"]),
            default="hidden",
        )
    if storage == "visible" and folder is None:
        folder = click.prompt("Folder name", default=DEFAULT_FOLDER_NAME)

    try:
        drive_config = DriveConfig(
            client_id=client_id,
            client_secret=client_secret,
            storage_location=storage,
            visible_folder_name=folder or DEFAULT_FOLDER_NAME,
            vault_path=Path(vault_path).expanduser().resolve(),
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    assert drive_config.vault_path is not None
    drive_config.vault_path.mkdir(parents=True, exist_ok=True)
    save_drive_config(drive_config)

    click.echo(f"Configuration saved to {get_config_file()}")
    click.echo(f"Vault: {drive_config.vault_path}")
    click.echo("Next: run 'vaultdrive auth url' to authorize access to your drive.")
