"""Command-line interface for vaultdrive.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Configure the vault, API credentials and storage location
- auth url / code / status / logout: Authorize access to the drive
- config show / set: View or change settings
- sync: Synchronize the vault with the drive (--watch to keep running)
"""

from __future__ import annotations

import logging

import click

from vaultdrive.client.cli.auth import auth
from vaultdrive.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_vault_folder,
    load_config,
    load_drive_config,
    save_config,
)
from vaultdrive.client.cli.initialize import init
from vaultdrive.client.cli.settings import config_group
from vaultdrive.client.cli.sync import sync


@click.group()
@click.version_option(package_name="vaultdrive")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """vaultdrive - keep a local vault in sync with your drive."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("vaultdrive").setLevel(logging.DEBUG if verbose else logging.INFO)


# Setup commands
cli.add_command(init)
cli.add_command(auth)
cli.add_command(config_group)

# Sync commands
cli.add_command(sync)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_vault_folder",
    "load_config",
    "load_drive_config",
    "save_config",
]
