"""Sync command for the vaultdrive CLI.

Commands:
- sync: Synchronize the vault with the drive
"""

from __future__ import annotations

import sys
import time

import click

from vaultdrive.client.api import RemoteError
from vaultdrive.client.auth import AuthError
from vaultdrive.client.cli.config import load_drive_config, store_refresh_token
from vaultdrive.client.sync import (
    NamespaceError,
    Reconciler,
    SyncResult,
    SyncScheduler,
    SyncSession,
    VaultWatcher,
)
from vaultdrive.client.vault import VaultFileSystem


def print_summary(result: SyncResult) -> None:
    """Print the outcome of a sync pass."""
    click.echo(
        f"Vault sync completed: {len(result.created)} created, "
        f"{len(result.updated)} updated, {len(result.downloaded)} downloaded"
    )
    if result.errors:
        click.echo(f"{len(result.errors)} file(s) failed:", err=True)
        for error in result.errors:
            click.echo(f"  {error}", err=True)


def report_auth_error(error: Exception) -> None:
    """Tell the user how to recover from an authentication failure."""
    click.echo(f"Authentication failed: {error}", err=True)
    click.echo("Run 'vaultdrive auth url' to authorize again.", err=True)


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep running: sync on save and on a timer.")
def sync(watch: bool) -> None:
    """Synchronize the vault with the drive.

    Downloads files missing locally, then uploads every local file.
    With --watch, local changes are pushed as they happen (sync_on_save)
    and full passes run periodically (auto_sync).
    """
    drive_config = load_drive_config()

    if drive_config.vault_path is None:
        click.echo("Error: No vault configured. Run 'vaultdrive init' first.", err=True)
        sys.exit(1)
    if not drive_config.is_authorized:
        click.echo("Please authenticate with the drive first: run 'vaultdrive auth url'.", err=True)
        sys.exit(1)
    if not watch and not drive_config.manual_sync:
        click.echo("Error: Manual sync is disabled (config set manual_sync true).", err=True)
        sys.exit(1)
    if watch and not (drive_config.sync_on_save or drive_config.auto_sync):
        click.echo(
            "Error: Nothing to watch. Enable sync_on_save or auto_sync first.",
            err=True,
        )
        sys.exit(1)

    vault = VaultFileSystem(drive_config.vault_path)
    session = SyncSession.from_config(drive_config, on_refresh_token=store_refresh_token)
    scheduler = SyncScheduler(
        session,
        Reconciler(session, vault),
        interval_ms=drive_config.sync_interval_ms,
        on_result=print_summary if watch else None,
        on_auth_error=report_auth_error if watch else None,
    )

    try:
        if drive_config.manual_sync:
            click.echo("Starting vault sync...")
            result = scheduler.trigger_manual()
            if result is not None and not watch:
                print_summary(result)
                if result.errors:
                    sys.exit(2)

        if watch:
            _watch(scheduler, vault, drive_config.sync_on_save, drive_config.auto_sync)
    except AuthError as e:
        report_auth_error(e)
        sys.exit(1)
    except (NamespaceError, RemoteError) as e:
        click.echo(f"Sync failed: {e}", err=True)
        sys.exit(1)
    finally:
        scheduler.shutdown()
        session.close()


def _watch(
    scheduler: SyncScheduler,
    vault: VaultFileSystem,
    sync_on_save: bool,
    auto_sync: bool,
) -> None:
    """Run the watcher and/or the timer until interrupted."""
    watcher: VaultWatcher | None = None
    if sync_on_save:
        watcher = VaultWatcher(vault.root, scheduler, ignore_patterns=vault.ignore_patterns)
        watcher.start()
    if auto_sync:
        scheduler.start_auto_sync()

    click.echo("Watching for changes. Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        if watcher is not None:
            watcher.stop()
        scheduler.stop_auto_sync()
