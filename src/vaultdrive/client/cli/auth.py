"""Authorization commands for the vaultdrive CLI.

Commands:
- auth url: Print the consent URL
- auth code: Exchange an authorization code for tokens
- auth status: Check the stored credentials
- auth logout: Forget the stored refresh token
"""

from __future__ import annotations

import sys

import click

from vaultdrive.client.auth import (
    AuthError,
    Credentials,
    RemoteError,
    TokenStore,
    build_auth_url,
)
from vaultdrive.client.cli.config import (
    clear_refresh_token,
    load_drive_config,
    store_refresh_token,
)


@click.group()
def auth() -> None:
    """Authorize access to the drive."""


def _require_client() -> tuple[str, str, float]:
    drive_config = load_drive_config()
    if not drive_config.has_client:
        click.echo("Error: No API credentials configured. Run 'vaultdrive init' first.", err=True)
        sys.exit(1)
    return drive_config.client_id, drive_config.client_secret, drive_config.timeout


@auth.command("url")
@click.option("--open", "open_browser", is_flag=True, help="Open the URL in a browser.")
def auth_url(open_browser: bool) -> None:
    """Print the URL to authorize vaultdrive."""
    client_id, _, _ = _require_client()
    url = build_auth_url(client_id)

    click.echo("Open this URL in your browser and authorize access:\n")
    click.echo(url)
    click.echo("\nThen run: vaultdrive auth code <AUTHORIZATION_CODE>")
    if open_browser:
        click.launch(url)


@auth.command("code")
@click.argument("code")
def auth_code(code: str) -> None:
    """Exchange an authorization CODE for tokens."""
    client_id, client_secret, timeout = _require_client()

    with TokenStore(
        Credentials(client_id=client_id, client_secret=client_secret),
        timeout=timeout,
        on_refresh_token=store_refresh_token,
    ) as tokens:
        try:
            tokens.exchange_code(code)
        except AuthError as e:
            click.echo(f"Authentication failed: {e}", err=True)
            click.echo("Please check the authorization code and try again.", err=True)
            sys.exit(1)
        except RemoteError as e:
            click.echo(f"Could not reach the token endpoint: {e}", err=True)
            sys.exit(1)

        if not tokens.has_refresh_token:
            click.echo(
                "Error: No refresh token received. Revoke access and authorize again.",
                err=True,
            )
            sys.exit(1)

    click.echo("Drive authentication successful!")


@auth.command("status")
def auth_status() -> None:
    """Check whether the stored credentials work."""
    drive_config = load_drive_config()
    if not drive_config.is_authorized:
        click.echo("Not authorized. Run 'vaultdrive auth url' to start.")
        sys.exit(1)

    with TokenStore(
        Credentials(
            client_id=drive_config.client_id,
            client_secret=drive_config.client_secret,
            refresh_token=drive_config.refresh_token,
        ),
        timeout=drive_config.timeout,
    ) as tokens:
        try:
            tokens.refresh()
        except AuthError as e:
            click.echo(f"Stored credentials rejected: {e}", err=True)
            click.echo("Run 'vaultdrive auth url' to authorize again.", err=True)
            sys.exit(1)
        except RemoteError as e:
            click.echo(f"Could not reach the token endpoint: {e}", err=True)
            sys.exit(1)

    click.echo("Authorized: access token refreshed successfully.")


@auth.command("logout")
def auth_logout() -> None:
    """Forget the stored refresh token."""
    clear_refresh_token()
    click.echo("Stored credentials removed.")
