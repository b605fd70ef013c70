"""Configuration utilities for the vaultdrive CLI.

This module provides shared configuration functions used across CLI commands.
Settings live in ~/.vaultdrive/config.json; the refresh token is kept in the
OS keyring when one is available.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import keyring
from keyring.errors import KeyringError

from vaultdrive.core.config import DriveConfig

logger = logging.getLogger(__name__)

KEYRING_SERVICE = "vaultdrive"
KEYRING_USERNAME = "refresh_token"


def get_config_dir() -> Path:
    """Get the configuration directory for vaultdrive.

    Returns:
        Path to ~/.vaultdrive or equivalent.
    """
    return Path.home() / ".vaultdrive"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_vault_folder() -> Path:
    """Get the vault folder path.

    Returns:
        Path to the vault (configured or default ~/Vault).
    """
    config = load_config()
    if config.get("vault_path"):
        return Path(config["vault_path"]).expanduser().resolve()
    return Path.home() / "Vault"


def load_refresh_token(config: dict[str, Any] | None = None) -> str:
    """Load the stored refresh token.

    The keyring is checked first, then the config file.
    """
    if config is None:
        config = load_config()
    try:
        token = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except KeyringError as e:
        logger.debug("Keyring unavailable: %s", e)
        token = None
    return token or str(config.get("refresh_token", ""))


def store_refresh_token(token: str) -> None:
    """Persist a refresh token.

    Stored in the keyring when possible, otherwise in the config file.
    """
    config = load_config()
    try:
        keyring.set_password(KEYRING_SERVICE, KEYRING_USERNAME, token)
    except KeyringError as e:
        logger.warning("Keyring unavailable (%s), storing refresh token in config file", e)
        config["refresh_token"] = token
    else:
        config.pop("refresh_token", None)
    save_config(config)


def clear_refresh_token() -> None:
    """Remove the stored refresh token from keyring and config file."""
    try:
        keyring.delete_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except KeyringError as e:
        logger.debug("No keyring entry removed: %s", e)
    config = load_config()
    if config.pop("refresh_token", None) is not None:
        save_config(config)


def load_drive_config() -> DriveConfig:
    """Build a DriveConfig from the config file and the stored refresh token."""
    config = load_config()
    drive_config = DriveConfig.from_dict(config)
    drive_config.refresh_token = load_refresh_token(config)
    return drive_config


def save_drive_config(drive_config: DriveConfig) -> None:
    """Save settings, preserving a refresh token kept in the config file."""
    config = load_config()
    updated = drive_config.to_dict()
    if "refresh_token" in config:
        updated["refresh_token"] = config["refresh_token"]
    save_config(updated)
