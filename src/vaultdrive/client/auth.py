"""OAuth2 token management for the Drive API.

This module provides:
- Credentials: client credentials plus refresh/access tokens
- TokenStore: authorization-code exchange and serialized token refresh
- build_auth_url: consent URL for the out-of-band authorization flow
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

logger = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
SCOPES = [
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive.appdata",
]


class DriveError(Exception):
    """Base exception for drive and authentication errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthError(DriveError):
    """Credentials are missing, invalid or were rejected."""


class RemoteError(DriveError):
    """The drive returned a non-2xx response or could not be reached.

    ``status_code`` is None for transport failures (timeouts, DNS, refused
    connections), including failures to reach the token endpoint.
    """


@dataclass
class Credentials:
    """OAuth credentials for one drive account.

    The access token is transient and never persisted; the refresh token
    is durable.
    """

    client_id: str
    client_secret: str
    refresh_token: str = ""
    access_token: str | None = None


def build_auth_url(client_id: str) -> str:
    """Build the consent URL for the out-of-band authorization flow.

    Args:
        client_id: OAuth client ID.

    Returns:
        URL the user opens to obtain an authorization code.
    """
    params = {
        "client_id": client_id,
        "redirect_uri": OOB_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    return f"{AUTH_URL}?{urlencode(params)}"


class TokenStore:
    """Holds credentials and exchanges them for access tokens.

    Refreshes are serialized: callers that saw the same expired token
    share a single exchange instead of each performing their own.
    """

    def __init__(
        self,
        credentials: Credentials,
        timeout: float = 30.0,
        on_refresh_token: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the token store.

        Args:
            credentials: Client credentials and any known tokens.
            timeout: Request timeout in seconds.
            on_refresh_token: Called when a new refresh token is obtained.
        """
        self._credentials = credentials
        self._on_refresh_token = on_refresh_token
        self._lock = threading.Lock()
        self._client = httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> TokenStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def credentials(self) -> Credentials:
        """Get the current credentials."""
        return self._credentials

    @property
    def access_token(self) -> str | None:
        """Get the access token currently held, if any."""
        return self._credentials.access_token

    @property
    def has_refresh_token(self) -> bool:
        """Check if a refresh token is available."""
        return bool(self._credentials.refresh_token)

    def clear_access_token(self) -> None:
        """Forget the access token so the next request refreshes."""
        with self._lock:
            self._credentials.access_token = None

    def _post_token(self, data: dict[str, str], action: str) -> dict[str, str]:
        """POST a form to the token endpoint and return the JSON body."""
        try:
            response = self._client.post(TOKEN_URL, data=data)
        except httpx.TransportError as e:
            raise RemoteError(f"{action} failed: {e}") from e

        if not response.is_success:
            logger.error("%s failed with status %d", action, response.status_code)
            raise AuthError(f"{action} failed: HTTP {response.status_code}", response.status_code)

        body: dict[str, str] = response.json()
        if not body.get("access_token"):
            raise AuthError(f"{action} failed: no access token in response")
        return body

    def exchange_code(self, code: str) -> Credentials:
        """Exchange an authorization code for refresh and access tokens.

        Args:
            code: Authorization code pasted by the user.

        Returns:
            Updated credentials.

        Raises:
            AuthError: If the code is invalid or expired.
            RemoteError: If the token endpoint cannot be reached.
        """
        creds = self._credentials
        tokens = self._post_token(
            {
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
                "code": code.strip(),
                "grant_type": "authorization_code",
                "redirect_uri": OOB_REDIRECT_URI,
            },
            "Authorization code exchange",
        )

        with self._lock:
            creds.access_token = tokens["access_token"]
            refresh_token = tokens.get("refresh_token")
            if refresh_token:
                creds.refresh_token = refresh_token
            else:
                logger.warning("Token response carried no refresh token, keeping the previous one")

        if refresh_token and self._on_refresh_token:
            self._on_refresh_token(refresh_token)

        logger.info("Authorization code exchanged successfully")
        return creds

    def refresh(self, stale_token: str | None = None) -> str:
        """Exchange the refresh token for a new access token.

        Args:
            stale_token: The access token the caller found rejected. If another
                caller already replaced it, the newer token is returned
                without a second exchange.

        Returns:
            The current access token.

        Raises:
            AuthError: If no refresh token is present or the exchange fails.
            RemoteError: If the token endpoint cannot be reached.
        """
        with self._lock:
            current = self._credentials.access_token
            if stale_token is not None and current and current != stale_token:
                logger.debug("Access token already refreshed by another caller")
                return current
            return self._refresh_locked()

    def get_access_token(self) -> str:
        """Get a usable access token, refreshing first if none is held.

        Raises:
            AuthError: If no token is held and refresh fails.
            RemoteError: If the token endpoint cannot be reached.
        """
        token = self._credentials.access_token
        if token:
            return token
        with self._lock:
            # Another caller may have refreshed while we waited
            if self._credentials.access_token:
                return self._credentials.access_token
            return self._refresh_locked()

    def _refresh_locked(self) -> str:
        """Perform the refresh exchange. Caller must hold the lock."""
        creds = self._credentials
        if not creds.refresh_token:
            raise AuthError("No refresh token available. Authorize the application first.")

        tokens = self._post_token(
            {
                "client_id": creds.client_id,
                "client_secret": creds.client_secret,
                "refresh_token": creds.refresh_token,
                "grant_type": "refresh_token",
            },
            "Token refresh",
        )
        creds.access_token = tokens["access_token"]
        logger.debug("Access token refreshed")
        return creds.access_token
