"""HTTP client for the Drive v3 API.

This module provides:
- DriveClient: authenticated requests with a single re-authentication retry
- File metadata operations (list, create, rename, delete)
- Content operations (multipart create, media update, download)
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from vaultdrive.client.auth import AuthError, RemoteError

if TYPE_CHECKING:
    from vaultdrive.client.auth import TokenStore

logger = logging.getLogger(__name__)

API_BASE_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_BASE_URL = "https://www.googleapis.com/upload/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
CONTENT_MIME_TYPE = "text/plain"
FILE_FIELDS = "id, name, parents, mimeType"
LIST_PAGE_SIZE = 1000


@dataclass
class DriveFile:
    """File metadata from the drive."""

    id: str
    name: str
    parents: list[str] = field(default_factory=list)
    mime_type: str = ""

    @property
    def is_folder(self) -> bool:
        """Check if this entry is a folder."""
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DriveFile:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            parents=list(data.get("parents", [])),
            mime_type=data.get("mimeType", ""),
        )


def escape_query_value(value: str) -> str:
    """Escape a string literal for use inside a Drive search query."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """HTTP client for the Drive API.

    Every request is sent with the current bearer token. A 401 response
    triggers exactly one token refresh and one retry.
    """

    def __init__(
        self,
        tokens: TokenStore,
        timeout: float = 30.0,
        api_base_url: str = API_BASE_URL,
        upload_base_url: str = UPLOAD_BASE_URL,
    ) -> None:
        """Initialize the drive client.

        Args:
            tokens: Token store used to authenticate requests.
            timeout: Request timeout in seconds.
            api_base_url: Base URL for metadata requests.
            upload_base_url: Base URL for content uploads.
        """
        self._tokens = tokens
        self._api_base_url = api_base_url.rstrip("/")
        self._upload_base_url = upload_base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> DriveClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    @property
    def tokens(self) -> TokenStore:
        """Get the token store."""
        return self._tokens

    # === Request plumbing ===

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request to the metadata API.

        A JSON content type is added unless the caller provides one.

        Raises:
            AuthError: If authentication fails twice.
            RemoteError: On any other non-2xx response or transport failure.
        """
        merged = {"Content-Type": "application/json"}
        merged.update(headers or {})
        return self._send(
            method,
            f"{self._api_base_url}/{path.lstrip('/')}",
            params=params,
            json_body=json_body,
            content=content,
            headers=merged,
        )

    def upload_request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send an authenticated request to the upload endpoint.

        No default content type is set: multipart and media bodies carry
        their own.
        """
        return self._send(
            method,
            f"{self._upload_base_url}/{path.lstrip('/')}",
            params=params,
            content=content,
            headers=dict(headers or {}),
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str],
    ) -> httpx.Response:
        """Send a request, refreshing and retrying once on 401."""
        token = self._tokens.get_access_token()
        response = self._send_once(method, url, token, params, json_body, content, headers)

        if response.status_code == 401:
            logger.info("Access token rejected for %s %s, refreshing", method, url)
            token = self._tokens.refresh(stale_token=token)
            response = self._send_once(method, url, token, params, json_body, content, headers)
            if response.status_code == 401:
                raise AuthError("Drive rejected the refreshed access token", 401)

        if not response.is_success:
            raise RemoteError(
                f"Drive API error {response.status_code} for {method} {url}",
                response.status_code,
            )
        return response

    def _send_once(
        self,
        method: str,
        url: str,
        token: str,
        params: dict[str, str] | None,
        json_body: dict[str, Any] | None,
        content: bytes | None,
        headers: dict[str, str],
    ) -> httpx.Response:
        """Send a single request with the given bearer token."""
        request_headers = {**headers, "Authorization": f"Bearer {token}"}
        if json_body is not None:
            content = json.dumps(json_body).encode("utf-8")
        try:
            return self._client.request(
                method,
                url,
                params=params,
                content=content,
                headers=request_headers,
            )
        except httpx.TransportError as e:
            raise RemoteError(f"Request {method} {url} failed: {e}") from e

    # === File operations ===

    def list_files(self, query: str, spaces: str | None = None) -> list[DriveFile]:
        """List files matching a search query, following pagination.

        Args:
            query: Drive search query.
            spaces: Optional space to scope the listing (e.g. appDataFolder).

        Returns:
            Matching files in the order the API returns them.
        """
        files: list[DriveFile] = []
        page_token: str | None = None

        while True:
            params = {
                "q": query,
                "fields": f"nextPageToken, files({FILE_FIELDS})",
                "pageSize": str(LIST_PAGE_SIZE),
            }
            if spaces:
                params["spaces"] = spaces
            if page_token:
                params["pageToken"] = page_token

            data = self.request("GET", "files", params=params).json()
            files.extend(DriveFile.from_dict(f) for f in data.get("files", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                return files

    def create_folder(self, name: str) -> DriveFile:
        """Create a folder in the drive root.

        Args:
            name: Folder name.

        Returns:
            Created folder metadata.
        """
        response = self.request(
            "POST",
            "files",
            params={"fields": FILE_FIELDS},
            json_body={"name": name, "mimeType": FOLDER_MIME_TYPE},
        )
        return DriveFile.from_dict(response.json())

    def create_file(self, name: str, parents: list[str], content: bytes) -> DriveFile:
        """Create a file with content using a multipart upload.

        Args:
            name: File name (the vault-relative path).
            parents: Parent container references.
            content: File content.

        Returns:
            Created file metadata.
        """
        boundary = f"vaultdrive-{uuid.uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": parents})
        body = b"".join(
            [
                f"--{boundary}\r\n".encode(),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                metadata.encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode(),
                f"Content-Type: {CONTENT_MIME_TYPE}\r\n\r\n".encode(),
                content,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        response = self.upload_request(
            "POST",
            "files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return DriveFile.from_dict(response.json())

    def update_content(self, file_id: str, content: bytes) -> DriveFile:
        """Replace the whole content of an existing file.

        Args:
            file_id: Drive file ID.
            content: New content.

        Returns:
            Updated file metadata.
        """
        response = self.upload_request(
            "PATCH",
            f"files/{file_id}",
            params={"uploadType": "media", "fields": FILE_FIELDS},
            content=content,
            headers={"Content-Type": CONTENT_MIME_TYPE},
        )
        return DriveFile.from_dict(response.json())

    def rename_file(self, file_id: str, name: str) -> DriveFile:
        """Change a file's name without touching its content.

        Args:
            file_id: Drive file ID.
            name: New name.

        Returns:
            Updated file metadata.
        """
        response = self.request(
            "PATCH",
            f"files/{file_id}",
            params={"fields": FILE_FIELDS},
            json_body={"name": name},
        )
        return DriveFile.from_dict(response.json())

    def delete_file(self, file_id: str) -> None:
        """Permanently delete a file.

        Args:
            file_id: Drive file ID.
        """
        self.request("DELETE", f"files/{file_id}")

    def download_file(self, file_id: str) -> bytes:
        """Download a file's content.

        Args:
            file_id: Drive file ID.

        Returns:
            Raw file content.
        """
        response = self.request("GET", f"files/{file_id}", params={"alt": "media"})
        return response.content
