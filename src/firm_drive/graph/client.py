"""Microsoft Graph API client bound to a caller-supplied bearer token."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import request as urllib_request
from urllib.error import HTTPError

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

# Graph error code returned alongside 404 for missing drive items
ERROR_ITEM_NOT_FOUND = "itemNotFound"


class MissingCredentialError(Exception):
    """Raised when a drive operation is attempted without an access token."""


class GraphApiError(Exception):
    """Raised when the Graph API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str, code: str = "") -> None:
        super().__init__(f"Graph API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code

    @property
    def is_not_found(self) -> bool:
        """True when the error means the requested item does not exist."""
        return self.status_code == 404 or self.code == ERROR_ITEM_NOT_FOUND


class GraphClient:
    """Authenticated client for Microsoft Graph API.

    The token is attached to every request as-is. Refreshing an expired token
    is the caller's job; this client never retries.
    """

    def __init__(self, access_token: str) -> None:
        self._access_token = access_token

    def _send(
        self,
        method: str,
        path: str,
        data: bytes | None = None,
        content_type: str | None = None,
        accept: str = "application/json",
    ) -> bytes:
        """Perform an authenticated request and return the raw response body.

        Args:
            method: HTTP method.
            path: URL path relative to GRAPH_BASE_URL (must start with '/').
            data: Optional request body.
            content_type: Content-Type header for the body, if any.
            accept: Accept header value.

        Returns:
            Raw response body bytes (empty for 202/204 responses).

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        url = f"{GRAPH_BASE_URL}{path}"
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": accept,
        }
        if content_type is not None:
            headers["Content-Type"] = content_type
        req = urllib_request.Request(url, data=data, headers=headers, method=method)
        try:
            with urllib_request.urlopen(req) as resp:
                return resp.read()  # type: ignore[no-any-return]
        except HTTPError as exc:
            raw = exc.read()
            code = ""
            try:
                error = json.loads(raw).get("error", {})
                detail = error.get("message", exc.reason)
                code = error.get("code", "")
            except Exception:
                detail = exc.reason
            logger.debug(
                "[_send] graph request failed; method:%s;path:%s;status:%d;code:%s",
                method,
                path,
                exc.code,
                code,
            )
            raise GraphApiError(exc.code, detail, code) from exc

    @staticmethod
    def _parse(body: bytes) -> dict[str, Any]:
        if not body:
            return {}
        return json.loads(body)  # type: ignore[no-any-return]

    def get(self, path: str) -> dict[str, Any]:
        """Perform an authenticated GET request to the Graph API.

        Args:
            path: URL path relative to GRAPH_BASE_URL (must start with '/').

        Returns:
            Parsed JSON response body as a dict.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        return self._parse(self._send("GET", path))

    def get_content(self, path: str) -> bytes:
        """Perform an authenticated GET request and return the raw bytes.

        Used for ``/content`` endpoints that redirect to the file download.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        return self._send("GET", path, accept="*/*")

    def post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """Perform an authenticated POST request with a JSON body.

        Asynchronous endpoints such as ``/copy`` answer 202 with no body; in
        that case an empty dict is returned.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        payload = json.dumps(body).encode("utf-8")
        return self._parse(
            self._send("POST", path, data=payload, content_type="application/json")
        )

    def put_content(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> dict[str, Any]:
        """Perform an authenticated PUT request to upload content to the Graph API.

        Args:
            path: URL path relative to GRAPH_BASE_URL (must start with '/').
            content: Raw bytes to upload.
            content_type: MIME type for the Content-Type header.

        Returns:
            Parsed JSON metadata of the uploaded drive item.

        Raises:
            GraphApiError: If the API returns a non-2xx status code.
        """
        return self._parse(self._send("PUT", path, data=content, content_type=content_type))


def get_client(access_token: str | None) -> GraphClient:
    """Wrap a bearer token into an authenticated GraphClient.

    Args:
        access_token: Delegated Graph access token issued to the caller.

    Returns:
        GraphClient that sends the token on every request.

    Raises:
        MissingCredentialError: If the token is empty or None.
    """
    if not access_token:
        raise MissingCredentialError("Access token is required for OneDrive operations")
    return GraphClient(access_token)
