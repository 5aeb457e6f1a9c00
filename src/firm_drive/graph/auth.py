"""Delegated OneDrive token exchange through an MSAL confidential client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import msal

if TYPE_CHECKING:
    from firm_drive.config import AppConfig

logger = logging.getLogger(__name__)

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
# offline_access is implied by MSAL for confidential clients and must not be requested
ONEDRIVE_SCOPES = ["User.Read", "Files.Read", "Files.ReadWrite.All"]


class GraphAuthError(Exception):
    """Raised when MSAL cannot issue a delegated token."""


class TokenBroker:
    """Redeems authorization codes and refresh tokens for OneDrive access tokens.

    Nothing is cached or persisted here; the frontend holds the tokens and
    sends the access token with each drive request.
    """

    def __init__(self, client_id: str, client_secret: str, tenant_id: str) -> None:
        """Initialise the MSAL confidential client application.

        Args:
            client_id: Azure AD application (client) ID.
            client_secret: Azure AD application client secret.
            tenant_id: Azure AD tenant ID.
        """
        authority = f"{AUTHORITY_BASE_URL}/{tenant_id}"
        self._app = msal.ConfidentialClientApplication(
            client_id=client_id,
            client_credential=client_secret,
            authority=authority,
        )

    def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        """Redeem an authorization code from the sign-in redirect.

        Raises:
            GraphAuthError: If MSAL rejects the code.
        """
        result = self._app.acquire_token_by_authorization_code(
            code, scopes=ONEDRIVE_SCOPES, redirect_uri=redirect_uri
        )
        return self._token_response(result, "exchange_code")

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        """Trade a refresh token for a new access token.

        Raises:
            GraphAuthError: If MSAL rejects the refresh token.
        """
        result = self._app.acquire_token_by_refresh_token(refresh_token, scopes=ONEDRIVE_SCOPES)
        return self._token_response(result, "refresh")

    @staticmethod
    def _token_response(result: dict[str, Any] | None, operation: str) -> dict[str, Any]:
        result = result or {}
        if "access_token" not in result:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "No description provided")
            logger.error("[%s] MSAL token acquisition failed; error:%s", operation, error)
            raise GraphAuthError(f"Token acquisition failed: {error}: {description}")
        body: dict[str, Any] = {
            "accessToken": str(result["access_token"]),
            "expiresIn": int(result.get("expires_in", 0)),
        }
        if result.get("refresh_token"):
            body["refreshToken"] = str(result["refresh_token"])
        return body


def token_broker_from_config(config: AppConfig) -> TokenBroker:
    """Construct a TokenBroker from application configuration."""
    return TokenBroker(
        client_id=config.client_id,
        client_secret=config.client_secret,
        tenant_id=config.tenant_id,
    )
