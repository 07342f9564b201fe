"""
insight_pipeline/sheets/oauth.py

OAuth2 token endpoint client for Google Sheets access.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from insight_pipeline.config import ConfigurationError, SheetsSettings

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"


class SheetsAuthError(RuntimeError):
    """
    Raised when no valid access token can be produced.
    """


def _describe_error(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict) and payload.get("error"):
        message = str(payload["error"])
        if payload.get("error_description"):
            message += f": {payload['error_description']}"
        return message
    return response.text[:200]


class GoogleOAuthClient:
    """
    Performs authorization-code and refresh-token grants.
    """

    def __init__(
        self,
        *,
        client_id: str | None,
        client_secret: str | None,
        redirect_uri: str,
        session: requests.Session | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not client_id or not client_secret:
            raise ConfigurationError(
                "GOOGLE_SHEETS_CLIENT_ID and GOOGLE_SHEETS_CLIENT_SECRET are required."
            )
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(
        cls,
        settings: SheetsSettings,
        *,
        session: requests.Session | None = None,
    ) -> "GoogleOAuthClient":
        return cls(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            redirect_uri=settings.redirect_uri,
            session=session,
            timeout_seconds=settings.timeout_seconds,
        )

    def exchange_code(self, code: str) -> dict[str, Any]:
        """
        Exchange an authorization code for access and refresh tokens.
        """

        return self._post_grant(
            {
                "code": code,
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "redirect_uri": self._redirect_uri,
                "grant_type": "authorization_code",
            },
            action="Token exchange",
        )

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        """
        Obtain a fresh access token from a refresh token.
        """

        return self._post_grant(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            action="Token refresh",
        )

    def _post_grant(self, data: dict[str, str], *, action: str) -> dict[str, Any]:
        try:
            response = self._session.post(
                TOKEN_ENDPOINT,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as exc:
            raise SheetsAuthError(f"{action} failed: {exc}") from exc

        if not response.ok:
            logger.error("%s failed status=%s", action, response.status_code)
            raise SheetsAuthError(
                f"{action} failed ({response.status_code}): {_describe_error(response)}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SheetsAuthError(f"{action} response was not valid JSON.") from exc
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise SheetsAuthError(f"{action} response did not include an access_token.")
        return payload
