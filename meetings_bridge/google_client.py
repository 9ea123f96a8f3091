"""HTTP client for Google OAuth2, userinfo and Calendar v3 endpoints."""

import logging
import os
import time
from typing import Any

import httpx
from dotenv import load_dotenv

from .exceptions import GoogleAuthError, GoogleError, GoogleForbiddenError

load_dotenv()

logger = logging.getLogger(__name__)

GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.environ.get("GOOGLE_CLIENT_SECRET", "")
REDIRECT_URI = os.environ.get("REDIRECT_URI", "http://localhost:3000/auth/callback")

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_CALENDAR_URL = "https://www.googleapis.com/calendar/v3"

SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
]


def is_configured() -> bool:
    """Return True when both OAuth client id and secret are set."""
    return bool(GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET)


class GoogleClient:
    """Client for the Google OAuth2 code flow and the calendar read API.

    A client carries at most one credential set. Build a new one per request
    from the stored tokens rather than mutating a shared instance.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        credentials: dict[str, Any] | None = None,
    ):
        self.client_id = client_id if client_id is not None else GOOGLE_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or REDIRECT_URI
        self.credentials = credentials

    def _get_headers(self) -> dict[str, str]:
        """Return bearer auth headers for API requests."""
        access_token = (self.credentials or {}).get("access_token")
        if not access_token:
            raise GoogleAuthError("No access token set on client")
        return {"Authorization": f"Bearer {access_token}"}

    def _parse_error_message(self, response: httpx.Response, default: str) -> str:
        """Extract error message from response, with fallback to default.

        OAuth endpoints return ``{"error": "...", "error_description": "..."}``;
        API endpoints return ``{"error": {"code": ..., "message": "..."}}``.
        """
        try:
            data = response.json()
        except ValueError:
            return default
        if not isinstance(data, dict):
            return default

        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message", default)
        if isinstance(error, str):
            description = data.get("error_description")
            return f"{error}: {description}" if description else error
        return default

    def _handle_response(self, response: httpx.Response) -> dict[str, Any]:
        """Handle response and raise appropriate exceptions for errors."""
        if response.status_code in (400, 401):
            message = self._parse_error_message(response, "Invalid grant or credentials")
            raise GoogleAuthError(message)

        if response.status_code == 403:
            message = self._parse_error_message(response, "Access forbidden")
            raise GoogleForbiddenError(message)

        if response.status_code >= 500:
            message = self._parse_error_message(response, "Google server error")
            raise GoogleError(f"Google server error: {message}")

        if response.status_code >= 400:
            message = self._parse_error_message(response, "Bad request")
            raise GoogleError(f"Google error ({response.status_code}): {message}")

        return response.json()

    # ========== OAuth ==========

    def generate_auth_url(self, state: str | None = None) -> str:
        """Build the consent URL for calendar read access with offline tokens."""
        params: dict[str, Any] = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "access_type": "offline",
        }
        if state is not None:
            params["state"] = state
        return str(httpx.URL(GOOGLE_AUTH_URL, params=params))

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for a token set.

        The returned dict is Google's token response plus ``expiry_date``
        (epoch milliseconds). The client keeps the tokens as its credentials.
        """
        data = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                GOOGLE_TOKEN_URL, data=data, headers={"Accept": "application/json"}
            )
            tokens = self._handle_response(response)

        if not tokens.get("access_token"):
            raise GoogleAuthError("Missing access_token in token response")
        if not tokens.get("refresh_token"):
            logger.warning("Token response has no refresh_token; consent was granted before")

        expires_in = tokens.get("expires_in")
        if expires_in is not None:
            tokens["expiry_date"] = int((time.time() + int(expires_in)) * 1000)

        self.credentials = tokens
        return tokens

    async def get_user_info(self) -> dict[str, Any]:
        """Fetch the basic profile of the user the credentials belong to."""
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(GOOGLE_USERINFO_URL, headers=self._get_headers())
            return self._handle_response(response)

    # ========== Calendar ==========

    async def list_events(
        self,
        calendar_id: str = "primary",
        time_min: str | None = None,
        max_results: int | None = None,
        single_events: bool = True,
        order_by: str | None = None,
    ) -> dict[str, Any]:
        """List events in a calendar."""
        url = f"{GOOGLE_CALENDAR_URL}/calendars/{calendar_id}/events"
        params: dict[str, Any] = {"singleEvents": str(single_events).lower()}

        if time_min is not None:
            params["timeMin"] = time_min
        if max_results is not None:
            params["maxResults"] = max_results
        if order_by is not None:
            params["orderBy"] = order_by

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(url, headers=self._get_headers(), params=params)
            return self._handle_response(response)


def get_google_client(credentials: dict[str, Any] | None = None) -> GoogleClient:
    """Create a GoogleClient, optionally bound to a stored credential set."""
    return GoogleClient(credentials=credentials)
