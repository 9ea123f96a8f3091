"""Meetings Bridge Server - a minimal FastAPI backend for a calendar SPA.

The server runs the Google OAuth2 authorization-code flow on behalf of a
single-page frontend and returns the user's recent and upcoming meetings.

Key features:
- Login that returns a Google consent URL (or the already signed-in user)
- OAuth callback that exchanges the code, loads the profile and redirects
  back to the frontend
- Meetings listing split into upcoming and past
- Mock user and mock meeting when no Google credentials are configured

Tokens and profiles live in an in-memory session store; nothing is persisted.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import BaseModel, Field

from . import __version__
from .calendar_utils import MOCK_USER, get_time_min_rfc3339, mock_meeting, split_events
from .exceptions import GoogleAuthError, GoogleError, GoogleForbiddenError
from .google_client import get_google_client, is_configured
from .session_store import SessionStore, get_session_store

load_dotenv()

logger = logging.getLogger(__name__)

FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
SESSION_COOKIE = "session_id"
SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 30

EVENTS_MAX_RESULTS = 15
EVENTS_DAYS_BACK = 7

AUTH_FAILED_MESSAGE = "Authentication failed. Check server console."
CALENDAR_FAILED_MESSAGE = "Failed to fetch calendar data"


# ============================================================================
# FastAPI App Setup
# ============================================================================

app = FastAPI(
    title="Meetings Bridge",
    description="OAuth bridge between a calendar frontend and Google Calendar",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models - Responses
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str = __version__


class UserProfile(BaseModel):
    """Basic profile of the signed-in user."""
    name: str | None = None
    email: str | None = None
    avatar: str | None = Field(None, description="Profile picture URL")


class LoginResponse(BaseModel):
    """Response for the login endpoint.

    Exactly one of the fields is set: either a URL to send the browser to,
    or the user that is already signed in (or the mock user).
    """
    authUrl: str | None = None
    user: UserProfile | None = None


class Meeting(BaseModel):
    """A calendar event reshaped for the frontend."""
    id: str
    title: str
    startTime: str = Field(..., description="ISO-8601 start (date for all-day events)")
    endTime: str = Field(..., description="ISO-8601 end (date for all-day events)")
    attendees: list[dict[str, Any]] = Field(default_factory=list)
    description: str | None = None
    link: str | None = Field(None, description="Link to the event in Google Calendar")


class MeetingsResponse(BaseModel):
    """Response for listing meetings."""
    upcoming: list[Meeting]
    past: list[Meeting]


class ErrorResponse(BaseModel):
    """Generic error body."""
    error: str


# ============================================================================
# Dependencies & Helper Functions
# ============================================================================


def get_session_id(request: Request) -> str | None:
    """Return the caller's session id from its cookie, if any."""
    return request.cookies.get(SESSION_COOKIE) or None


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=SESSION_COOKIE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )


def format_google_error(e: Exception) -> str:
    """Format a Google error for log output."""
    if isinstance(e, GoogleAuthError):
        return f"Authentication error: {e}"
    if isinstance(e, GoogleForbiddenError):
        return f"Access forbidden: {e}"
    if isinstance(e, GoogleError):
        return f"Google error: {e}"
    return f"{type(e).__name__}: {e}"


def profile_from_userinfo(data: dict[str, Any]) -> dict[str, Any]:
    """Keep the fields of a userinfo response the frontend displays."""
    return {
        "name": data.get("name"),
        "email": data.get("email"),
        "avatar": data.get("picture"),
    }


# ============================================================================
# Health Endpoint
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint. Returns server status and version."""
    return HealthResponse()


# ============================================================================
# Auth Endpoints
# ============================================================================


@app.post("/auth/login", response_model=LoginResponse, tags=["auth"])
async def login(
    response: Response,
    session_id: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
):
    """Start sign-in.

    Returns the cached user when the session is already authenticated, the
    mock user when Google credentials are not configured, and otherwise the
    Google consent URL for the frontend to redirect to. A caller without a
    session cookie is issued one.
    """
    session = store.get(session_id)
    if session is not None:
        return LoginResponse(authUrl=None, user=UserProfile(**session.profile))

    if session_id is None:
        session_id = store.new_session_id()
        set_session_cookie(response, session_id)

    if not is_configured():
        logger.info("Missing Google credentials, returning mock user")
        return LoginResponse(authUrl=None, user=UserProfile(**MOCK_USER))

    client = get_google_client()
    state = store.create_state(session_id)
    return LoginResponse(authUrl=client.generate_auth_url(state=state), user=None)


@app.get("/auth/callback", tags=["auth"])
async def auth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    store: SessionStore = Depends(get_session_store),
):
    """Google redirects here after consent.

    The state must be one issued by login for the session cookie this browser
    carries. The session is written only once both the token exchange and the
    profile lookup have succeeded; on any failure the previous session is
    untouched.
    """
    session_id = get_session_id(request)
    bound_session_id = store.consume_state(state)

    try:
        if bound_session_id is None:
            raise GoogleAuthError("Unknown or expired OAuth state")
        if bound_session_id != session_id:
            raise GoogleAuthError("OAuth state does not belong to this session")
        if error:
            raise GoogleAuthError(f"Consent was not granted: {error}")
        if not code:
            raise GoogleAuthError("Missing authorization code")

        client = get_google_client()
        tokens = await client.exchange_code(code)
        userinfo = await client.get_user_info()
    except Exception as e:
        logger.error("Error during callback: %s", format_google_error(e))
        return PlainTextResponse(AUTH_FAILED_MESSAGE, status_code=500)

    profile = profile_from_userinfo(userinfo)
    store.save(session_id, tokens=tokens, profile=profile)
    logger.info("Signed in %s", profile["email"])
    return RedirectResponse(f"{FRONTEND_URL}?status=success", status_code=302)


# ============================================================================
# Meetings Endpoint
# ============================================================================


@app.get(
    "/api/meetings",
    response_model=MeetingsResponse,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponse}},
    tags=["meetings"],
)
async def list_meetings(
    session_id: str | None = Depends(get_session_id),
    store: SessionStore = Depends(get_session_store),
):
    """List meetings from the last week onward, split into upcoming and past.

    Without a signed-in session a single mock meeting is returned so the
    frontend stays usable. Recurring events are expanded to instances.
    """
    logger.info("Fetching Google Calendar events")

    session = store.get(session_id)
    if session is None:
        return MeetingsResponse(upcoming=[Meeting(**mock_meeting())], past=[])

    now = datetime.now(UTC)
    try:
        client = get_google_client(credentials=session.tokens)
        result = await client.list_events(
            calendar_id="primary",
            time_min=get_time_min_rfc3339(days_back=EVENTS_DAYS_BACK, now=now),
            max_results=EVENTS_MAX_RESULTS,
            single_events=True,
            order_by="startTime",
        )
    except Exception as e:
        logger.error("Calendar API error: %s", format_google_error(e))
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=CALENDAR_FAILED_MESSAGE).model_dump(),
        )

    upcoming, past = split_events(result.get("items") or [], now=now)
    return MeetingsResponse(
        upcoming=[Meeting(**meeting) for meeting in upcoming],
        past=[Meeting(**meeting) for meeting in past],
    )


# ============================================================================
# Main Entry Point
# ============================================================================


def run() -> None:
    """Start the built-in server unless running in production.

    In production the app is expected to be mounted by an external ASGI
    server, e.g. ``uvicorn meetings_bridge.server:app``.
    """
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if os.environ.get("APP_ENV", "development") == "production":
        logger.info("APP_ENV is production, not starting the built-in server")
        return

    import uvicorn

    port = int(os.environ.get("PORT", "3000"))
    logger.info("Server running on http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    run()
