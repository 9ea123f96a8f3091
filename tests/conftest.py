"""Pytest fixtures and sample data for Meetings Bridge tests."""

from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from meetings_bridge.server import SESSION_COOKIE
from meetings_bridge.session_store import SessionStore, get_session_store

# ============================================================================
# Sample Google Data
# ============================================================================

SAMPLE_TOKENS = {
    "access_token": "ya29.sample-access-token",
    "refresh_token": "1//sample-refresh-token",
    "scope": (
        "https://www.googleapis.com/auth/calendar.readonly "
        "https://www.googleapis.com/auth/userinfo.profile "
        "https://www.googleapis.com/auth/userinfo.email"
    ),
    "token_type": "Bearer",
    "expires_in": 3599,
}

SAMPLE_USERINFO = {
    "id": "1234567890",
    "email": "john.doe@example.com",
    "verified_email": True,
    "name": "John Doe",
    "given_name": "John",
    "family_name": "Doe",
    "picture": "https://lh3.googleusercontent.com/a/sample-picture",
}

SESSION_ID = "browser-session-1"

SAMPLE_PROFILE = {
    "name": "John Doe",
    "email": "john.doe@example.com",
    "avatar": "https://lh3.googleusercontent.com/a/sample-picture",
}


def get_sample_event(
    event_id: str = "event_123",
    summary: str | None = "Team Meeting",
    description: str | None = "Weekly team sync",
    start_hours_from_now: float = 1,
    duration_hours: float = 1,
    attendees: list[dict[str, Any]] | None = None,
    is_all_day: bool = False,
) -> dict[str, Any]:
    """Generate a sample event with customizable properties."""
    now = datetime.now(UTC).replace(tzinfo=None)
    start = now + timedelta(hours=start_hours_from_now)
    end = start + timedelta(hours=duration_hours)

    if is_all_day:
        start_obj = {"date": start.strftime("%Y-%m-%d")}
        end_obj = {"date": end.strftime("%Y-%m-%d")}
    else:
        start_obj = {
            "dateTime": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "timeZone": "UTC",
        }
        end_obj = {
            "dateTime": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "timeZone": "UTC",
        }

    event: dict[str, Any] = {
        "kind": "calendar#event",
        "id": event_id,
        "start": start_obj,
        "end": end_obj,
        "status": "confirmed",
        "htmlLink": f"https://calendar.google.com/event?eid={event_id}",
    }

    if summary is not None:
        event["summary"] = summary
    if description is not None:
        event["description"] = description
    if attendees is not None:
        event["attendees"] = attendees

    return event


SAMPLE_EVENTS = {
    "upcoming_meeting": get_sample_event(
        event_id="meeting_001",
        summary="Team Standup",
        description="Daily standup meeting",
        start_hours_from_now=1,
        duration_hours=0.5,
        attendees=[
            {"email": "alice@example.com", "displayName": "Alice Smith", "responseStatus": "accepted"},
            {"email": "bob@example.com", "displayName": "Bob Jones", "responseStatus": "tentative"},
        ],
    ),
    "past_meeting": get_sample_event(
        event_id="past_001",
        summary="Retro",
        description="This meeting already happened",
        start_hours_from_now=-1,
        duration_hours=1,
    ),
    "untitled": get_sample_event(
        event_id="untitled_001",
        summary=None,
        description=None,
        start_hours_from_now=2,
    ),
    "all_day_event": get_sample_event(
        event_id="allday_001",
        summary="Company Holiday",
        description="Office closed",
        start_hours_from_now=48,
        duration_hours=24,
        is_all_day=True,
    ),
}


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_google_client():
    """Mock GoogleClient returned by the server's client factory."""
    with patch("meetings_bridge.server.get_google_client") as mock_get:
        mock_client = MagicMock()

        # Default responses
        mock_client.generate_auth_url.return_value = (
            "https://accounts.google.com/o/oauth2/v2/auth?client_id=mock"
        )
        mock_client.exchange_code = AsyncMock(return_value=dict(SAMPLE_TOKENS))
        mock_client.get_user_info = AsyncMock(return_value=dict(SAMPLE_USERINFO))
        mock_client.list_events = AsyncMock(
            return_value={
                "kind": "calendar#events",
                "items": [SAMPLE_EVENTS["past_meeting"], SAMPLE_EVENTS["upcoming_meeting"]],
            }
        )

        mock_get.return_value = mock_client
        yield mock_client


@pytest.fixture
def google_configured():
    """Pretend OAuth client credentials are set in the environment."""
    with (
        patch("meetings_bridge.google_client.GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com"),
        patch("meetings_bridge.google_client.GOOGLE_CLIENT_SECRET", "test-client-secret"),
    ):
        yield


@pytest.fixture
def google_unconfigured():
    """Pretend no OAuth client credentials are set."""
    with (
        patch("meetings_bridge.google_client.GOOGLE_CLIENT_ID", ""),
        patch("meetings_bridge.google_client.GOOGLE_CLIENT_SECRET", ""),
    ):
        yield


@pytest.fixture
def session_store():
    """Fresh, empty session store."""
    return SessionStore()


@pytest.fixture
def client(session_store):
    """FastAPI test client wired to the per-test session store."""
    from meetings_bridge.server import app

    app.dependency_overrides[get_session_store] = lambda: session_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def browser_session(client):
    """Session cookie carried by the test client, with nothing stored yet."""
    client.cookies.set(SESSION_COOKIE, SESSION_ID)
    return SESSION_ID


@pytest.fixture
def authenticated_session(session_store, browser_session):
    """Browser session that has completed the OAuth flow."""
    return session_store.save(
        browser_session,
        tokens=dict(SAMPLE_TOKENS),
        profile=dict(SAMPLE_PROFILE),
    )


@pytest.fixture
def oauth_state(session_store, browser_session):
    """State issued by login for the browser session."""
    return session_store.create_state(browser_session)
