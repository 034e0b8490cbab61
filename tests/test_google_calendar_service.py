from datetime import datetime, timedelta

import httpx
import pytest

from promoter_slots.errors import CredentialsUnavailable, ExternalServiceError, MeetingCreationFailed, RefreshFailed
from promoter_slots.models import GoogleCredentials
from promoter_slots.services import google_calendar_service
from promoter_slots.services.google_calendar_service import (
    GoogleCalendarService,
    decrypt_token,
    encrypt_token,
    get_system_credentials,
    store_system_credentials,
)

REAL_ASYNC_CLIENT = httpx.AsyncClient

EVENT_WITH_MEET = {
    "id": "evt123",
    "conferenceData": {
        "entryPoints": [
            {"entryPointType": "phone", "uri": "tel:+1-555-0100"},
            {"entryPointType": "video", "uri": "https://meet.google.com/xyz-abcd-efg"},
        ]
    },
}


@pytest.fixture
def google_api(monkeypatch):
    """Routes every outbound httpx call to a handler the test controls"""
    state = {"requests": [], "token": None, "event": None}

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        if request.url.host == "oauth2.googleapis.com":
            return state["token"] or httpx.Response(200, json={"access_token": "new-access", "expires_in": 3600})
        return state["event"] or httpx.Response(200, json=EVENT_WITH_MEET)

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        google_calendar_service.httpx,
        "AsyncClient",
        lambda **kwargs: REAL_ASYNC_CLIENT(transport=transport, **kwargs),
    )
    return state


def store(db_session, expires_in: timedelta = timedelta(hours=1)):
    return store_system_credentials(
        db_session,
        access_token="stored-access",
        refresh_token="stored-refresh",
        scope="https://www.googleapis.com/auth/calendar",
        token_expires_at=datetime.utcnow() + expires_in,
    )


async def create_event(db_session):
    start = datetime(2024, 6, 3, 9, 0)
    return await GoogleCalendarService(db_session).create_meet_event(
        summary="Reunión Promotoras - 09:00",
        description="Reunión informativa",
        start=start,
        end=start + timedelta(minutes=60),
        time_zone="America/Mexico_City",
        attendee_emails=["ana@example.com"],
        request_id="meet-1-1717405200000",
    )


def test_tokens_are_encrypted_at_rest(db_session):
    credentials = store(db_session)

    assert credentials.access_token != "stored-access"
    assert decrypt_token(credentials.access_token) == "stored-access"
    assert decrypt_token(encrypt_token("x")) == "x"


def test_storing_twice_replaces_credentials(db_session):
    store(db_session)
    store(db_session)

    assert db_session.query(GoogleCredentials).count() == 1


async def test_missing_credentials(db_session, google_api):
    with pytest.raises(CredentialsUnavailable):
        await create_event(db_session)
    assert google_api["requests"] == []


async def test_creates_event_with_meet_link(db_session, google_api):
    store(db_session)

    event = await create_event(db_session)

    assert event.join_url == "https://meet.google.com/xyz-abcd-efg"
    assert event.event_id == "evt123"
    request = google_api["requests"][0]
    assert request.headers["Authorization"] == "Bearer stored-access"
    assert request.url.params["conferenceDataVersion"] == "1"
    assert request.url.params["sendUpdates"] == "all"
    assert get_system_credentials(db_session).last_used is not None


async def test_expired_token_is_refreshed(db_session, google_api):
    store(db_session, expires_in=timedelta(minutes=1))

    await create_event(db_session)

    token_request, event_request = google_api["requests"]
    assert b"grant_type=refresh_token" in token_request.content
    assert event_request.headers["Authorization"] == "Bearer new-access"
    credentials = get_system_credentials(db_session)
    assert decrypt_token(credentials.access_token) == "new-access"
    assert decrypt_token(credentials.refresh_token) == "stored-refresh"
    assert credentials.token_expires_at > datetime.utcnow() + timedelta(minutes=50)


async def test_refresh_rejected(db_session, google_api):
    store(db_session, expires_in=timedelta(minutes=-5))
    google_api["token"] = httpx.Response(400, json={"error": "invalid_grant"})

    with pytest.raises(RefreshFailed):
        await create_event(db_session)


async def test_calendar_error(db_session, google_api):
    store(db_session)
    google_api["event"] = httpx.Response(500, json={"error": "backendError"})

    with pytest.raises(ExternalServiceError):
        await create_event(db_session)


async def test_event_without_video_entry_point(db_session, google_api):
    store(db_session)
    google_api["event"] = httpx.Response(200, json={"id": "evt123", "conferenceData": {"entryPoints": []}})

    with pytest.raises(MeetingCreationFailed):
        await create_event(db_session)
