"""
Google Calendar Service
Stores the system OAuth credentials and creates Calendar events with Google Meet links
"""
import base64
import hashlib
import logging
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

import httpx
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from ..config import (
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    HTTP_TIMEOUT_SECONDS,
    SECRET_KEY,
)
from ..errors import CredentialsUnavailable, ExternalServiceError, MeetingCreationFailed, RefreshFailed
from ..models import GoogleCredentials

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105 - OAuth endpoint URL
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
SYSTEM_IDENTIFIER = "system"

# Refresh tokens that expire within this window
EXPIRY_LEEWAY = timedelta(minutes=5)


class MeetEvent(NamedTuple):
    join_url: str
    event_id: str


def _cipher() -> Fernet:
    key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(key)


def encrypt_token(token: str) -> str:
    return _cipher().encrypt(token.encode()).decode()


def decrypt_token(token: str) -> str:
    return _cipher().decrypt(token.encode()).decode()


def http_timeout() -> httpx.Timeout:
    return httpx.Timeout(HTTP_TIMEOUT_SECONDS)


def get_system_credentials(db: Session) -> Optional[GoogleCredentials]:
    return (
        db.query(GoogleCredentials)
        .filter(GoogleCredentials.identifier == SYSTEM_IDENTIFIER, GoogleCredentials.is_active.is_(True))
        .first()
    )


def store_system_credentials(
    db: Session,
    access_token: str,
    refresh_token: str,
    scope: str,
    token_expires_at: datetime,
    token_type: str = "Bearer",
    created_by: str = "admin",
) -> GoogleCredentials:
    """Create or replace the system credentials (tokens are encrypted at rest)"""
    credentials = (
        db.query(GoogleCredentials).filter(GoogleCredentials.identifier == SYSTEM_IDENTIFIER).first()
    )

    if credentials:
        credentials.access_token = encrypt_token(access_token)
        credentials.refresh_token = encrypt_token(refresh_token)
        credentials.token_type = token_type or "Bearer"
        credentials.scope = scope
        credentials.token_expires_at = token_expires_at
        credentials.last_used = datetime.utcnow()
        credentials.is_active = True
    else:
        credentials = GoogleCredentials(
            identifier=SYSTEM_IDENTIFIER,
            access_token=encrypt_token(access_token),
            refresh_token=encrypt_token(refresh_token),
            token_type=token_type or "Bearer",
            scope=scope,
            token_expires_at=token_expires_at,
            created_by=created_by,
            is_active=True,
        )
        db.add(credentials)

    db.commit()
    db.refresh(credentials)
    logger.info("✅ Google credentials stored")
    return credentials


def delete_system_credentials(db: Session) -> bool:
    credentials = (
        db.query(GoogleCredentials).filter(GoogleCredentials.identifier == SYSTEM_IDENTIFIER).first()
    )
    if not credentials:
        return False

    db.delete(credentials)
    db.commit()
    logger.info("✅ Google credentials deleted")
    return True


class GoogleCalendarService:
    """Meeting provider backed by the Google Calendar v3 API"""

    def __init__(self, db: Session):
        self.db = db

    async def get_valid_access_token(self) -> str:
        """
        Get a valid access token, refreshing if necessary.

        Raises:
            CredentialsUnavailable: no system credentials stored
            RefreshFailed: token expired and the refresh request failed
        """
        credentials = get_system_credentials(self.db)
        if not credentials:
            raise CredentialsUnavailable()

        if not credentials.is_expired(EXPIRY_LEEWAY):
            try:
                access_token = decrypt_token(credentials.access_token)
            except InvalidToken as e:
                raise CredentialsUnavailable("Stored Google credentials cannot be decrypted") from e
            self._mark_used(credentials)
            return access_token

        logger.info("🔄 Google Calendar token expired, refreshing...")
        try:
            refresh_token = decrypt_token(credentials.refresh_token)
        except InvalidToken as e:
            raise RefreshFailed("Stored refresh token cannot be decrypted") from e

        try:
            async with httpx.AsyncClient(timeout=http_timeout()) as client:
                response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": GOOGLE_CLIENT_ID,
                        "client_secret": GOOGLE_CLIENT_SECRET,
                        "refresh_token": refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Token refresh request failed: {e}")
            raise RefreshFailed() from e

        if response.status_code != 200:
            logger.error(f"❌ Token refresh failed: {response.text}")
            raise RefreshFailed()

        tokens = response.json()
        new_access_token = tokens.get("access_token")
        expires_in = tokens.get("expires_in", 3600)

        if not new_access_token:
            logger.error("❌ No access token in refresh response")
            raise RefreshFailed()

        credentials.access_token = encrypt_token(new_access_token)
        if tokens.get("refresh_token"):
            credentials.refresh_token = encrypt_token(tokens["refresh_token"])
        credentials.token_type = tokens.get("token_type", credentials.token_type)
        credentials.token_expires_at = datetime.utcnow() + timedelta(seconds=expires_in)
        self._mark_used(credentials)

        logger.info("✅ Google Calendar token refreshed successfully")
        return new_access_token

    def _mark_used(self, credentials: GoogleCredentials) -> None:
        credentials.last_used = datetime.utcnow()
        self.db.commit()

    async def create_meet_event(
        self,
        summary: str,
        description: str,
        start: datetime,
        end: datetime,
        time_zone: str,
        attendee_emails: list[str],
        request_id: str,
    ) -> MeetEvent:
        """
        Create a Calendar event with a Google Meet conference attached.

        Raises:
            CredentialsUnavailable / RefreshFailed: see get_valid_access_token
            ExternalServiceError: the Calendar API could not be reached or rejected the event
            MeetingCreationFailed: the event has no video entry point
        """
        access_token = await self.get_valid_access_token()

        event_data = {
            "summary": summary,
            "description": description,
            "start": {"dateTime": start.isoformat(), "timeZone": time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": time_zone},
            "conferenceData": {
                "createRequest": {
                    "requestId": request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
            "attendees": [{"email": email} for email in attendee_emails],
        }

        try:
            async with httpx.AsyncClient(timeout=http_timeout()) as client:
                response = await client.post(
                    f"{GOOGLE_CALENDAR_API}/calendars/{GOOGLE_CALENDAR_ID}/events",
                    headers={"Authorization": f"Bearer {access_token}"},
                    params={"conferenceDataVersion": 1, "sendUpdates": "all"},
                    json=event_data,
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ Google Calendar request failed: {e}")
            raise ExternalServiceError(f"Google Calendar request failed: {e}") from e

        if response.status_code not in [200, 201]:
            logger.error(f"❌ Failed to create calendar event: {response.text}")
            raise ExternalServiceError(f"Google Calendar returned HTTP {response.status_code}")

        event = response.json()
        entry_points = (event.get("conferenceData") or {}).get("entryPoints") or []
        video = next((e for e in entry_points if e.get("entryPointType") == "video"), None)

        if not video or not video.get("uri"):
            raise MeetingCreationFailed()

        logger.info(f"✅ Google Calendar event created: {event.get('id')}")
        return MeetEvent(join_url=video["uri"], event_id=event.get("id"))
