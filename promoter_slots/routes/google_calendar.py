"""
Google Calendar Integration Routes
Admin management of the system OAuth credentials used to create Meet links
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_admin
from ..config import GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI
from ..database import get_db
from ..errors import DomainError, ExternalServiceError, ValidationError
from ..services.google_calendar_service import (
    GOOGLE_TOKEN_URL,
    delete_system_credentials,
    get_system_credentials,
    http_timeout,
    store_system_credentials,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/google-calendar", tags=["google-calendar"])

# Google OAuth URLs
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]


class StoreCredentialsRequest(BaseModel):
    access_token: str
    refresh_token: str
    scope: str = " ".join(GOOGLE_CALENDAR_SCOPES)
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    expiry_date: Optional[int] = None  # epoch milliseconds, as returned by Google client libraries


class OAuthCallbackRequest(BaseModel):
    code: str


def resolve_expiry(expires_at: Optional[datetime], expiry_date: Optional[int]) -> datetime:
    if expires_at:
        # Stored naive UTC
        if expires_at.tzinfo is not None:
            expires_at = expires_at.replace(tzinfo=None) - (expires_at.utcoffset() or timedelta(0))
        return expires_at
    if expiry_date:
        return datetime.utcfromtimestamp(expiry_date / 1000)
    raise ValidationError("expires_at or expiry_date is required")


@router.post("/credentials")
async def store_credentials(
    data: StoreCredentialsRequest,
    admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Store the system Google credentials"""
    credentials = store_system_credentials(
        db,
        access_token=data.access_token,
        refresh_token=data.refresh_token,
        scope=data.scope,
        token_expires_at=resolve_expiry(data.expires_at, data.expiry_date),
        token_type=data.token_type,
        created_by=admin,
    )
    return {
        "success": True,
        "message": "Google credentials stored",
        "expiresAt": credentials.token_expires_at,
    }


@router.get("/status")
async def get_google_calendar_status(
    _admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Get Google Calendar connection status"""
    credentials = get_system_credentials(db)
    if not credentials:
        return {"configured": False, "expired": None, "lastUsed": None, "expiresAt": None, "scope": None}

    return {
        "configured": True,
        "expired": credentials.is_expired(),
        "lastUsed": credentials.last_used,
        "expiresAt": credentials.token_expires_at,
        "scope": credentials.scope,
    }


@router.delete("/credentials")
async def delete_credentials(
    _admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    deleted = delete_system_credentials(db)
    return {"success": True, "deleted": deleted}


@router.get("/connect")
async def initiate_google_calendar_oauth(_admin: str = Depends(get_current_admin)):
    """Initiate Google Calendar OAuth flow"""
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise DomainError("Google Calendar not configured")

    params = {
        "client_id": GOOGLE_CLIENT_ID,
        "redirect_uri": GOOGLE_REDIRECT_URI,
        "response_type": "code",
        "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
        "access_type": "offline",
        "prompt": "consent",
    }
    logger.info("Google Calendar OAuth initiated")
    return {"authorization_url": f"{GOOGLE_AUTH_URL}?{urlencode(params)}"}


@router.post("/callback")
async def handle_google_calendar_callback(
    data: OAuthCallbackRequest,
    admin: str = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    """Exchange the OAuth authorization code and store the resulting tokens"""
    try:
        async with httpx.AsyncClient(timeout=http_timeout()) as client:
            token_response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": data.code,
                    "client_id": GOOGLE_CLIENT_ID,
                    "client_secret": GOOGLE_CLIENT_SECRET,
                    "redirect_uri": GOOGLE_REDIRECT_URI,
                    "grant_type": "authorization_code",
                },
            )
    except httpx.HTTPError as e:
        logger.error(f"❌ Token exchange request failed: {e}")
        raise ExternalServiceError("Failed to reach Google OAuth") from e

    if token_response.status_code != 200:
        logger.error(f"Token exchange failed: {token_response.text}")
        raise ValidationError("Failed to exchange authorization code")

    tokens = token_response.json()
    access_token = tokens.get("access_token")
    refresh_token = tokens.get("refresh_token")
    expires_in = tokens.get("expires_in", 3600)

    if not access_token or not refresh_token:
        raise ValidationError("Invalid token response")

    store_system_credentials(
        db,
        access_token=access_token,
        refresh_token=refresh_token,
        scope=tokens.get("scope", " ".join(GOOGLE_CALENDAR_SCOPES)),
        token_expires_at=datetime.utcnow() + timedelta(seconds=expires_in),
        token_type=tokens.get("token_type", "Bearer"),
        created_by=admin,
    )

    logger.info("✅ Google Calendar connected")
    return {"success": True, "message": "Google Calendar connected successfully"}
