"""Shared FastAPI dependencies for the external collaborators"""

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .email_service import EmailNotifier
from .services.google_calendar_service import GoogleCalendarService


def get_meeting_provider(db: Session = Depends(get_db)) -> GoogleCalendarService:
    return GoogleCalendarService(db)


def get_notifier() -> EmailNotifier:
    return EmailNotifier()
