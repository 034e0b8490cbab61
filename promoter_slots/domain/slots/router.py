"""Slot router - FastAPI endpoints for slots, registrations and meeting links"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...dependencies import get_meeting_provider, get_notifier
from .schemas import (
    ApproveRegistrationRequest,
    RegisterRequest,
    RegistrationResultResponse,
    RejectRegistrationRequest,
    SlotResponse,
    SlotUpdate,
    attempt_response,
    slot_response,
)
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(
    db: Session = Depends(get_db),
    meeting_provider=Depends(get_meeting_provider),
    notifier=Depends(get_notifier),
) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db, meeting_provider=meeting_provider, notifier=notifier)


# ============================================================================
# QUERIES
# ============================================================================


@router.get("", response_model=list[SlotResponse])
async def list_slots(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    return [slot_response(s) for s in service.list_slots(start_date, end_date, status)]


@router.get("/available", response_model=list[SlotResponse])
async def list_available_slots(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    return [slot_response(s) for s in service.list_available(start_date, end_date)]


@router.get("/week", response_model=list[SlotResponse])
async def list_week_slots(
    start_date: Optional[date] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    """Slots of the week containing start_date (default: current week), generated when missing"""
    return [slot_response(s) for s in service.list_week(start_date or date.today())]


@router.get("/today", response_model=list[SlotResponse])
async def list_today_slots(service: SlotService = Depends(get_slot_service)):
    return [slot_response(s) for s in service.list_today()]


@router.get("/filled", response_model=list[SlotResponse])
async def list_filled_slots(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    return [slot_response(s) for s in service.list_filled(start_date, end_date)]


@router.get("/stats")
async def slot_stats(
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    return {"success": True, "data": service.stats()}


@router.get("/appointments")
async def appointments_by_day(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    """Appointments grouped by day"""
    grouped = service.appointments_by_day(start_date, end_date)
    return {
        "success": True,
        "data": {
            key: {
                "date": day["date"],
                "totalAppointments": day["totalAppointments"],
                "slots": [slot_response(s) for s in day["slots"]],
            }
            for key, day in grouped.items()
        },
    }


@router.get("/appointments/{day}", response_model=list[SlotResponse])
async def appointments_on_day(
    day: date,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    return [slot_response(s) for s in service.appointments_on(day)]


@router.get("/{slot_id}", response_model=SlotResponse)
async def get_slot(slot_id: int, service: SlotService = Depends(get_slot_service)):
    return slot_response(service.get_slot(slot_id))


# ============================================================================
# REGISTRATION
# ============================================================================


@router.post("/{slot_id}/register", response_model=RegistrationResultResponse)
async def register_user(
    slot_id: int,
    data: RegisterRequest,
    service: SlotService = Depends(get_slot_service),
):
    """Register a user in a slot"""
    result = await service.register(slot_id, data.userId)
    return RegistrationResultResponse(
        slot=slot_response(result.slot),
        sideEffects=[attempt_response(a) for a in result.side_effects],
    )


@router.delete("/{slot_id}/register/{user_id}", response_model=SlotResponse)
async def unregister_user(
    slot_id: int,
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    return slot_response(service.unregister(slot_id, user_id))


@router.put("/{slot_id}/registrations/{user_id}/approve", response_model=SlotResponse)
async def approve_registration(
    slot_id: int,
    user_id: int,
    data: Optional[ApproveRegistrationRequest] = None,
    admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    approved_by = (data.approvedBy if data else None) or admin
    return slot_response(service.approve_registration(slot_id, user_id, approved_by))


@router.put("/{slot_id}/registrations/{user_id}/reject", response_model=SlotResponse)
async def reject_registration(
    slot_id: int,
    user_id: int,
    data: Optional[RejectRegistrationRequest] = None,
    admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    reason = data.reason if data else None
    rejected_by = (data.rejectedBy if data else None) or admin
    return slot_response(service.reject_registration(slot_id, user_id, reason, rejected_by))


# ============================================================================
# MEETING LINK & ADMIN
# ============================================================================


@router.post("/{slot_id}/generate-meet", response_model=RegistrationResultResponse)
async def generate_meet(
    slot_id: int,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    """Create the Google Meet link of a slot and send confirmations to its registrants"""
    result = await service.generate_meet_and_notify(slot_id)
    return RegistrationResultResponse(
        slot=slot_response(result.slot),
        sideEffects=[attempt_response(a) for a in result.side_effects],
    )


@router.post("/{slot_id}/notify")
async def send_confirmations(
    slot_id: int,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    attempts = await service.send_confirmation_notifications(service.get_slot(slot_id))
    return {
        "success": True,
        "sent": sum(1 for a in attempts if a.succeeded),
        "failed": sum(1 for a in attempts if not a.succeeded),
        "results": [attempt_response(a) for a in attempts],
    }


@router.patch("/{slot_id}", response_model=SlotResponse)
async def update_slot(
    slot_id: int,
    data: SlotUpdate,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    return slot_response(service.update_slot(slot_id, data))


@router.delete("/{slot_id}")
async def delete_slot(
    slot_id: int,
    _admin: str = Depends(get_current_admin),
    service: SlotService = Depends(get_slot_service),
):
    """Delete a slot without registrations"""
    service.delete_slot(slot_id)
    return {"success": True, "message": "Slot deleted"}
