"""Attendance router - FastAPI endpoints for attendance tracking"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from .schemas import (
    AttendanceResponse,
    AttendanceSummary,
    BulkAttendanceResponse,
    MarkAttendanceRequest,
    SlotAttendanceStats,
    attendance_response,
)
from .service import AttendanceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attendance", tags=["Attendance"])


def get_attendance_service(db: Session = Depends(get_db)) -> AttendanceService:
    """Dependency injection for AttendanceService"""
    return AttendanceService(db)


@router.post("", response_model=AttendanceResponse)
async def mark_attendance(
    data: MarkAttendanceRequest,
    admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Mark (or re-mark) a user's attendance"""
    record = service.mark_attendance(
        user_id=data.userId,
        slot_id=data.slotId,
        attended=data.attended,
        notes=data.notes,
        marked_by=data.markedBy or admin,
    )
    return attendance_response(record)


@router.get("", response_model=list[AttendanceResponse])
async def list_attendance(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    attended: Optional[bool] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    return [attendance_response(r) for r in service.list_attendance(start_date, end_date, attended)]


@router.get("/summary", response_model=AttendanceSummary)
async def attendance_summary(
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    return AttendanceSummary(**service.summary())


@router.get("/lists")
async def attendance_lists(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    return {"success": True, "data": service.attendance_lists(start_date, end_date)}


@router.get("/user/{user_id}", response_model=list[AttendanceResponse])
async def user_history(
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    return [attendance_response(r) for r in service.user_history(user_id)]


@router.get("/slot/{slot_id}/stats", response_model=SlotAttendanceStats)
async def slot_stats(
    slot_id: int,
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    return SlotAttendanceStats(**service.slot_stats(slot_id))


@router.post("/slot/{slot_id}/bulk", response_model=BulkAttendanceResponse)
async def bulk_create_for_slot(
    slot_id: int,
    _admin: str = Depends(get_current_admin),
    service: AttendanceService = Depends(get_attendance_service),
):
    """Create unmarked attendance rows for every registrant of a slot"""
    return BulkAttendanceResponse(**service.bulk_create_for_slot(slot_id))
