"""Attendance domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel

from ...models import Attendance


class MarkAttendanceRequest(BaseModel):
    """Mark a user's attendance; slotId defaults to the user's current slot"""

    userId: int
    slotId: Optional[int] = None
    attended: Optional[bool] = None
    notes: Optional[str] = None
    markedBy: Optional[str] = None


class AttendanceResponse(BaseModel):
    id: int
    userId: int
    slotId: int
    attended: Optional[bool] = None
    markedAt: Optional[datetime] = None
    markedBy: Optional[str] = None
    notes: Optional[str] = None
    userName: Optional[str] = None
    userEmail: Optional[str] = None
    slotDate: Optional[date] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    meetingLink: Optional[str] = None


class BulkAttendanceResponse(BaseModel):
    success: bool = True
    created: list[int]
    skipped: list[int]
    failed: list[dict]


class SlotAttendanceStats(BaseModel):
    slotId: int
    registered: int
    attended: int
    absent: int
    unmarked: int


class AttendanceSummary(BaseModel):
    totalRecords: int
    attended: int
    absent: int
    unmarked: int
    attendanceRate: float


def attendance_response(record: Attendance) -> AttendanceResponse:
    user = record.user
    slot = record.slot
    return AttendanceResponse(
        id=record.id,
        userId=record.user_id,
        slotId=record.slot_id,
        attended=record.attended,
        markedAt=record.marked_at,
        markedBy=record.marked_by,
        notes=record.notes,
        userName=user.full_name if user else None,
        userEmail=user.email if user else None,
        slotDate=slot.date if slot else None,
        startTime=slot.start_time if slot else None,
        endTime=slot.end_time if slot else None,
        meetingLink=slot.meeting_link if slot else None,
    )
