"""Approval domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..users.schemas import UserResponse


class ApproveRequest(BaseModel):
    approvedBy: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = ""
    rejectedBy: Optional[str] = None


class BulkApproveRequest(BaseModel):
    userIds: list[int] = Field(..., min_length=1)
    approvedBy: Optional[str] = None


class AttendedMeeting(BaseModel):
    slotId: int
    date: date
    startTime: str
    endTime: str
    markedAt: Optional[datetime] = None


class CandidateResponse(BaseModel):
    user: UserResponse
    attendedMeetings: list[AttendedMeeting]


class ApprovalResultResponse(BaseModel):
    success: bool = True
    user: UserResponse
    emailSent: Optional[bool] = None
    emailError: Optional[str] = None


class BulkApproveItem(BaseModel):
    userId: int
    success: bool
    message: str


class ApprovalStatistics(BaseModel):
    approved: int
    rejected: int
    meetingHeld: int
    pendingApproval: int
