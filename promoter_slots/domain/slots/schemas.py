"""Slot domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import MAX_SLOT_CAPACITY, MIN_SLOT_CAPACITY, SLOT_STATUSES, Slot, SlotRegistration


class RegisterRequest(BaseModel):
    userId: int


class ApproveRegistrationRequest(BaseModel):
    approvedBy: Optional[str] = None


class RejectRegistrationRequest(BaseModel):
    reason: Optional[str] = None
    rejectedBy: Optional[str] = None


class SlotUpdate(BaseModel):
    """Admin update of a slot"""

    status: Optional[str] = None
    description: Optional[str] = None
    maxCapacity: Optional[int] = Field(default=None, ge=MIN_SLOT_CAPACITY, le=MAX_SLOT_CAPACITY)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in SLOT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(SLOT_STATUSES)}")
        return v


class RegistrationResponse(BaseModel):
    userId: int
    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    userState: Optional[str] = None
    registeredAt: datetime
    approvalState: str
    approvedAt: Optional[datetime] = None
    approvedBy: Optional[str] = None
    rejectionReason: Optional[str] = None


class SlotResponse(BaseModel):
    """Schema for slot response"""

    id: int
    date: date
    startTime: str
    endTime: str
    maxCapacity: int
    status: str
    meetingLink: Optional[str] = None
    meetingId: Optional[str] = None
    description: str = ""
    configId: Optional[int] = None
    registeredCount: int
    availableCount: int
    isFull: bool
    approvedCount: int
    pendingCount: int
    registrations: list[RegistrationResponse] = []


class DeliveryAttemptResponse(BaseModel):
    kind: str
    recipient: Optional[str] = None
    userId: Optional[int] = None
    succeeded: bool
    error: Optional[str] = None


class RegistrationResultResponse(BaseModel):
    success: bool = True
    slot: SlotResponse
    sideEffects: list[DeliveryAttemptResponse] = []


def registration_response(registration: SlotRegistration) -> RegistrationResponse:
    user = registration.user
    return RegistrationResponse(
        userId=registration.user_id,
        name=user.name if user else None,
        surname=user.surname if user else None,
        email=user.email if user else None,
        phone=user.phone if user else None,
        userState=user.state if user else None,
        registeredAt=registration.registered_at,
        approvalState=registration.approval_state,
        approvedAt=registration.approved_at,
        approvedBy=registration.approved_by,
        rejectionReason=registration.rejection_reason,
    )


def slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        date=slot.date,
        startTime=slot.start_time,
        endTime=slot.end_time,
        maxCapacity=slot.max_capacity,
        status=slot.status,
        meetingLink=slot.meeting_link,
        meetingId=slot.meeting_id,
        description=slot.description or "",
        configId=slot.config_id,
        registeredCount=slot.registered_count,
        availableCount=slot.available_count,
        isFull=slot.is_full,
        approvedCount=slot.approved_count,
        pendingCount=slot.pending_count,
        registrations=[registration_response(r) for r in slot.registrations],
    )


def attempt_response(attempt) -> DeliveryAttemptResponse:
    return DeliveryAttemptResponse(
        kind=attempt.kind,
        recipient=attempt.recipient,
        userId=attempt.user_id,
        succeeded=attempt.succeeded,
        error=attempt.error,
    )
