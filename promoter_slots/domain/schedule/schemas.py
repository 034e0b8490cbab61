"""Schedule domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import MAX_SLOT_CAPACITY, MIN_SLOT_CAPACITY
from ...shared.validators import normalize_time, validate_week_days


class TimeSlotTemplateData(BaseModel):
    """A daily time window slots are generated from"""

    startTime: str
    endTime: str
    durationMinutes: int = Field(default=60, ge=15, le=480)
    capacity: int = Field(default=MAX_SLOT_CAPACITY, ge=MIN_SLOT_CAPACITY, le=MAX_SLOT_CAPACITY)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return normalize_time(v)

    @model_validator(mode="after")
    def check_window(self):
        if self.endTime <= self.startTime:
            raise ValueError("endTime must be after startTime")
        return self


class ScheduleConfigCreate(BaseModel):
    """Schema for creating a schedule configuration"""

    name: str = Field(..., min_length=1, max_length=255)
    startDate: date
    endDate: date
    allowedWeekDays: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    timeSlots: list[TimeSlotTemplateData] = Field(..., min_length=1)
    timeZone: str = "America/Mexico_City"
    isActive: bool = False
    autoCreateSlots: bool = True
    weeksInAdvance: int = Field(default=4, ge=1, le=12)

    @field_validator("allowedWeekDays")
    @classmethod
    def validate_days(cls, v):
        return validate_week_days(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must be on or after startDate")
        return self


class ScheduleConfigUpdate(BaseModel):
    """Schema for updating a schedule configuration"""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    allowedWeekDays: Optional[list[int]] = None
    timeSlots: Optional[list[TimeSlotTemplateData]] = None
    timeZone: Optional[str] = None
    isActive: Optional[bool] = None
    autoCreateSlots: Optional[bool] = None
    weeksInAdvance: Optional[int] = Field(default=None, ge=1, le=12)

    @field_validator("allowedWeekDays")
    @classmethod
    def validate_days(cls, v):
        if v is not None:
            return validate_week_days(v)
        return v

    @field_validator("timeSlots")
    @classmethod
    def validate_slots(cls, v):
        if v is not None and len(v) == 0:
            raise ValueError("At least one time slot is required")
        return v


class TimeSlotTemplateResponse(BaseModel):
    startTime: str
    endTime: str
    durationMinutes: int
    capacity: int


class ScheduleConfigResponse(BaseModel):
    """Schema for schedule configuration response"""

    id: int
    name: str
    startDate: date
    endDate: date
    allowedWeekDays: list[int]
    timeSlots: list[TimeSlotTemplateResponse]
    timeZone: str
    isActive: bool
    autoCreateSlots: bool
    weeksInAdvance: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GenerateWeekRequest(BaseModel):
    startDate: date
