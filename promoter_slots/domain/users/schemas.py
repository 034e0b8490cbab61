"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import User
from ...shared.validators import validate_age, validate_email, validate_optional_phone, validate_phone


class UserCreate(BaseModel):
    """Schema for the promoter registration form"""

    name: str = Field(..., min_length=1, max_length=255)
    surname: str = Field(..., min_length=1, max_length=255)
    email: str
    phone: str
    age: int
    city: str = Field(..., min_length=1)
    zipCode: Optional[str] = None
    experience: str = Field(..., min_length=1)
    motivation: str = Field(..., min_length=1)
    availability: str = Field(..., min_length=1)
    languages: list[str] = Field(default_factory=lambda: ["Español"])

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("age")
    @classmethod
    def check_age(cls, v):
        return validate_age(v)

    @field_validator("languages")
    @classmethod
    def check_languages(cls, v):
        languages = [lang.strip() for lang in v if lang and lang.strip()]
        if not languages:
            raise ValueError("At least one language is required")
        return languages


class UserImportRow(BaseModel):
    """One imported row; only identity fields are mandatory"""

    name: str = Field(..., min_length=1)
    surname: str = Field(..., min_length=1)
    email: str
    phone: Optional[str] = None
    age: Optional[int] = None
    city: Optional[str] = None
    zipCode: Optional[str] = None
    experience: Optional[str] = None
    motivation: Optional[str] = None
    availability: Optional[str] = None
    languages: list[str] = Field(default_factory=lambda: ["Español"])

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_optional_phone(v)

    @field_validator("age")
    @classmethod
    def check_age(cls, v):
        return validate_age(v)


class UserImportRequest(BaseModel):
    users: list[dict[str, Any]]


class UserImportResponse(BaseModel):
    success: bool = True
    imported: int
    errors: int
    errorDetails: list[str]


class AssignSlotRequest(BaseModel):
    slotId: int


class InvitationResponse(BaseModel):
    email: str
    name: str
    surname: str
    languages: list[str]


class UserResponse(BaseModel):
    """Schema for user response"""

    id: int
    name: str
    surname: str
    email: str
    phone: Optional[str] = None
    age: Optional[int] = None
    city: Optional[str] = None
    zipCode: Optional[str] = None
    experience: Optional[str] = None
    motivation: Optional[str] = None
    availability: Optional[str] = None
    languages: list[str] = []
    slotId: Optional[int] = None
    state: str
    attended: Optional[bool] = None
    approvedAt: Optional[datetime] = None
    approvedBy: Optional[str] = None
    rejectionReason: Optional[str] = None
    approvalEmailSent: bool = False
    imported: bool = False
    created_at: Optional[datetime] = None


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        surname=user.surname,
        email=user.email,
        phone=user.phone,
        age=user.age,
        city=user.city,
        zipCode=user.zip_code,
        experience=user.experience,
        motivation=user.motivation,
        availability=user.availability,
        languages=user.languages or [],
        slotId=user.slot_id,
        state=user.state,
        attended=user.attended,
        approvedAt=user.approved_at,
        approvedBy=user.approved_by,
        rejectionReason=user.rejection_reason,
        approvalEmailSent=bool(user.approval_email_sent),
        imported=bool(user.imported),
        created_at=user.created_at,
    )
