"""User router - FastAPI endpoints for promoter candidates"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...dependencies import get_meeting_provider, get_notifier
from ..slots.schemas import RegistrationResultResponse, attempt_response, slot_response
from ..slots.service import SlotService
from .schemas import (
    AssignSlotRequest,
    InvitationResponse,
    UserCreate,
    UserImportRequest,
    UserImportResponse,
    UserResponse,
    user_response,
)
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    db: Session = Depends(get_db),
    meeting_provider=Depends(get_meeting_provider),
    notifier=Depends(get_notifier),
) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db, SlotService(db, meeting_provider=meeting_provider, notifier=notifier))


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(data: UserCreate, service: UserService = Depends(get_user_service)):
    """Public registration form"""
    return user_response(service.create_user(data))


@router.get("", response_model=list[UserResponse])
async def list_users(
    state: Optional[str] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return [user_response(u) for u in service.list_users(state)]


@router.post("/import", response_model=UserImportResponse)
async def import_users(
    data: UserImportRequest,
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    result = service.import_users(data.users)
    return UserImportResponse(**result)


@router.get("/invitation/{email}", response_model=InvitationResponse)
async def validate_invitation_email(email: str, service: UserService = Depends(get_user_service)):
    """Check that an invited email belongs to a registered candidate"""
    user = service.validate_invitation_email(email)
    return InvitationResponse(
        email=user.email,
        name=user.name,
        surname=user.surname,
        languages=user.languages or ["Español"],
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return user_response(service.get_user(user_id))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id)
    return {"success": True, "message": "User deleted"}


@router.post("/{user_id}/slot", response_model=RegistrationResultResponse)
async def assign_to_slot(
    user_id: int,
    data: AssignSlotRequest,
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    result = await service.assign_to_slot(user_id, data.slotId)
    return RegistrationResultResponse(
        slot=slot_response(result.slot),
        sideEffects=[attempt_response(a) for a in result.side_effects],
    )


@router.delete("/{user_id}/slot", response_model=UserResponse)
async def release_from_slot(
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return user_response(service.release_from_slot(user_id))
