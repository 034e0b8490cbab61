"""Approval router - FastAPI endpoints for the approval workflow"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...database import get_db
from ...dependencies import get_notifier
from ..users.schemas import UserResponse, user_response
from .schemas import (
    ApprovalResultResponse,
    ApprovalStatistics,
    ApproveRequest,
    AttendedMeeting,
    BulkApproveItem,
    BulkApproveRequest,
    CandidateResponse,
    RejectRequest,
)
from .service import ApprovalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/approval", tags=["Approval"])


def get_approval_service(db: Session = Depends(get_db), notifier=Depends(get_notifier)) -> ApprovalService:
    """Dependency injection for ApprovalService"""
    return ApprovalService(db, notifier=notifier)


@router.get("/candidates", response_model=list[CandidateResponse])
async def list_candidates(
    state: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    _admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    """Candidates who attended at least one meeting"""
    candidates = service.list_attended_candidates(state, start_date, end_date)
    return [
        CandidateResponse(
            user=user_response(c["user"]),
            attendedMeetings=[AttendedMeeting(**m) for m in c["meetings"]],
        )
        for c in candidates
    ]


@router.get("/statistics", response_model=ApprovalStatistics)
async def approval_statistics(
    _admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    return ApprovalStatistics(**service.approval_statistics())


@router.put("/bulk-approve", response_model=list[BulkApproveItem])
async def bulk_approve(
    data: BulkApproveRequest,
    admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    results = await service.bulk_approve(data.userIds, data.approvedBy or admin)
    return [BulkApproveItem(**r) for r in results]


@router.put("/{user_id}/approve", response_model=ApprovalResultResponse)
async def approve_user(
    user_id: int,
    data: Optional[ApproveRequest] = None,
    admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    """Approve a candidate and send the approval email"""
    approved_by = (data.approvedBy if data else None) or admin
    user, attempt = await service.approve_user(user_id, approved_by)
    return ApprovalResultResponse(
        user=user_response(user),
        emailSent=attempt.succeeded if attempt else None,
        emailError=attempt.error if attempt else None,
    )


@router.put("/{user_id}/reject", response_model=UserResponse)
async def reject_user(
    user_id: int,
    data: RejectRequest,
    admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    return user_response(service.reject_user(user_id, data.reason, data.rejectedBy or admin))


@router.delete("/{user_id}")
async def remove_candidate(
    user_id: int,
    _admin: str = Depends(get_current_admin),
    service: ApprovalService = Depends(get_approval_service),
):
    service.remove_candidate(user_id)
    return {"success": True, "message": "Candidate removed"}
