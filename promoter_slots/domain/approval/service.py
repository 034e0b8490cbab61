"""Approval service - Promotes candidates who attended a meeting"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...email_service import EmailNotifier
from ...errors import DomainError, NotAttended, NotFoundError, ValidationError
from ...models import USER_APPROVED, USER_MEETING_HELD, USER_REJECTED, DeliveryAttempt, User
from ...services.notification_service import send_approval_notification
from ...shared.user_states import transition_user
from ..users.service import UserService
from .repository import ApprovalRepository

logger = logging.getLogger(__name__)


class ApprovalService:
    """Service layer for the approval workflow"""

    def __init__(self, db: Session, notifier=None):
        self.db = db
        self.repo = ApprovalRepository()
        self.notifier = notifier or EmailNotifier()

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_attended_candidates(
        self,
        state: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[dict]:
        """
        Users with at least one attended meeting, most recent meeting first.

        Each candidate is {"user": User, "meetings": [...]}. The date filter
        keeps candidates with an attended meeting inside the range.
        """
        candidates: dict[int, dict] = {}
        for record in self.repo.get_positive_attendance(self.db):
            entry = candidates.setdefault(record.user_id, {"user": record.user, "meetings": []})
            entry["meetings"].append(
                {
                    "slotId": record.slot_id,
                    "date": record.slot.date,
                    "startTime": record.slot.start_time,
                    "endTime": record.slot.end_time,
                    "markedAt": record.marked_at,
                }
            )

        result = list(candidates.values())

        if state:
            result = [c for c in result if c["user"].state == state]

        if start_date or end_date:
            low = start_date or date.min
            high = end_date or date.max
            result = [c for c in result if any(low <= m["date"] <= high for m in c["meetings"])]

        for candidate in result:
            candidate["meetings"].sort(key=lambda m: (m["date"], m["startTime"]), reverse=True)
        result.sort(key=lambda c: (c["meetings"][0]["date"], c["meetings"][0]["startTime"]), reverse=True)
        return result

    async def approve_user(self, user_id: int, approved_by: str) -> tuple[User, Optional[DeliveryAttempt]]:
        """
        Approve a candidate who attended at least one meeting.

        Raises:
            NotAttended: no attended meeting on record
            InvalidStateTransition: the user was already rejected
        """
        user = self._get_user(user_id)

        if not self.repo.has_attended(self.db, user_id):
            raise NotAttended()

        if user.state == USER_APPROVED and user.approval_email_sent:
            logger.info(f"ℹ️ User {user_id} already approved")
            return user, None

        transition_user(user, USER_APPROVED)
        user.approved_at = datetime.utcnow()
        user.approved_by = approved_by
        user.rejection_reason = None
        self.db.commit()
        logger.info(f"✅ User {user_id} approved by {approved_by}")

        attempt = await send_approval_notification(self.db, user, self.notifier)
        self.db.refresh(user)
        return user, attempt

    def reject_user(self, user_id: int, reason: str, rejected_by: str) -> User:
        if not reason or not reason.strip():
            raise ValidationError("A rejection reason is required")

        user = self._get_user(user_id)
        transition_user(user, USER_REJECTED)
        user.rejection_reason = reason.strip()
        user.approved_at = datetime.utcnow()
        user.approved_by = rejected_by
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"✅ User {user_id} rejected by {rejected_by}")
        return user

    async def bulk_approve(self, user_ids: list[int], approved_by: str) -> list[dict]:
        """Approve each user independently; failures are reported per id"""
        results = []
        for user_id in user_ids:
            try:
                await self.approve_user(user_id, approved_by)
                results.append({"userId": user_id, "success": True, "message": "Approved"})
            except DomainError as e:
                self.db.rollback()
                results.append({"userId": user_id, "success": False, "message": e.message})

        approved = sum(1 for r in results if r["success"])
        logger.info(f"✅ Bulk approve: {approved}/{len(user_ids)} approved")
        return results

    def approval_statistics(self) -> dict:
        return {
            "approved": self.repo.count_by_state(self.db, USER_APPROVED),
            "rejected": self.repo.count_by_state(self.db, USER_REJECTED),
            "meetingHeld": self.repo.count_by_state(self.db, USER_MEETING_HELD),
            "pendingApproval": self.repo.count_pending_approval(self.db),
        }

    def remove_candidate(self, user_id: int) -> None:
        UserService(self.db).delete_user(user_id)
