"""Approval repository - Attendance-driven candidate queries"""

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ...models import USER_APPROVED, USER_REJECTED, Attendance, User


class ApprovalRepository:
    """Repository for approval workflow queries"""

    @staticmethod
    def get_positive_attendance(db: Session) -> list[Attendance]:
        return (
            db.query(Attendance)
            .options(joinedload(Attendance.user), joinedload(Attendance.slot))
            .filter(Attendance.attended.is_(True))
            .all()
        )

    @staticmethod
    def has_attended(db: Session, user_id: int) -> bool:
        return (
            db.query(Attendance)
            .filter(Attendance.user_id == user_id, Attendance.attended.is_(True))
            .first()
            is not None
        )

    @staticmethod
    def count_by_state(db: Session, state: str) -> int:
        return db.query(User).filter(User.state == state).count()

    @staticmethod
    def count_pending_approval(db: Session) -> int:
        """Users with an attended meeting and no decision yet"""
        attended_ids = select(Attendance.user_id).where(Attendance.attended.is_(True))
        return (
            db.query(User)
            .filter(User.id.in_(attended_ids), User.state.notin_((USER_APPROVED, USER_REJECTED)))
            .count()
        )
