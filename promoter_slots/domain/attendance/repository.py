"""Attendance repository - Database operations for attendance records"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Attendance, Slot


class AttendanceRepository:
    """Repository for attendance database operations"""

    @staticmethod
    def get_record(db: Session, user_id: int, slot_id: int) -> Optional[Attendance]:
        return (
            db.query(Attendance)
            .filter(Attendance.user_id == user_id, Attendance.slot_id == slot_id)
            .first()
        )

    @staticmethod
    def get_records_for_slot(db: Session, slot_id: int) -> list[Attendance]:
        return db.query(Attendance).filter(Attendance.slot_id == slot_id).all()

    @staticmethod
    def get_records_for_slots(db: Session, slot_ids: list[int]) -> list[Attendance]:
        if not slot_ids:
            return []
        return db.query(Attendance).filter(Attendance.slot_id.in_(slot_ids)).all()

    @staticmethod
    def get_records_for_user(db: Session, user_id: int) -> list[Attendance]:
        return (
            db.query(Attendance)
            .join(Slot, Attendance.slot_id == Slot.id)
            .options(joinedload(Attendance.slot))
            .filter(Attendance.user_id == user_id)
            .order_by(Slot.date.desc(), Slot.start_time.desc())
            .all()
        )

    @staticmethod
    def get_records(
        db: Session,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        attended: Optional[bool] = None,
    ) -> list[Attendance]:
        """Records filtered by slot date range and attended value, newest meetings first"""
        query = (
            db.query(Attendance)
            .join(Slot, Attendance.slot_id == Slot.id)
            .options(joinedload(Attendance.slot), joinedload(Attendance.user))
        )
        if start_date:
            query = query.filter(Slot.date >= start_date)
        if end_date:
            query = query.filter(Slot.date <= end_date)
        if attended is not None:
            query = query.filter(Attendance.attended.is_(attended))
        return query.order_by(Slot.date.desc(), Slot.start_time.desc()).all()

    @staticmethod
    def count(db: Session, attended: Optional[bool] = None, unmarked: bool = False) -> int:
        query = db.query(Attendance)
        if unmarked:
            query = query.filter(Attendance.attended.is_(None))
        elif attended is not None:
            query = query.filter(Attendance.attended.is_(attended))
        return query.count()
