"""Slot repository - Database operations for slots and registrations"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Slot, SlotRegistration, User


class SlotRepository:
    """Repository for slot database operations"""

    @staticmethod
    def get_slot_by_id(db: Session, slot_id: int) -> Optional[Slot]:
        return db.query(Slot).filter(Slot.id == slot_id).first()

    @staticmethod
    def get_slot_for_update(db: Session, slot_id: int) -> Optional[Slot]:
        """Load a slot holding a row lock until the transaction ends"""
        return (
            db.query(Slot)
            .filter(Slot.id == slot_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_registration(db: Session, slot_id: int, user_id: int) -> Optional[SlotRegistration]:
        return (
            db.query(SlotRegistration)
            .filter(SlotRegistration.slot_id == slot_id, SlotRegistration.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_slots(
        db: Session,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        statuses: Optional[tuple] = None,
    ) -> list[Slot]:
        """Slots ordered by date and start time, optionally filtered"""
        query = db.query(Slot)
        if start_date:
            query = query.filter(Slot.date >= start_date)
        if end_date:
            query = query.filter(Slot.date <= end_date)
        if statuses:
            query = query.filter(Slot.status.in_(statuses))
        return query.order_by(Slot.date, Slot.start_time).all()

    @staticmethod
    def get_slots_on(db: Session, day: date) -> list[Slot]:
        return db.query(Slot).filter(Slot.date == day).order_by(Slot.start_time).all()

    @staticmethod
    def count_slots(db: Session, status: Optional[str] = None) -> int:
        query = db.query(Slot)
        if status:
            query = query.filter(Slot.status == status)
        return query.count()

    @staticmethod
    def count_slots_with_registrations(db: Session) -> int:
        return db.query(Slot).filter(Slot.registrations.any()).count()

    @staticmethod
    def count_users(db: Session, state: Optional[str] = None) -> int:
        query = db.query(User)
        if state:
            query = query.filter(User.state == state)
        return query.count()

    @staticmethod
    def release_users(db: Session, slot_id: int) -> int:
        return (
            db.query(User)
            .filter(User.slot_id == slot_id)
            .update({User.slot_id: None}, synchronize_session="fetch")
        )

    @staticmethod
    def delete_slot(db: Session, slot: Slot) -> None:
        db.delete(slot)
        db.commit()
