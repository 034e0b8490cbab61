"""Schedule repository - Database operations for schedule configurations and slot generation"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ScheduleConfig, Slot, User


class ScheduleRepository:
    """Repository for schedule configuration database operations"""

    @staticmethod
    def get_configs(db: Session) -> list[ScheduleConfig]:
        return db.query(ScheduleConfig).order_by(ScheduleConfig.created_at.desc(), ScheduleConfig.id.desc()).all()

    @staticmethod
    def get_config_by_id(db: Session, config_id: int) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).filter(ScheduleConfig.id == config_id).first()

    @staticmethod
    def get_config_by_name(db: Session, name: str) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).filter(ScheduleConfig.name == name).first()

    @staticmethod
    def get_active_config(db: Session) -> Optional[ScheduleConfig]:
        return db.query(ScheduleConfig).filter(ScheduleConfig.is_active.is_(True)).first()

    @staticmethod
    def deactivate_all(db: Session, except_id: Optional[int] = None) -> int:
        """Clear the active flag on every config; runs inside the caller's transaction"""
        query = db.query(ScheduleConfig).filter(ScheduleConfig.is_active.is_(True))
        if except_id is not None:
            query = query.filter(ScheduleConfig.id != except_id)
        return query.update({ScheduleConfig.is_active: False}, synchronize_session="fetch")

    @staticmethod
    def existing_slot_keys(db: Session, start_date: date, end_date: date) -> set[tuple[date, str]]:
        """(date, start_time) of every slot in the range"""
        rows = (
            db.query(Slot.date, Slot.start_time)
            .filter(Slot.date >= start_date, Slot.date <= end_date)
            .all()
        )
        return {(row[0], row[1]) for row in rows}

    @staticmethod
    def count_slots(db: Session, status: Optional[str] = None) -> int:
        query = db.query(Slot)
        if status:
            query = query.filter(Slot.status == status)
        return query.count()

    @staticmethod
    def count_upcoming_slots(db: Session, start_date: date, end_date: date, statuses: tuple) -> int:
        return (
            db.query(Slot)
            .filter(Slot.date >= start_date, Slot.date <= end_date, Slot.status.in_(statuses))
            .count()
        )

    @staticmethod
    def get_empty_slots(db: Session) -> list[Slot]:
        return db.query(Slot).filter(~Slot.registrations.any()).all()

    @staticmethod
    def release_users_from_slots(db: Session, slot_ids: list[int]) -> int:
        """Null out User.slot_id for users pointing at the given slots"""
        if not slot_ids:
            return 0
        return (
            db.query(User)
            .filter(User.slot_id.in_(slot_ids))
            .update({User.slot_id: None}, synchronize_session="fetch")
        )

    @staticmethod
    def get_stale_slots(db: Session, before: date, statuses: tuple) -> list[Slot]:
        return db.query(Slot).filter(Slot.date < before, Slot.status.in_(statuses)).all()

    @staticmethod
    def attach_orphan_slots(db: Session, config_id: int) -> int:
        """Point slots without a config at the given one"""
        return (
            db.query(Slot)
            .filter(Slot.config_id.is_(None))
            .update({Slot.config_id: config_id}, synchronize_session="fetch")
        )
