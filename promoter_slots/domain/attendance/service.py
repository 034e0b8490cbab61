"""Attendance service - Recording and reporting meeting attendance"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import NotFoundError, ValidationError
from ...models import USER_MEETING_HELD, Attendance, Slot, User
from ...shared.user_states import advance_user
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    """Service layer for attendance business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AttendanceRepository()

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def _get_slot(self, slot_id: int) -> Slot:
        slot = self.db.query(Slot).filter(Slot.id == slot_id).first()
        if not slot:
            raise NotFoundError("Slot not found")
        return slot

    def mark_attendance(
        self,
        user_id: int,
        slot_id: Optional[int],
        attended: Optional[bool],
        notes: Optional[str] = None,
        marked_by: Optional[str] = None,
    ) -> Attendance:
        """
        Create or update the single attendance record of a user for a slot.

        attended=True stamps marked_at and moves the user to meeting_held;
        False or None clears marked_at.
        """
        user = self._get_user(user_id)
        slot_id = slot_id if slot_id is not None else user.slot_id
        if slot_id is None:
            raise ValidationError("slotId is required when the user has no assigned slot")
        self._get_slot(slot_id)

        record = self.repo.get_record(self.db, user_id, slot_id)
        if record is None:
            record = Attendance(user_id=user_id, slot_id=slot_id)
            self.db.add(record)

        self._apply(record, user, attended, notes, marked_by)

        try:
            self.db.commit()
        except IntegrityError:
            # Created concurrently; update the winning row instead
            self.db.rollback()
            record = self.repo.get_record(self.db, user_id, slot_id)
            user = self._get_user(user_id)
            self._apply(record, user, attended, notes, marked_by)
            self.db.commit()

        self.db.refresh(record)
        logger.info(f"✅ Attendance marked: user {user_id}, slot {slot_id}, attended={attended}")
        return record

    @staticmethod
    def _apply(record: Attendance, user: User, attended, notes, marked_by) -> None:
        record.attended = attended
        record.notes = notes or ""
        record.marked_by = marked_by or ""
        record.marked_at = datetime.utcnow() if attended is True else None

        if attended is True:
            user.attended = True
            advance_user(user, USER_MEETING_HELD)
        elif attended is False:
            user.attended = False

    def bulk_create_for_slot(self, slot_id: int) -> dict:
        """Create an unmarked record for every registered user that has none"""
        slot = self._get_slot(slot_id)
        created, skipped, failed = [], [], []

        for registration in list(slot.registrations):
            user_id = registration.user_id
            try:
                if self.repo.get_record(self.db, user_id, slot_id):
                    skipped.append(user_id)
                    continue
                self.db.add(Attendance(user_id=user_id, slot_id=slot_id, attended=None))
                self.db.commit()
                created.append(user_id)
            except IntegrityError as e:
                self.db.rollback()
                logger.error(f"❌ Failed to create attendance for user {user_id} in slot {slot_id}: {e.orig}")
                failed.append({"userId": user_id, "error": str(e.orig)})

        logger.info(
            f"✅ Bulk attendance for slot {slot_id}: {len(created)} created, "
            f"{len(skipped)} skipped, {len(failed)} failed"
        )
        return {"created": created, "skipped": skipped, "failed": failed}

    # ========================================================================
    # READ PROJECTIONS
    # ========================================================================

    def slot_stats(self, slot_id: int) -> dict:
        slot = self._get_slot(slot_id)
        by_user = {r.user_id: r.attended for r in self.repo.get_records_for_slot(self.db, slot_id)}

        attended = absent = unmarked = 0
        for registration in slot.registrations:
            value = by_user.get(registration.user_id)
            if value is True:
                attended += 1
            elif value is False:
                absent += 1
            else:
                unmarked += 1

        return {
            "slotId": slot.id,
            "registered": slot.registered_count,
            "attended": attended,
            "absent": absent,
            "unmarked": unmarked,
        }

    def summary(self) -> dict:
        attended = self.repo.count(self.db, attended=True)
        absent = self.repo.count(self.db, attended=False)
        marked = attended + absent
        return {
            "totalRecords": self.repo.count(self.db),
            "attended": attended,
            "absent": absent,
            "unmarked": self.repo.count(self.db, unmarked=True),
            "attendanceRate": round(attended / marked * 100, 1) if marked else 0.0,
        }

    def list_attendance(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        attended: Optional[bool] = None,
    ) -> list[Attendance]:
        return self.repo.get_records(self.db, start_date, end_date, attended)

    def user_history(self, user_id: int) -> list[Attendance]:
        self._get_user(user_id)
        return self.repo.get_records_for_user(self.db, user_id)

    def attendance_lists(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> dict:
        """Registered users grouped into attended / absent / pending by their attendance record"""
        query = self.db.query(Slot)
        if start_date:
            query = query.filter(Slot.date >= start_date)
        if end_date:
            query = query.filter(Slot.date <= end_date)
        slots = query.order_by(Slot.date, Slot.start_time).all()

        records = self.repo.get_records_for_slots(self.db, [s.id for s in slots])
        by_key = {(r.user_id, r.slot_id): r.attended for r in records}

        lists = {"attended": [], "absent": [], "pending": []}
        for slot in slots:
            for registration in slot.registrations:
                user = registration.user
                entry = {
                    "slotId": slot.id,
                    "date": slot.date.isoformat(),
                    "startTime": slot.start_time,
                    "endTime": slot.end_time,
                    "user": {
                        "id": user.id,
                        "name": user.name,
                        "surname": user.surname,
                        "email": user.email,
                        "phone": user.phone,
                        "state": user.state,
                    },
                    "approvalState": registration.approval_state,
                    "registeredAt": registration.registered_at.isoformat() if registration.registered_at else None,
                }
                value = by_key.get((user.id, slot.id))
                if value is True:
                    lists["attended"].append(entry)
                elif value is False:
                    lists["absent"].append(entry)
                else:
                    lists["pending"].append(entry)

        return lists
