"""Slot service - Registration state machine, meeting links and slot queries"""

import logging
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_MEETING_DURATION_MINUTES, DEFAULT_TIME_ZONE
from ...email_service import EmailNotifier
from ...errors import (
    AlreadyRegistered,
    AlreadyScheduled,
    ExternalServiceError,
    NotFoundError,
    PreconditionFailedError,
    RegistrationNotFound,
    SlotFull,
    SlotHasRegistrations,
    SlotNotBookable,
    ValidationError,
)
from ...models import (
    REGISTRATION_APPROVED,
    REGISTRATION_PENDING,
    REGISTRATION_REJECTED,
    SLOT_AVAILABLE,
    SLOT_FULL,
    USER_APPROVED,
    USER_PENDING,
    USER_SCHEDULED,
    DeliveryAttempt,
    Slot,
    SlotRegistration,
    User,
)
from ...services.google_calendar_service import GoogleCalendarService
from ...services.notification_service import KIND_MEETING_LINK, record_attempt, send_slot_confirmations
from ...shared.user_states import advance_user, transition_user
from ..schedule.service import ScheduleService, week_bounds
from .repository import SlotRepository
from .schemas import SlotUpdate

logger = logging.getLogger(__name__)


class RegistrationResult(NamedTuple):
    slot: Slot
    side_effects: list[DeliveryAttempt]


class SlotService:
    """Service layer for slot business logic"""

    def __init__(self, db: Session, meeting_provider=None, notifier=None):
        self.db = db
        self.repo = SlotRepository()
        self.meeting_provider = meeting_provider or GoogleCalendarService(db)
        self.notifier = notifier or EmailNotifier()

    def get_slot(self, slot_id: int) -> Slot:
        slot = self.repo.get_slot_by_id(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot not found")
        return slot

    def _get_user(self, user_id: int) -> User:
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # ========================================================================
    # REGISTRATION
    # ========================================================================

    async def register(self, slot_id: int, user_id: int) -> RegistrationResult:
        """
        Register a user in a slot.

        The slot row stays locked from the capacity check until commit; the
        (slot_id, user_id) unique constraint backs the duplicate check.
        When this registration fills the slot, the meeting link and the
        confirmation emails are attempted and their outcomes recorded.

        Raises:
            AlreadyRegistered: user already holds a registration in the slot
            AlreadyScheduled: user holds a seat in another slot
            SlotFull: slot is at capacity
            SlotNotBookable: slot was completed or cancelled
        """
        slot = self.repo.get_slot_for_update(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot not found")
        user = self._get_user(user_id)

        if slot.registration_for(user_id):
            self.db.rollback()
            raise AlreadyRegistered()
        if (
            user.slot_id is not None
            and user.slot_id != slot.id
            and self.repo.get_registration(self.db, user.slot_id, user.id)
        ):
            self.db.rollback()
            raise AlreadyScheduled(f"User already holds a seat in slot {user.slot_id}")
        if slot.status not in (SLOT_AVAILABLE, SLOT_FULL):
            self.db.rollback()
            raise SlotNotBookable(f"Slot is {slot.status}")
        if slot.is_full:
            self.db.rollback()
            raise SlotFull()

        was_full = slot.status == SLOT_FULL
        slot.registrations.append(
            SlotRegistration(
                user_id=user.id,
                registered_at=datetime.utcnow(),
                approval_state=REGISTRATION_PENDING,
            )
        )
        user.slot_id = slot.id
        advance_user(user, USER_SCHEDULED)
        slot.sync_status()

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Duplicate registration blocked by constraint: user {user_id}, slot {slot_id}")
            raise AlreadyRegistered() from e

        self.db.refresh(slot)
        logger.info(
            f"✅ User {user_id} registered in slot {slot_id} ({slot.registered_count}/{slot.max_capacity})"
        )

        side_effects = []
        if slot.status == SLOT_FULL and not was_full:
            logger.info(f"🎯 Slot {slot.id} is full, generating meeting link and confirmations")
            side_effects = await self._on_filled(slot)

        return RegistrationResult(slot=slot, side_effects=side_effects)

    async def _on_filled(self, slot: Slot) -> list[DeliveryAttempt]:
        """Best-effort follow-up of a slot reaching capacity; never undoes the registration"""
        attempts = []
        try:
            await self.generate_meeting_link(slot)
            attempts.append(record_attempt(self.db, KIND_MEETING_LINK, True, slot_id=slot.id))
        except ExternalServiceError as e:
            logger.error(f"❌ Meeting link generation failed for slot {slot.id}: {e.message}")
            self.db.rollback()
            attempts.append(record_attempt(self.db, KIND_MEETING_LINK, False, slot_id=slot.id, error=e.message))
        self.db.commit()

        attempts.extend(await self.send_confirmation_notifications(slot))
        return attempts

    def unregister(self, slot_id: int, user_id: int) -> Slot:
        """Remove a user's registration; absent registrations are a no-op"""
        slot = self.repo.get_slot_for_update(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot not found")

        registration = slot.registration_for(user_id)
        if not registration:
            self.db.rollback()
            return slot

        slot.registrations.remove(registration)

        user = registration.user or self.repo.get_user_by_id(self.db, user_id)
        if user and user.slot_id == slot.id:
            user.slot_id = None
            if user.state == USER_SCHEDULED:
                transition_user(user, USER_PENDING)

        slot.sync_status()
        self.db.commit()
        self.db.refresh(slot)

        logger.info(f"✅ User {user_id} removed from slot {slot_id}")
        return slot

    def approve_registration(self, slot_id: int, user_id: int, approved_by: str) -> Slot:
        slot = self.get_slot(slot_id)
        registration = slot.registration_for(user_id)
        if not registration:
            raise RegistrationNotFound()

        registration.approval_state = REGISTRATION_APPROVED
        registration.approved_at = datetime.utcnow()
        registration.approved_by = approved_by
        registration.rejection_reason = None
        self.db.commit()
        self.db.refresh(slot)

        logger.info(f"✅ Registration approved: user {user_id}, slot {slot_id} by {approved_by}")
        return slot

    def reject_registration(
        self, slot_id: int, user_id: int, reason: Optional[str], rejected_by: str
    ) -> Slot:
        slot = self.get_slot(slot_id)
        registration = slot.registration_for(user_id)
        if not registration:
            raise RegistrationNotFound()

        registration.approval_state = REGISTRATION_REJECTED
        registration.approved_at = datetime.utcnow()
        registration.approved_by = rejected_by
        registration.rejection_reason = reason
        self.db.commit()
        self.db.refresh(slot)

        logger.info(f"✅ Registration rejected: user {user_id}, slot {slot_id} by {rejected_by}")
        return slot

    # ========================================================================
    # MEETING LINK & NOTIFICATIONS
    # ========================================================================

    async def generate_meeting_link(self, slot: Slot) -> str:
        """
        Create the Google Meet link of a slot, or return the existing one.

        Duration comes from the owning configuration's template for this time
        window and falls back to the default meeting length.
        """
        if slot.meeting_link:
            return slot.meeting_link

        config = slot.config
        template = config.template_for(slot.start_time, slot.end_time) if config else None
        duration = template.duration_minutes if template else DEFAULT_MEETING_DURATION_MINUTES
        time_zone = config.time_zone if config else DEFAULT_TIME_ZONE

        start = datetime.strptime(f"{slot.date.isoformat()} {slot.start_time}", "%Y-%m-%d %H:%M")
        end = start + timedelta(minutes=duration)
        attendees = [r.user.email for r in slot.registrations if r.user and r.user.email]

        event = await self.meeting_provider.create_meet_event(
            summary=f"Reunión Promotoras - {slot.start_time}",
            description=(
                "Reunión informativa del Programa de Promotoras\n"
                f"Duración: {duration} minutos\n"
                f"Capacidad: {slot.max_capacity} personas"
            ),
            start=start,
            end=end,
            time_zone=time_zone,
            attendee_emails=attendees,
            request_id=f"meet-{slot.id}-{int(datetime.utcnow().timestamp() * 1000)}",
        )

        slot.meeting_link = event.join_url
        slot.meeting_id = event.event_id
        self.db.commit()

        logger.info(f"✅ Meeting link stored for slot {slot.id}")
        return slot.meeting_link

    async def send_confirmation_notifications(self, slot: Slot) -> list[DeliveryAttempt]:
        return await send_slot_confirmations(self.db, slot, self.notifier)

    async def generate_meet_and_notify(self, slot_id: int) -> RegistrationResult:
        """Admin trigger: create the meeting link of a slot with registrants and confirm them"""
        slot = self.get_slot(slot_id)
        if not slot.registrations:
            raise PreconditionFailedError("Slot has no registered users")

        await self.generate_meeting_link(slot)
        attempts = await self.send_confirmation_notifications(slot)
        self.db.refresh(slot)
        return RegistrationResult(slot=slot, side_effects=attempts)

    # ========================================================================
    # ADMIN
    # ========================================================================

    def update_slot(self, slot_id: int, data: SlotUpdate) -> Slot:
        slot = self.get_slot(slot_id)

        if data.maxCapacity is not None:
            if data.maxCapacity < slot.registered_count:
                raise ValidationError(
                    f"Capacity cannot be lower than the {slot.registered_count} registered users"
                )
            slot.max_capacity = data.maxCapacity
        if data.description is not None:
            slot.description = data.description
        if data.status is not None:
            # available / full always follow the registration count
            slot.status = SLOT_AVAILABLE if data.status in (SLOT_AVAILABLE, SLOT_FULL) else data.status
        slot.sync_status()

        self.db.commit()
        self.db.refresh(slot)
        logger.info(f"✅ Slot {slot_id} updated (status={slot.status})")
        return slot

    def delete_slot(self, slot_id: int) -> None:
        """Delete a slot that has no registrations"""
        slot = self.get_slot(slot_id)
        if slot.registrations:
            raise SlotHasRegistrations()

        self.repo.release_users(self.db, slot.id)
        self.repo.delete_slot(self.db, slot)
        logger.info(f"🗑️ Slot {slot_id} deleted")

    # ========================================================================
    # QUERIES
    # ========================================================================

    def list_slots(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None,
    ) -> list[Slot]:
        return self.repo.get_slots(self.db, start_date, end_date, (status,) if status else None)

    def list_available(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> list[Slot]:
        """Bookable slots (available or full) so clients can show occupancy"""
        return self.repo.get_slots(self.db, start_date, end_date, (SLOT_AVAILABLE, SLOT_FULL))

    def list_week(self, day: date) -> list[Slot]:
        """Slots of the Monday-based week containing `day`, generated on first request"""
        week_start, week_end = week_bounds(day)
        slots = self.repo.get_slots(self.db, week_start, week_end)
        if slots:
            return slots

        logger.info(f"🔄 No slots for week {week_start}, generating")
        ScheduleService(self.db).generate_slots_for_week(day)
        return self.repo.get_slots(self.db, week_start, week_end)

    def list_today(self) -> list[Slot]:
        return self.repo.get_slots_on(self.db, date.today())

    def list_filled(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> list[Slot]:
        return self.repo.get_slots(self.db, start_date, end_date, (SLOT_FULL,))

    def appointments_by_day(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> dict[str, dict]:
        """Slots grouped by ISO date with the number of registrations per day"""
        grouped: dict[str, dict] = {}
        for slot in self.repo.get_slots(self.db, start_date, end_date):
            key = slot.date.isoformat()
            day = grouped.setdefault(key, {"date": key, "totalAppointments": 0, "slots": []})
            day["totalAppointments"] += slot.registered_count
            day["slots"].append(slot)
        return grouped

    def appointments_on(self, day: date) -> list[Slot]:
        return self.repo.get_slots_on(self.db, day)

    def stats(self) -> dict:
        total = self.repo.count_slots(self.db)
        full = self.repo.count_slots(self.db, SLOT_FULL)
        total_users = self.repo.count_users(self.db)
        scheduled = self.repo.count_users(self.db, USER_SCHEDULED)
        approved = self.repo.count_users(self.db, USER_APPROVED)

        return {
            "slots": {
                "total": total,
                "withUsers": self.repo.count_slots_with_registrations(self.db),
                "full": full,
                "available": self.repo.count_slots(self.db, SLOT_AVAILABLE),
            },
            "users": {
                "total": total_users,
                "scheduled": scheduled,
                "approved": approved,
                "pending": self.repo.count_users(self.db, USER_PENDING),
            },
        }
