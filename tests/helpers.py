"""Fake collaborators and data builders shared by the test modules"""

from datetime import date

from promoter_slots.errors import ExternalServiceError
from promoter_slots.models import ScheduleConfig, Slot, TimeSlotTemplate, User
from promoter_slots.services.google_calendar_service import MeetEvent

MEET_URL = "https://meet.google.com/abc-defg-hij"


class FakeMeetingProvider:
    """Returns a fixed Meet link, or raises when `fail` is set"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def create_meet_event(self, **kwargs) -> MeetEvent:
        self.calls.append(kwargs)
        if self.fail:
            raise ExternalServiceError("Google Calendar returned HTTP 500")
        return MeetEvent(join_url=MEET_URL, event_id=f"evt-{len(self.calls)}")


class FakeNotifier:
    """Records every notification; addresses in `failing` raise"""

    def __init__(self, failing: tuple = ()):
        self.failing = set(failing)
        self.confirmations = []
        self.approvals = []

    async def send_slot_confirmation(self, user, slot):
        if user.email in self.failing:
            raise RuntimeError("mailbox unavailable")
        self.confirmations.append((user.email, slot.id))
        return {"id": f"email-{len(self.confirmations)}"}

    async def send_approval(self, user):
        if user.email in self.failing:
            raise RuntimeError("mailbox unavailable")
        self.approvals.append(user.email)
        return {"id": f"email-{len(self.approvals)}"}


def make_user(db, email: str, **fields) -> User:
    user = User(
        name=fields.pop("name", "Ana"),
        surname=fields.pop("surname", "García"),
        email=email,
        phone=fields.pop("phone", "5512345678"),
        age=fields.pop("age", 25),
        city=fields.pop("city", "CDMX"),
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_users(db, count: int, prefix: str = "promotora") -> list[User]:
    return [make_user(db, f"{prefix}{i}@example.com", name=f"Promotora{i}") for i in range(count)]


def make_config(db, **fields) -> ScheduleConfig:
    """Active Mon-Fri configuration for the week of 2024-06-03 with one 09:00 window"""
    config = ScheduleConfig(
        name=fields.pop("name", "Junio"),
        start_date=fields.pop("start_date", date(2024, 6, 3)),
        end_date=fields.pop("end_date", date(2024, 6, 9)),
        allowed_week_days=fields.pop("allowed_week_days", [1, 2, 3, 4, 5]),
        time_zone=fields.pop("time_zone", "America/Mexico_City"),
        is_active=fields.pop("is_active", True),
        time_slots=fields.pop(
            "time_slots",
            [TimeSlotTemplate(position=0, start_time="09:00", end_time="10:00", duration_minutes=45, capacity=15)],
        ),
        **fields,
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


def make_slot(db, config=None, day: date = date(2024, 6, 3), start_time: str = "09:00", capacity: int = 15) -> Slot:
    hour, minutes = start_time.split(":")
    slot = Slot(
        date=day,
        start_time=start_time,
        end_time=f"{int(hour) + 1:02d}:{minutes}",
        max_capacity=capacity,
        status="available",
        description="",
        config_id=config.id if config else None,
    )
    db.add(slot)
    db.commit()
    db.refresh(slot)
    return slot
