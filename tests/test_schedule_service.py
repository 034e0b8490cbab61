from datetime import date, timedelta

import pytest

from promoter_slots.domain.schedule.schemas import ScheduleConfigCreate, TimeSlotTemplateData
from promoter_slots.domain.schedule.service import (
    DEFAULT_CONFIG_NAME,
    ScheduleService,
    add_months,
    week_bounds,
)
from promoter_slots.errors import DuplicateConfigName, NotFoundError, SoleActiveConfig
from promoter_slots.models import ScheduleConfig, Slot, SlotRegistration, TimeSlotTemplate, User

from .helpers import make_config, make_slot, make_user


def config_payload(**overrides) -> ScheduleConfigCreate:
    data = {
        "name": "Julio",
        "startDate": date(2024, 7, 1),
        "endDate": date(2024, 7, 31),
        "timeSlots": [{"startTime": "9:00", "endTime": "10:00"}],
    }
    data.update(overrides)
    return ScheduleConfigCreate(**data)


class TestDateHelpers:
    def test_add_months_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_week_bounds_are_monday_to_sunday(self):
        assert week_bounds(date(2024, 6, 6)) == (date(2024, 6, 3), date(2024, 6, 9))
        assert week_bounds(date(2024, 6, 3)) == (date(2024, 6, 3), date(2024, 6, 9))


class TestSlotGeneration:
    def test_generates_one_slot_per_allowed_weekday(self, db_session):
        config = make_config(db_session)
        service = ScheduleService(db_session)

        created = service.generate_slots(config)

        assert len(created) == 5
        slots = db_session.query(Slot).order_by(Slot.date).all()
        assert [s.date for s in slots] == [date(2024, 6, d) for d in range(3, 8)]
        assert all(s.start_time == "09:00" and s.end_time == "10:00" for s in slots)
        assert all(s.max_capacity == 15 and s.status == "available" for s in slots)

    def test_rerun_creates_nothing(self, db_session):
        config = make_config(db_session)
        service = ScheduleService(db_session)
        service.generate_slots(config)

        assert service.generate_slots(config) == []
        assert db_session.query(Slot).count() == 5

    def test_existing_slots_are_not_modified(self, db_session):
        config = make_config(db_session)
        existing = make_slot(db_session, config, day=date(2024, 6, 4), capacity=10)
        existing.description = "custom"
        db_session.commit()

        created = ScheduleService(db_session).generate_slots(config)

        assert len(created) == 4
        db_session.refresh(existing)
        assert existing.max_capacity == 10
        assert existing.description == "custom"

    def test_range_is_narrowed_to_config(self, db_session):
        config = make_config(db_session)

        created = ScheduleService(db_session).generate_slots(config, date(2024, 6, 6), date(2024, 6, 30))

        assert sorted(s.date for s in created) == [date(2024, 6, 6), date(2024, 6, 7)]

    def test_weekend_only_config(self, db_session):
        config = make_config(db_session, allowed_week_days=[6, 7])

        created = ScheduleService(db_session).generate_slots(config)

        assert sorted(s.date for s in created) == [date(2024, 6, 8), date(2024, 6, 9)]

    def test_week_outside_config_range_generates_nothing(self, db_session):
        make_config(db_session)

        assert ScheduleService(db_session).generate_slots_for_week(date(2024, 7, 10)) == []
        assert db_session.query(Slot).count() == 0

    def test_generate_week_uses_active_config(self, db_session):
        make_config(db_session)

        created = ScheduleService(db_session).generate_slots_for_week(date(2024, 6, 5))

        assert len(created) == 5


class TestConfigurations:
    def test_create_normalizes_times(self, db_session):
        config = ScheduleService(db_session).create_config(config_payload())

        assert config.time_slots[0].start_time == "09:00"
        assert config.allowed_week_days == [1, 2, 3, 4, 5]
        assert config.is_active is False
        # Creation never generates slots
        assert db_session.query(Slot).count() == 0

    def test_activating_new_config_deactivates_previous(self, db_session):
        first = make_config(db_session)
        service = ScheduleService(db_session)

        second = service.create_config(config_payload(isActive=True))

        db_session.refresh(first)
        assert second.is_active is True
        assert first.is_active is False
        assert service.get_active_config().id == second.id

    def test_activate_switches_active_config(self, db_session):
        first = make_config(db_session)
        service = ScheduleService(db_session)
        second = service.create_config(config_payload())

        service.activate_config(second.id)

        db_session.refresh(first)
        assert first.is_active is False
        assert db_session.query(ScheduleConfig).filter(ScheduleConfig.is_active.is_(True)).count() == 1

    def test_duplicate_name_rejected(self, db_session):
        make_config(db_session, name="Julio")

        with pytest.raises(DuplicateConfigName):
            ScheduleService(db_session).create_config(config_payload())

    def test_active_config_cannot_be_deleted(self, db_session):
        config = make_config(db_session)

        with pytest.raises(SoleActiveConfig):
            ScheduleService(db_session).delete_config(config.id)

    def test_delete_removes_slots_and_releases_users(self, db_session):
        make_config(db_session)
        old = make_config(db_session, name="Mayo", is_active=False)
        slot = make_slot(db_session, old)
        user = make_user(db_session, "ana@example.com", state="scheduled")
        slot.registrations.append(SlotRegistration(user_id=user.id))
        user.slot_id = slot.id
        db_session.commit()

        ScheduleService(db_session).delete_config(old.id)

        db_session.expire_all()
        assert db_session.query(Slot).count() == 0
        assert db_session.query(SlotRegistration).count() == 0
        assert user.slot_id is None

    def test_missing_config(self, db_session):
        with pytest.raises(NotFoundError):
            ScheduleService(db_session).get_config(999)

    def test_template_rejects_inverted_window(self):
        with pytest.raises(ValueError):
            TimeSlotTemplateData(startTime="10:00", endTime="09:00")


class TestBootstrap:
    def test_ensure_default_config_creates_weekday_windows(self, db_session):
        config = ScheduleService(db_session).ensure_default_config()

        assert config.name == DEFAULT_CONFIG_NAME
        assert config.is_active is True
        assert config.start_date == date.today()
        assert [t.start_time for t in config.time_slots] == ["09:00", "10:00", "16:00", "17:00", "18:00"]

    def test_ensure_default_config_reuses_active(self, db_session):
        active = make_config(db_session)

        assert ScheduleService(db_session).ensure_default_config().id == active.id
        assert db_session.query(ScheduleConfig).count() == 1

    def test_ensure_default_config_reactivates_existing_default(self, db_session):
        default = make_config(db_session, name=DEFAULT_CONFIG_NAME, is_active=False)

        config = ScheduleService(db_session).ensure_default_config()

        assert config.id == default.id
        assert config.is_active is True

    def test_clear_empty_slots_keeps_booked_ones(self, db_session):
        config = make_config(db_session)
        booked = make_slot(db_session, config, start_time="09:00")
        make_slot(db_session, config, start_time="11:00")
        user = make_user(db_session, "ana@example.com")
        booked.registrations.append(SlotRegistration(user_id=user.id))
        db_session.commit()

        assert ScheduleService(db_session).clear_empty_slots() == 1
        assert [s.id for s in db_session.query(Slot).all()] == [booked.id]

    def test_system_status_without_config(self, db_session):
        status = ScheduleService(db_session).system_status()

        assert status == {"initialized": False, "config": None, "slots": None}

    def test_templates_are_ordered_by_position(self, db_session):
        config = make_config(
            db_session,
            time_slots=[
                TimeSlotTemplate(position=1, start_time="16:00", end_time="17:00"),
                TimeSlotTemplate(position=0, start_time="09:00", end_time="10:00"),
            ],
        )
        db_session.expire_all()

        assert [t.start_time for t in db_session.get(ScheduleConfig, config.id).time_slots] == ["09:00", "16:00"]


class TestMaintenance:
    def test_removes_old_finished_slots_only(self, db_session):
        today = date.today()
        config = make_config(db_session, start_date=today - timedelta(days=90), end_date=add_months(today, 1))
        old_day = today - timedelta(days=40)
        completed = make_slot(db_session, config, day=old_day, start_time="09:00")
        cancelled = make_slot(db_session, config, day=old_day, start_time="11:00")
        untouched = make_slot(db_session, config, day=old_day, start_time="13:00")
        recent = make_slot(db_session, config, day=today - timedelta(days=5))
        completed.status = "completed"
        cancelled.status = "cancelled"
        recent.status = "completed"
        user = make_user(db_session, "ana@example.com")
        cancelled.registrations.append(SlotRegistration(user_id=user.id))
        user.slot_id = cancelled.id
        db_session.commit()

        result = ScheduleService(db_session).run_maintenance()

        assert result == {"oldSlotsRemoved": 2, "orphanSlotsFixed": 0, "configUpdated": False}
        assert sorted(s.id for s in db_session.query(Slot).all()) == sorted([untouched.id, recent.id])
        assert db_session.query(SlotRegistration).count() == 0
        assert db_session.get(User, user.id).slot_id is None

    def test_orphan_slots_join_active_config(self, db_session):
        today = date.today()
        config = make_config(db_session, start_date=today, end_date=add_months(today, 1))
        orphan = make_slot(db_session, None, day=today)

        result = ScheduleService(db_session).run_maintenance()

        db_session.refresh(orphan)
        assert result["orphanSlotsFixed"] == 1
        assert orphan.config_id == config.id

    def test_expired_active_config_is_extended(self, db_session):
        config = make_config(db_session)

        result = ScheduleService(db_session).run_maintenance()

        db_session.refresh(config)
        assert result["configUpdated"] is True
        assert config.end_date == add_months(date.today(), 3)

    def test_without_active_config_only_old_slots_are_touched(self, db_session):
        orphan = make_slot(db_session, None, day=date.today())

        result = ScheduleService(db_session).run_maintenance()

        db_session.refresh(orphan)
        assert result == {"oldSlotsRemoved": 0, "orphanSlotsFixed": 0, "configUpdated": False}
        assert orphan.config_id is None
