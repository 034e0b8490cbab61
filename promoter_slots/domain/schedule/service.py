"""Schedule service - Configuration management and slot generation"""

import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_TIME_ZONE
from ...errors import (
    ConflictError,
    DuplicateConfigName,
    DuplicateSlot,
    NotFoundError,
    SoleActiveConfig,
    ValidationError,
)
from ...models import (
    SLOT_AVAILABLE,
    SLOT_CANCELLED,
    SLOT_COMPLETED,
    SLOT_FULL,
    ScheduleConfig,
    Slot,
    TimeSlotTemplate,
)
from .repository import ScheduleRepository
from .schemas import ScheduleConfigCreate, ScheduleConfigUpdate, TimeSlotTemplateData

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "Configuración Principal"
DEFAULT_TIME_WINDOWS = [
    ("09:00", "10:00"),
    ("10:00", "11:00"),
    ("16:00", "17:00"),
    ("17:00", "18:00"),
    ("18:00", "19:00"),
]
DEFAULT_CONFIG_MONTHS = 3
MAINTENANCE_RETENTION_DAYS = 30


def add_months(start: date, months: int) -> date:
    """Same day N months later, clamped to the last day of the target month"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `day`"""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def build_templates(time_slots: list[TimeSlotTemplateData]) -> list[TimeSlotTemplate]:
    return [
        TimeSlotTemplate(
            position=index,
            start_time=t.startTime,
            end_time=t.endTime,
            duration_minutes=t.durationMinutes,
            capacity=t.capacity,
        )
        for index, t in enumerate(time_slots)
    ]


class ScheduleService:
    """Service layer for schedule configuration and slot generation"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    # ========================================================================
    # Configurations
    # ========================================================================

    def list_configs(self) -> list[ScheduleConfig]:
        return self.repo.get_configs(self.db)

    def get_config(self, config_id: int) -> ScheduleConfig:
        config = self.repo.get_config_by_id(self.db, config_id)
        if not config:
            raise NotFoundError("Schedule configuration not found")
        return config

    def get_active_config(self) -> ScheduleConfig:
        config = self.repo.get_active_config(self.db)
        if not config:
            raise NotFoundError("No active schedule configuration")
        return config

    def create_config(self, data: ScheduleConfigCreate) -> ScheduleConfig:
        """Create a configuration; an active one replaces the current active config"""
        if self.repo.get_config_by_name(self.db, data.name):
            raise DuplicateConfigName()

        if data.isActive:
            deactivated = self.repo.deactivate_all(self.db)
            if deactivated:
                logger.info(f"🔄 Deactivated {deactivated} schedule configuration(s)")

        config = ScheduleConfig(
            name=data.name,
            start_date=data.startDate,
            end_date=data.endDate,
            allowed_week_days=data.allowedWeekDays,
            time_zone=data.timeZone,
            is_active=data.isActive,
            auto_create_slots=data.autoCreateSlots,
            weeks_in_advance=data.weeksInAdvance,
            time_slots=build_templates(data.timeSlots),
        )
        self.db.add(config)
        self._commit_config()
        self.db.refresh(config)

        logger.info(f"✅ Schedule configuration created: {config.name} (id={config.id}, active={config.is_active})")
        return config

    def update_config(self, config_id: int, data: ScheduleConfigUpdate) -> ScheduleConfig:
        config = self.get_config(config_id)

        if data.name is not None and data.name != config.name:
            if self.repo.get_config_by_name(self.db, data.name):
                raise DuplicateConfigName()
            config.name = data.name
        if data.startDate is not None:
            config.start_date = data.startDate
        if data.endDate is not None:
            config.end_date = data.endDate
        if config.end_date < config.start_date:
            self.db.rollback()
            raise ValidationError("endDate must be on or after startDate")
        if data.allowedWeekDays is not None:
            config.allowed_week_days = data.allowedWeekDays
        if data.timeSlots is not None:
            config.time_slots = build_templates(data.timeSlots)
        if data.timeZone is not None:
            config.time_zone = data.timeZone
        if data.autoCreateSlots is not None:
            config.auto_create_slots = data.autoCreateSlots
        if data.weeksInAdvance is not None:
            config.weeks_in_advance = data.weeksInAdvance
        if data.isActive is not None:
            if data.isActive and not config.is_active:
                self.repo.deactivate_all(self.db, except_id=config.id)
                self.db.flush()
            config.is_active = data.isActive

        self._commit_config()
        self.db.refresh(config)
        logger.info(f"✅ Schedule configuration updated: {config.id}")
        return config

    def activate_config(self, config_id: int) -> ScheduleConfig:
        """Make one configuration the single active one"""
        config = self.get_config(config_id)
        if config.is_active:
            return config

        # Deactivate first so the single-active index never sees two rows
        self.repo.deactivate_all(self.db, except_id=config.id)
        self.db.flush()
        config.is_active = True
        self._commit_config()
        self.db.refresh(config)

        logger.info(f"✅ Schedule configuration activated: {config.name} (id={config.id})")
        return config

    def delete_config(self, config_id: int) -> None:
        """Delete a configuration and its slots; the sole active configuration is kept"""
        config = self.get_config(config_id)

        if config.is_active:
            raise SoleActiveConfig()

        slot_ids = [slot.id for slot in config.slots]
        released = self.repo.release_users_from_slots(self.db, slot_ids)

        self.db.delete(config)
        self.db.commit()
        logger.info(
            f"🗑️ Schedule configuration {config_id} deleted with {len(slot_ids)} slot(s), "
            f"{released} user(s) released"
        )

    def _commit_config(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Schedule configuration conflict: {e.orig}")
            raise ConflictError("Schedule configuration conflicts with an existing one") from e

    def ensure_default_config(self) -> ScheduleConfig:
        """Return the active configuration, creating the default one when none exists"""
        active = self.repo.get_active_config(self.db)
        if active:
            return active

        existing = self.repo.get_config_by_name(self.db, DEFAULT_CONFIG_NAME)
        if existing:
            logger.info("🔄 Re-activating default schedule configuration")
            return self.activate_config(existing.id)

        today = date.today()
        config = ScheduleConfig(
            name=DEFAULT_CONFIG_NAME,
            start_date=today,
            end_date=add_months(today, DEFAULT_CONFIG_MONTHS),
            allowed_week_days=[1, 2, 3, 4, 5],
            time_zone=DEFAULT_TIME_ZONE,
            is_active=True,
            auto_create_slots=True,
            weeks_in_advance=4,
            time_slots=[
                TimeSlotTemplate(position=i, start_time=start, end_time=end, duration_minutes=60, capacity=15)
                for i, (start, end) in enumerate(DEFAULT_TIME_WINDOWS)
            ],
        )
        self.db.add(config)
        try:
            self.db.commit()
        except IntegrityError:
            # Created concurrently
            self.db.rollback()
            active = self.repo.get_active_config(self.db)
            if active:
                return active
            raise
        self.db.refresh(config)

        logger.info(f"✅ Default schedule configuration created ({config.start_date} → {config.end_date})")
        return config

    # ========================================================================
    # Slot generation
    # ========================================================================

    def generate_slots(
        self,
        config: ScheduleConfig,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Slot]:
        """
        Create the missing slots of a configuration.

        Walks every date of the configuration range (optionally narrowed),
        keeps the allowed ISO weekdays and creates one slot per time template
        unless a slot already exists for that (date, start_time).
        Existing slots are never modified.

        Returns:
            The newly created slots
        """
        start = max(start_date or config.start_date, config.start_date)
        end = min(end_date or config.end_date, config.end_date)
        if end < start:
            return []

        return self._generate(config, start, end, retry=True)

    def _generate(self, config: ScheduleConfig, start: date, end: date, retry: bool) -> list[Slot]:
        existing = self.repo.existing_slot_keys(self.db, start, end)
        allowed = set(config.allowed_week_days or [])
        templates = list(config.time_slots)

        created = []
        current = start
        while current <= end:
            if current.isoweekday() in allowed:
                for template in templates:
                    key = (current, template.start_time)
                    if key in existing:
                        continue
                    existing.add(key)
                    created.append(
                        Slot(
                            date=current,
                            start_time=template.start_time,
                            end_time=template.end_time,
                            max_capacity=template.capacity,
                            status=SLOT_AVAILABLE,
                            description="",
                            config_id=config.id,
                        )
                    )
            current += timedelta(days=1)

        if not created:
            logger.info(f"ℹ️ No new slots needed for {start} → {end}")
            return []

        self.db.add_all(created)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another request inserted some of the same (date, start_time) keys
            self.db.rollback()
            if not retry:
                raise DuplicateSlot() from e
            logger.warning("⚠️ Concurrent slot generation detected, retrying with fresh keys")
            return self._generate(config, start, end, retry=False)

        logger.info(f"✅ Generated {len(created)} slot(s) for {start} → {end} (config {config.id})")
        return created

    def generate_slots_for_week(self, start_date: date) -> list[Slot]:
        """Generate the Monday-based week containing start_date from the active configuration"""
        config = self.ensure_default_config()
        week_start, week_end = week_bounds(start_date)

        if week_start < config.start_date or week_start > config.end_date:
            logger.warning(f"⚠️ Week {week_start} is outside the configuration range")
            return []

        return self.generate_slots(config, week_start, week_end)

    def initialize(self) -> dict:
        config = self.ensure_default_config()
        created = self.generate_slots(config)

        return {
            "config": config,
            "created": len(created),
            "total": self.repo.count_slots(self.db),
            "available": self.repo.count_slots(self.db, SLOT_AVAILABLE),
            "full": self.repo.count_slots(self.db, SLOT_FULL),
        }

    def system_status(self) -> dict:
        config = self.repo.get_active_config(self.db)
        if not config:
            return {"initialized": False, "config": None, "slots": None}

        today = date.today()
        return {
            "initialized": True,
            "config": config,
            "slots": {
                "total": self.repo.count_slots(self.db),
                "available": self.repo.count_slots(self.db, SLOT_AVAILABLE),
                "full": self.repo.count_slots(self.db, SLOT_FULL),
                "completed": self.repo.count_slots(self.db, SLOT_COMPLETED),
                "cancelled": self.repo.count_slots(self.db, SLOT_CANCELLED),
                "upcoming": self.repo.count_upcoming_slots(
                    self.db, today, today + timedelta(days=7), (SLOT_AVAILABLE, SLOT_FULL)
                ),
            },
            "lastUpdate": config.updated_at,
        }

    def clear_empty_slots(self) -> int:
        """Delete every slot without registrations"""
        slots = self.repo.get_empty_slots(self.db)
        if not slots:
            return 0

        self.repo.release_users_from_slots(self.db, [slot.id for slot in slots])
        for slot in slots:
            self.db.delete(slot)
        self.db.commit()

        logger.info(f"🗑️ Cleared {len(slots)} empty slot(s)")
        return len(slots)

    def run_maintenance(self) -> dict:
        """
        Housekeeping pass over the schedule.

        Deletes completed and cancelled slots older than the retention window,
        attaches slots without a config to the active one and pushes an
        expired active config's end date forward.
        """
        today = date.today()
        stale = self.repo.get_stale_slots(
            self.db, today - timedelta(days=MAINTENANCE_RETENTION_DAYS), (SLOT_COMPLETED, SLOT_CANCELLED)
        )
        self.repo.release_users_from_slots(self.db, [slot.id for slot in stale])
        for slot in stale:
            self.db.delete(slot)

        orphans_fixed = 0
        config_updated = False
        config = self.repo.get_active_config(self.db)
        if config:
            orphans_fixed = self.repo.attach_orphan_slots(self.db, config.id)
            if config.end_date < today:
                config.end_date = add_months(today, DEFAULT_CONFIG_MONTHS)
                config_updated = True

        self.db.commit()
        logger.info(
            f"🧹 Maintenance: {len(stale)} old slot(s) removed, {orphans_fixed} orphan slot(s) fixed, "
            f"config updated: {config_updated}"
        )
        return {
            "oldSlotsRemoved": len(stale),
            "orphanSlotsFixed": orphans_fixed,
            "configUpdated": config_updated,
        }
