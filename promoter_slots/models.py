from datetime import datetime, timedelta

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Slot status values
SLOT_AVAILABLE = "available"
SLOT_FULL = "full"
SLOT_COMPLETED = "completed"
SLOT_CANCELLED = "cancelled"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_FULL, SLOT_COMPLETED, SLOT_CANCELLED)

# Per-registration approval sub-state
REGISTRATION_PENDING = "pending"
REGISTRATION_APPROVED = "approved"
REGISTRATION_REJECTED = "rejected"

# Overall user state, in workflow order
USER_PENDING = "pending"
USER_SCHEDULED = "scheduled"
USER_MEETING_HELD = "meeting_held"
USER_APPROVED = "approved"
USER_REJECTED = "rejected"
USER_STATES = (USER_PENDING, USER_SCHEDULED, USER_MEETING_HELD, USER_APPROVED, USER_REJECTED)

MIN_SLOT_CAPACITY = 10
MAX_SLOT_CAPACITY = 15


class ScheduleConfig(Base):
    """Date-range policy and time-slot templates from which slots are generated"""

    __tablename__ = "schedule_configs"
    __table_args__ = (
        # At most one active configuration
        Index(
            "uq_schedule_configs_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, default="Configuración Principal")
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    allowed_week_days = Column(JSON, nullable=False, default=lambda: [1, 2, 3, 4, 5])  # 1=Monday ... 7=Sunday
    time_zone = Column(String(64), nullable=False, default="America/Mexico_City")
    is_active = Column(Boolean, nullable=False, default=False)
    auto_create_slots = Column(Boolean, nullable=False, default=True)
    weeks_in_advance = Column(Integer, nullable=False, default=4)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    time_slots = relationship(
        "TimeSlotTemplate",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="TimeSlotTemplate.position",
        lazy="selectin",
    )
    slots = relationship("Slot", back_populates="config", cascade="all, delete-orphan")

    def template_for(self, start_time: str, end_time: str):
        """Return the template matching a slot's time window, if any"""
        for template in self.time_slots:
            if template.start_time == start_time and template.end_time == end_time:
                return template
        return None


class TimeSlotTemplate(Base):
    __tablename__ = "time_slot_templates"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(
        Integer, ForeignKey("schedule_configs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False, default=60)
    capacity = Column(Integer, nullable=False, default=MAX_SLOT_CAPACITY)

    config = relationship("ScheduleConfig", back_populates="time_slots")


class Slot(Base):
    """Bookable meeting unit ("cupo") with a bounded number of registrations"""

    __tablename__ = "slots"
    __table_args__ = (UniqueConstraint("date", "start_time", name="uq_slots_date_start_time"),)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    max_capacity = Column(Integer, nullable=False, default=MAX_SLOT_CAPACITY)
    # Status workflow: available ⇄ full (capacity driven), completed / cancelled (admin only)
    status = Column(String(20), nullable=False, default=SLOT_AVAILABLE, index=True)
    meeting_link = Column(String(500), nullable=True)
    meeting_id = Column(String(255), nullable=True)  # Google Calendar event id
    description = Column(Text, nullable=False, default="")
    config_id = Column(
        Integer, ForeignKey("schedule_configs.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    config = relationship("ScheduleConfig", back_populates="slots")
    registrations = relationship(
        "SlotRegistration",
        back_populates="slot",
        cascade="all, delete-orphan",
        order_by="SlotRegistration.id",
        lazy="selectin",
    )
    attendance_records = relationship("Attendance", back_populates="slot", cascade="all, delete-orphan")

    @property
    def registered_count(self) -> int:
        return len(self.registrations)

    @property
    def is_full(self) -> bool:
        return self.registered_count >= self.max_capacity

    @property
    def available_count(self) -> int:
        return max(self.max_capacity - self.registered_count, 0)

    @property
    def approved_count(self) -> int:
        return sum(1 for r in self.registrations if r.approval_state == REGISTRATION_APPROVED)

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self.registrations if r.approval_state == REGISTRATION_PENDING)

    def registration_for(self, user_id: int):
        for registration in self.registrations:
            if registration.user_id == user_id:
                return registration
        return None

    def sync_status(self) -> str:
        """Recompute available/full from the registration count; admin states are left alone"""
        if self.is_full and self.status == SLOT_AVAILABLE:
            self.status = SLOT_FULL
        elif not self.is_full and self.status == SLOT_FULL:
            self.status = SLOT_AVAILABLE
        return self.status


class SlotRegistration(Base):
    __tablename__ = "slot_registrations"
    __table_args__ = (UniqueConstraint("slot_id", "user_id", name="uq_slot_registrations_slot_user"),)

    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    registered_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    approval_state = Column(String(20), nullable=False, default=REGISTRATION_PENDING)
    approved_at = Column(DateTime, nullable=True)  # Decision time, approval or rejection
    approved_by = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    slot = relationship("Slot", back_populates="registrations")
    user = relationship("User", back_populates="registrations", lazy="joined")


class User(Base):
    """Promoter candidate"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    surname = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # Stored lower-case
    phone = Column(String(50), nullable=True)
    age = Column(Integer, nullable=True)
    city = Column(String(255), nullable=True)
    zip_code = Column(String(20), nullable=True)
    experience = Column(Text, nullable=True)
    motivation = Column(Text, nullable=True)
    availability = Column(Text, nullable=True)
    languages = Column(JSON, nullable=False, default=lambda: ["Español"])
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)
    # Status workflow: pending → scheduled → meeting_held → approved; rejected is terminal
    state = Column(String(20), nullable=False, default=USER_PENDING, index=True)
    attended = Column(Boolean, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(String(255), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    approval_email_sent = Column(Boolean, nullable=False, default=False)
    imported = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    slot = relationship("Slot", foreign_keys=[slot_id])
    registrations = relationship("SlotRegistration", back_populates="user", cascade="all, delete-orphan")
    attendance_records = relationship("Attendance", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.surname}"


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (UniqueConstraint("user_id", "slot_id", name="uq_attendance_user_slot"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="CASCADE"), nullable=False, index=True)
    attended = Column(Boolean, nullable=True)  # None = not marked yet
    marked_at = Column(DateTime, nullable=True)
    marked_by = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="attendance_records")
    slot = relationship("Slot", back_populates="attendance_records")


class GoogleCredentials(Base):
    """System-wide Google OAuth tokens used to create Meet events"""

    __tablename__ = "google_credentials"

    id = Column(Integer, primary_key=True, index=True)
    identifier = Column(String(50), unique=True, nullable=False, default="system")

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    token_type = Column(String(20), nullable=False, default="Bearer")
    scope = Column(Text, nullable=False)
    token_expires_at = Column(DateTime, nullable=False)

    created_by = Column(String(255), default="admin")
    last_used = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def is_expired(self, leeway: timedelta = timedelta(0)) -> bool:
        return self.token_expires_at <= datetime.utcnow() + leeway


class DeliveryAttempt(Base):
    """Outcome of a best-effort side effect (Meet link, confirmation or approval email)"""

    __tablename__ = "delivery_attempts"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(50), nullable=False, index=True)  # meeting_link, slot_confirmation, approval_email
    slot_id = Column(Integer, ForeignKey("slots.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    recipient = Column(String(255), nullable=True)
    succeeded = Column(Boolean, nullable=False, default=False)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
