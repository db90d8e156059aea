"""SQLAlchemy models for the scheduling DB."""
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, JSON, Text,
    Index, UniqueConstraint, text,
)
from sqlalchemy.orm import relationship

from .database import Base


class Therapist(Base):
    __tablename__ = "therapists"
    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(100), nullable=False, index=True)
    shift_type = Column(String(10), nullable=False, default="day")  # day, night, either
    employment_type = Column(String(20), nullable=False, default="full_time")  # full_time, part_time, prn
    is_lead_eligible = Column(Boolean, default=False)
    max_work_days_per_week = Column(Integer, nullable=True)  # null = employment default
    is_active = Column(Boolean, default=True)
    on_fmla = Column(Boolean, default=False)
    fmla_return_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    pattern = relationship(
        "WorkPattern", back_populates="therapist", uselist=False, cascade="all, delete-orphan",
    )
    shifts = relationship("Shift", back_populates="therapist")


class WorkPattern(Base):
    __tablename__ = "work_patterns"
    id = Column(Integer, primary_key=True, index=True)
    therapist_id = Column(Integer, ForeignKey("therapists.id"), nullable=False, unique=True)
    works_dow = Column(JSON, default=list)  # [0..6], 0 = Monday
    offs_dow = Column(JSON, default=list)
    works_dow_mode = Column(String(10), default="hard")  # hard, soft
    weekend_rotation = Column(String(20), default="none")  # none, every_other
    weekend_anchor_date = Column(Date, nullable=True)
    shift_preference = Column(String(10), default="either")

    therapist = relationship("Therapist", back_populates="pattern")


class ScheduleCycle(Base):
    __tablename__ = "schedule_cycles"
    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    published = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    shifts = relationship("Shift", back_populates="cycle", cascade="all, delete-orphan")
    overrides = relationship("AvailabilityOverride", back_populates="cycle", cascade="all, delete-orphan")


class AvailabilityOverride(Base):
    __tablename__ = "availability_overrides"
    id = Column(Integer, primary_key=True, index=True)
    cycle_id = Column(Integer, ForeignKey("schedule_cycles.id"), nullable=False)
    therapist_id = Column(Integer, ForeignKey("therapists.id"), nullable=False)
    date = Column(Date, nullable=False)
    shift_type = Column(String(10), nullable=False, default="both")  # day, night, both
    override_type = Column(String(20), nullable=False)  # force_off, force_on
    note = Column(Text, nullable=True)
    source = Column(String(20), default="manager")  # manager, therapist
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    cycle = relationship("ScheduleCycle", back_populates="overrides")

    __table_args__ = (
        UniqueConstraint("cycle_id", "therapist_id", "date", "shift_type", name="uq_override_slot"),
    )


class Shift(Base):
    __tablename__ = "shifts"
    id = Column(Integer, primary_key=True, index=True)
    cycle_id = Column(Integer, ForeignKey("schedule_cycles.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("therapists.id"), nullable=False)
    date = Column(Date, nullable=False)
    shift_type = Column(String(10), nullable=False)  # day, night
    role = Column(String(10), nullable=False, default="staff")  # lead, staff
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, on_call, sick, called_off
    assignment_status = Column(String(20), nullable=False, default="scheduled")
    status_note = Column(Text, nullable=True)
    left_early_time = Column(String(8), nullable=True)  # HH:MM:SS
    status_updated_at = Column(DateTime, nullable=True)
    status_updated_by = Column(String(100), nullable=True)
    availability_override = Column(Boolean, default=False)
    availability_override_reason = Column(Text, nullable=True)
    availability_override_by = Column(String(100), nullable=True)
    availability_override_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    cycle = relationship("ScheduleCycle", back_populates="shifts")
    therapist = relationship("Therapist", back_populates="shifts")

    __table_args__ = (
        UniqueConstraint("cycle_id", "user_id", "date", name="uq_shift_cycle_user_date"),
        # At most one designated lead per slot
        Index(
            "uq_shift_slot_lead",
            "cycle_id", "date", "shift_type",
            unique=True,
            sqlite_where=text("role = 'lead'"),
            postgresql_where=text("role = 'lead'"),
        ),
    )

    @property
    def therapist_name(self):
        return self.therapist.full_name if self.therapist else None
