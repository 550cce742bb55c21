"""Appointment model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, event, text
from sqlalchemy.orm import relationship

from carebook.database import APPOINTMENT_START_INDEX, Base, ensure_overlap_triggers
from carebook.models.department import Department
from carebook.models.doctor import Doctor
from carebook.models.user import User
from carebook.scheduling.status import STATUS_CANCELLED, STATUS_PENDING


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(Base):
    """Represents a scheduled appointment. Cancelled rows are kept, never deleted."""
    __tablename__ = "appointments"
    __table_args__ = (
        # Backstop for double booking on every dialect. Interval overlap is
        # enforced by triggers on SQLite and an exclusion constraint on Postgres.
        Index(
            APPOINTMENT_START_INDEX,
            'doctor_id',
            'start_time',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"))
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, default=STATUS_PENDING, nullable=False)
    reason = Column(String, nullable=False)
    notes = Column(String)
    clinical_notes = Column(String)
    cancellation_reason = Column(String)
    cancelled_by = Column(Integer, ForeignKey("users.id"))
    cancelled_at = Column(DateTime(timezone=True))
    confirmed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    patient = relationship(User, foreign_keys=[patient_id])
    doctor = relationship(Doctor)
    department = relationship(Department)


@event.listens_for(Appointment.__table__, 'after_create')
def install_overlap_triggers(target, connection, **kw):
    if connection.dialect.name == 'sqlite':
        ensure_overlap_triggers(connection)
