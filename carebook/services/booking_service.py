"""
Appointment booking.

The slot listing is only advisory, so every write re-checks the doctor and
the requested interval against live rows. That check is a fast reject: the
database constraint on (doctor, interval) is what actually guarantees no
double booking, and its violation is reported as a conflict.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from carebook.core.errors import ConflictError, InactiveError, InternalError, InvalidError, NotFoundError
from carebook.database import APPOINTMENT_OVERLAP_CONSTRAINT, APPOINTMENT_START_INDEX
from carebook.models.appointment import Appointment
from carebook.models.doctor import Doctor
from carebook.models.user import User
from carebook.scheduling.slots import SLOT_DURATION_MINUTES
from carebook.scheduling.status import STATUS_CANCELLED, STATUS_PENDING
from carebook.services.notification_service import KIND_BOOKING_CONFIRMATION, NotificationDispatcher, notify
from carebook.utils.datetime_utils import parse_start_time

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = 'This time slot is no longer available. Please choose another.'

# Postgres SQLSTATEs for unique_violation and exclusion_violation
_OVERLAP_PGCODES = {'23505', '23P01'}


def appointment_duration() -> timedelta:
    return timedelta(minutes=SLOT_DURATION_MINUTES)


def validate_reason(reason: str | None) -> str:
    normalized = (reason or '').strip()
    if not normalized:
        raise InvalidError('A reason for the visit is required.')
    return normalized


def resolve_start_time(value: datetime | str | None) -> datetime:
    if value is None:
        raise InvalidError('Start time is required.')
    try:
        return parse_start_time(value)
    except (TypeError, ValueError) as exc:
        raise InvalidError('Invalid start time. Use an ISO 8601 datetime.') from exc


def find_overlapping_appointment(
    db: Session,
    doctor_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: int | None = None,
) -> Appointment | None:
    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.first()


def is_overlap_violation(exc: IntegrityError) -> bool:
    original = exc.orig
    if getattr(original, 'pgcode', None) in _OVERLAP_PGCODES:
        return True
    message = str(original)
    return (
        APPOINTMENT_OVERLAP_CONSTRAINT in message
        or APPOINTMENT_START_INDEX in message
        or 'UNIQUE constraint failed: appointments.doctor_id, appointments.start_time' in message
    )


def commit_appointment(db: Session, action: str) -> None:
    """Commit the pending appointment write, classifying store failures."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_overlap_violation(exc):
            logger.warning('Appointment %s rejected by overlap constraint', action)
            raise ConflictError(SLOT_TAKEN_MESSAGE) from exc
        logger.exception('Appointment %s failed on an integrity error', action)
        raise InternalError(f'Failed to {action} appointment') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Appointment %s failed', action)
        raise InternalError(f'Failed to {action} appointment') from exc


def lock_doctor(db: Session, doctor_id: int) -> Doctor | None:
    # Serializes bookings per doctor where the dialect supports row locks.
    return db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().first()


def create_appointment(
    db: Session,
    patient_id: int,
    doctor_id: int,
    department_id: int | None,
    start_time: datetime | str,
    reason: str,
    notes: str | None = None,
    notifier: NotificationDispatcher | None = None,
) -> Appointment:
    """Book ``start_time`` with a doctor for a patient; the new row is pending.

    Raises:
        InvalidError: empty reason or unparseable start time.
        NotFoundError: unknown doctor or patient.
        InactiveError: the doctor is not accepting appointments.
        ConflictError: the interval overlaps a live appointment.
        InternalError: any other store failure.
    """
    normalized_reason = validate_reason(reason)
    start = resolve_start_time(start_time)
    end = start + appointment_duration()

    try:
        doctor = lock_doctor(db, doctor_id)
        if doctor is None:
            raise NotFoundError('Doctor not found')
        if not doctor.is_active:
            raise InactiveError('Doctor is not currently accepting appointments')

        patient = db.query(User).filter(User.id == patient_id).first()
        if patient is None:
            raise NotFoundError('Patient not found')

        if find_overlapping_appointment(db, doctor.id, start, end):
            raise ConflictError(SLOT_TAKEN_MESSAGE)

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            department_id=department_id or doctor.department_id,
            start_time=start,
            end_time=end,
            status=STATUS_PENDING,
            reason=normalized_reason,
            notes=(notes or '').strip() or None,
        )
        db.add(appointment)
    except (ConflictError, InactiveError, NotFoundError):
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create appointment')
        raise InternalError('Failed to create appointment') from exc

    commit_appointment(db, 'create')
    db.refresh(appointment)

    logger.info('Appointment created: %s by patient: %s', appointment.id, patient_id)
    notify(notifier, KIND_BOOKING_CONFIRMATION, appointment)
    return appointment
