"""Doctor lookups, availability read/write and database-backed slot queries."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carebook.core import config
from carebook.core.errors import InternalError, NotFoundError
from carebook.models.appointment import Appointment
from carebook.models.department import Department
from carebook.models.doctor import Doctor
from carebook.models.user import User
from carebook.scheduling.availability import WEEKDAY_NAMES, normalize_availability, validate_availability_payload
from carebook.scheduling.slots import (
    DEFAULT_DAYS_AHEAD,
    AvailableDate,
    Slot,
    get_available_dates,
    get_available_slots,
)
from carebook.scheduling.status import STATUS_CANCELLED
from carebook.utils.datetime_utils import clinic_now, local_day_bounds

logger = logging.getLogger(__name__)

DOCTOR_INACTIVE_MESSAGE = 'Doctor is not currently available'
DOCTOR_OFF_MESSAGE = 'Doctor does not work on this day'


@dataclass
class SlotQueryResult:
    slots: list[Slot] = field(default_factory=list)
    message: str | None = None


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if doctor is None:
        raise NotFoundError('Doctor not found')
    return doctor


def get_doctor_for_user(db: Session, user_id: int) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.user_id == user_id).first()
    if doctor is None:
        raise NotFoundError('Doctor profile not found')
    return doctor


def list_departments(db: Session) -> list[Department]:
    return db.query(Department).order_by(Department.name.asc()).all()


def list_doctors(
    db: Session,
    department_id: int | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Doctor], int]:
    query = db.query(Doctor).join(User, Doctor.user_id == User.id).filter(Doctor.is_active.is_(True))
    if department_id is not None:
        query = query.filter(Doctor.department_id == department_id)
    if search:
        pattern = f'%{search.strip()}%'
        query = query.filter(User.full_name.ilike(pattern) | Doctor.specialization.ilike(pattern))

    total = query.count()
    doctors = query.order_by(User.full_name.asc()).offset((page - 1) * limit).limit(limit).all()
    return doctors, total


def get_availability(db: Session, user_id: int) -> Any:
    return get_doctor_for_user(db, user_id).availability or {}


def update_availability(db: Session, user_id: int, availability: Any) -> Any:
    validate_availability_payload(availability)
    doctor = get_doctor_for_user(db, user_id)

    try:
        doctor.availability = availability
        db.commit()
        db.refresh(doctor)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to update availability for doctor %s', doctor.id)
        raise InternalError('Failed to update availability') from exc

    logger.info('Doctor updated availability: %s', doctor.id)
    return doctor.availability


def load_live_appointments(db: Session, doctor_id: int, range_start: datetime, range_end: datetime) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status != STATUS_CANCELLED,
        Appointment.start_time >= range_start,
        Appointment.start_time < range_end,
    ).order_by(Appointment.start_time.asc()).all()


def list_doctor_slots(db: Session, doctor_id: int, day: date, now: datetime | None = None) -> SlotQueryResult:
    doctor = get_doctor(db, doctor_id)
    if not doctor.is_active:
        return SlotQueryResult(message=DOCTOR_INACTIVE_MESSAGE)

    if WEEKDAY_NAMES[day.weekday()] not in normalize_availability(doctor.availability):
        return SlotQueryResult(message=DOCTOR_OFF_MESSAGE)

    tz = config.get_clinic_timezone()
    day_start, day_end = local_day_bounds(day, tz)
    appointments = load_live_appointments(db, doctor.id, day_start, day_end)
    return SlotQueryResult(slots=get_available_slots(day, doctor, appointments, now=now, tz=tz))


def list_doctor_available_dates(
    db: Session,
    doctor_id: int,
    days_ahead: int = DEFAULT_DAYS_AHEAD,
    now: datetime | None = None,
) -> list[AvailableDate]:
    doctor = get_doctor(db, doctor_id)
    if not doctor.is_active:
        return []

    tz = config.get_clinic_timezone()
    current = now or clinic_now(tz)
    first_day = current.astimezone(tz).date() if current.tzinfo else current.date()
    range_start, _ = local_day_bounds(first_day, tz)
    _, range_end = local_day_bounds(first_day + timedelta(days=days_ahead - 1), tz)
    appointments = load_live_appointments(db, doctor.id, range_start, range_end)

    return get_available_dates(doctor, appointments, start=first_day, days_ahead=days_ahead, now=current, tz=tz)
