"""Read-only appointment listings for patients and doctors."""

from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy.orm import Query, Session

from carebook.core.errors import InvalidError
from carebook.models.appointment import Appointment
from carebook.scheduling.status import APPOINTMENT_STATUSES, STATUS_CONFIRMED, STATUS_PENDING
from carebook.utils.datetime_utils import ensure_utc, local_day_bounds


@dataclass
class AppointmentPage:
    items: list[Appointment]
    page: int
    limit: int
    total: int


@dataclass
class DoctorDaySummary:
    today_appointments: list[Appointment]
    pending: int
    upcoming: int


def _apply_filters(
    query: Query,
    status: str | None,
    day: date | None,
    start_date: datetime | None,
    end_date: datetime | None,
) -> Query:
    if status:
        if status not in APPOINTMENT_STATUSES:
            raise InvalidError(f"Invalid status. Must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        query = query.filter(Appointment.status == status)

    if day is not None:
        day_start, day_end = local_day_bounds(day)
        return query.filter(Appointment.start_time >= day_start, Appointment.start_time < day_end)

    if start_date is not None:
        query = query.filter(Appointment.start_time >= ensure_utc(start_date))
    if end_date is not None:
        query = query.filter(Appointment.start_time <= ensure_utc(end_date))
    return query


def _paginate(query: Query, page: int, limit: int) -> AppointmentPage:
    total = query.count()
    items = query.order_by(Appointment.start_time.asc()).offset((page - 1) * limit).limit(limit).all()
    return AppointmentPage(items=items, page=page, limit=limit, total=total)


def list_patient_appointments(
    db: Session,
    patient_id: int,
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 10,
) -> AppointmentPage:
    query = db.query(Appointment).filter(Appointment.patient_id == patient_id)
    query = _apply_filters(query, status, None, start_date, end_date)
    return _paginate(query, page, limit)


def list_doctor_appointments(
    db: Session,
    doctor_id: int,
    status: str | None = None,
    day: date | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = 1,
    limit: int = 10,
) -> AppointmentPage:
    query = db.query(Appointment).filter(Appointment.doctor_id == doctor_id)
    query = _apply_filters(query, status, day, start_date, end_date)
    return _paginate(query, page, limit)


def summarize_doctor_day(db: Session, doctor_id: int, today: date, now: datetime | None = None) -> DoctorDaySummary:
    now = ensure_utc(now) if now else datetime.now(timezone.utc)
    day_start, day_end = local_day_bounds(today)

    today_appointments = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.start_time >= day_start,
        Appointment.start_time < day_end,
    ).order_by(Appointment.start_time.asc()).all()

    pending = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status == STATUS_PENDING,
    ).count()

    upcoming = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.status == STATUS_CONFIRMED,
        Appointment.start_time > now,
    ).count()

    return DoctorDaySummary(today_appointments=today_appointments, pending=pending, upcoming=upcoming)
