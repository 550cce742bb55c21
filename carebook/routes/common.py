from datetime import datetime

from fastapi import BackgroundTasks, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from carebook.database import SessionLocal, ensure_appointment_schema
from carebook.models.appointment import Appointment
from carebook.services.notification_service import NotificationDispatcher
from carebook.utils.datetime_utils import ensure_utc

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    department_id: int | None = None
    doctor_name: str | None = None
    department_name: str | None = None
    start_time: datetime
    end_time: datetime
    status: str
    reason: str
    notes: str | None = None
    clinical_notes: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: int | None = None
    cancelled_at: datetime | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentResponse]
    pagination: PaginationResponse


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and Postgres credentials.',
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_notifier(background_tasks: BackgroundTasks) -> NotificationDispatcher:
    # Delivery runs after the response has been sent.
    return NotificationDispatcher(scheduler=background_tasks.add_task)


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    doctor = appointment.doctor
    doctor_user = doctor.user if doctor else None
    department = appointment.department or (doctor.department if doctor else None)

    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        department_id=appointment.department_id,
        doctor_name=doctor_user.full_name if doctor_user else None,
        department_name=department.name if department else None,
        start_time=ensure_utc(appointment.start_time),
        end_time=ensure_utc(appointment.end_time),
        status=appointment.status,
        reason=appointment.reason,
        notes=appointment.notes,
        clinical_notes=appointment.clinical_notes,
        cancellation_reason=appointment.cancellation_reason,
        cancelled_by=appointment.cancelled_by,
        cancelled_at=ensure_utc(appointment.cancelled_at),
        confirmed_at=ensure_utc(appointment.confirmed_at),
        completed_at=ensure_utc(appointment.completed_at),
    )


def to_pagination(page: int, limit: int, total: int) -> PaginationResponse:
    return PaginationResponse(
        page=page,
        limit=limit,
        total=total,
        total_pages=(total + limit - 1) // limit if limit else 0,
    )
