from datetime import date, datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from carebook.auth.dependencies import get_current_doctor_user
from carebook.core import config
from carebook.core.errors import SchedulingError, to_http_exception
from carebook.models.user import User
from carebook.routes.common import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    AppointmentListResponse,
    AppointmentResponse,
    ensure_database_ready,
    get_db,
    get_notifier,
    to_appointment_response,
    to_pagination,
)
from carebook.routes.doctor_routes import DoctorResponse, to_doctor_response
from carebook.scheduling.status import STATUS_ACTIONS
from carebook.services import appointment_query_service, doctor_service, lifecycle_service
from carebook.services.notification_service import NotificationDispatcher
from carebook.utils.datetime_utils import clinic_now

router = APIRouter(tags=['doctor-portal'])

MAX_CLINICAL_NOTES_LENGTH = 5000


class AvailabilityPayload(BaseModel):
    availability: Any


class AvailabilityResponse(BaseModel):
    availability: Any


class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in STATUS_ACTIONS:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(STATUS_ACTIONS)}")
        return normalized


class ClinicalNotesRequest(BaseModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_CLINICAL_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_CLINICAL_NOTES_LENGTH} characters or fewer.')
        return value


class DaySummaryStats(BaseModel):
    today_total: int
    pending: int
    upcoming: int


class DaySummaryResponse(BaseModel):
    today_appointments: list[AppointmentResponse]
    stats: DaySummaryStats


@router.get('/me', response_model=DoctorResponse)
def get_my_profile(
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    try:
        doctor = doctor_service.get_doctor_for_user(db, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_doctor_response(doctor)


@router.get('/appointments', response_model=AppointmentListResponse)
def list_my_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    day: date | None = Query(default=None, alias='date'),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = doctor_service.get_doctor_for_user(db, current_user.id)
        result = appointment_query_service.list_doctor_appointments(
            db,
            doctor.id,
            status=status_filter,
            day=day,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return AppointmentListResponse(
        appointments=[to_appointment_response(appointment) for appointment in result.items],
        pagination=to_pagination(result.page, result.limit, result.total),
    )


@router.get('/summary', response_model=DaySummaryResponse)
def get_todays_summary(
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = doctor_service.get_doctor_for_user(db, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    now = clinic_now(config.get_clinic_timezone())
    summary = appointment_query_service.summarize_doctor_day(db, doctor.id, now.date(), now=now)
    return DaySummaryResponse(
        today_appointments=[to_appointment_response(appointment) for appointment in summary.today_appointments],
        stats=DaySummaryStats(
            today_total=len(summary.today_appointments),
            pending=summary.pending,
            upcoming=summary.upcoming,
        ),
    )


@router.get('/availability', response_model=AvailabilityResponse)
def get_availability(
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    try:
        availability = doctor_service.get_availability(db, current_user.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return AvailabilityResponse(availability=availability)


@router.put('/availability', response_model=AvailabilityResponse)
def update_availability(
    data: AvailabilityPayload,
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    try:
        availability = doctor_service.update_availability(db, current_user.id, data.availability)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return AvailabilityResponse(availability=availability)


@router.patch('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateStatusRequest,
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.update_status(
            db, appointment_id, current_user, data.status, reason=data.reason, notifier=notifier,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.patch('/appointments/{appointment_id}/notes', response_model=AppointmentResponse)
def save_appointment_notes(
    appointment_id: int,
    data: ClinicalNotesRequest,
    current_user: User = Depends(get_current_doctor_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.save_clinical_notes(db, appointment_id, current_user, data.notes)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)
