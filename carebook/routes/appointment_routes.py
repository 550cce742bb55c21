from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from carebook.auth.dependencies import get_current_user
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
from carebook.services import appointment_query_service, booking_service, lifecycle_service
from carebook.services.notification_service import NotificationDispatcher

router = APIRouter(tags=['appointments'])

MIN_REASON_LENGTH = 3
MAX_REASON_LENGTH = 500
MAX_NOTES_LENGTH = 1000


def _reason_text(value: str, label: str) -> str:
    normalized = value.strip()
    if len(normalized) < MIN_REASON_LENGTH:
        raise ValueError(f'{label} must be at least {MIN_REASON_LENGTH} characters.')
    if len(normalized) > MAX_REASON_LENGTH:
        raise ValueError(f'{label} must be {MAX_REASON_LENGTH} characters or fewer.')
    return normalized


def _optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    doctor_id: int
    department_id: int | None = None
    start_time: str
    reason: str
    notes: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str) -> str:
        return _reason_text(value, 'Reason')

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_NOTES_LENGTH, 'Notes')


class RescheduleAppointmentRequest(BaseModel):
    new_time: str


class CancelAppointmentRequest(BaseModel):
    reason: str

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str) -> str:
        return _reason_text(value, 'Cancellation reason')


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = booking_service.create_appointment(
            db,
            patient_id=current_user.id,
            doctor_id=data.doctor_id,
            department_id=data.department_id,
            start_time=data.start_time,
            reason=data.reason,
            notes=data.notes,
            notifier=notifier,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.get('/me', response_model=AppointmentListResponse)
def list_my_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = appointment_query_service.list_patient_appointments(
            db,
            current_user.id,
            status=status_filter,
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


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.get_appointment_for_actor(db, appointment_id, current_user)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.patch('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    data: RescheduleAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.reschedule_appointment(
            db, appointment_id, current_user, data.new_time, notifier=notifier,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.patch('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.cancel_appointment(
            db, appointment_id, current_user, reason=data.reason, notifier=notifier,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.patch('/{appointment_id}/confirm', response_model=AppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.confirm_appointment(db, appointment_id, current_user, notifier=notifier)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)


@router.patch('/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    ensure_database_ready()

    try:
        appointment = lifecycle_service.complete_appointment(db, appointment_id, current_user, notifier=notifier)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_appointment_response(appointment)
