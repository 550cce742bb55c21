from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from carebook.core.errors import SchedulingError, to_http_exception
from carebook.models.doctor import Doctor
from carebook.routes.common import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PaginationResponse,
    ensure_database_ready,
    get_db,
    to_pagination,
)
from carebook.scheduling.slots import DEFAULT_DAYS_AHEAD
from carebook.services import doctor_service

router = APIRouter(tags=['doctors'])

MAX_DAYS_AHEAD = 60


class DoctorResponse(BaseModel):
    id: int
    full_name: str | None = None
    specialization: str | None = None
    department_id: int | None = None
    department_name: str | None = None
    is_active: bool


class DoctorListResponse(BaseModel):
    doctors: list[DoctorResponse]
    pagination: PaginationResponse


class SlotResponse(BaseModel):
    time: str
    label: str
    iso_instant: str


class DoctorSlotsResponse(BaseModel):
    date: date
    slots: list[SlotResponse]
    message: str | None = None


class AvailableDateResponse(BaseModel):
    date: date
    slots_count: int


def to_doctor_response(doctor: Doctor) -> DoctorResponse:
    return DoctorResponse(
        id=doctor.id,
        full_name=doctor.user.full_name if doctor.user else None,
        specialization=doctor.specialization,
        department_id=doctor.department_id,
        department_name=doctor.department.name if doctor.department else None,
        is_active=doctor.is_active,
    )


@router.get('', response_model=DoctorListResponse)
def list_doctors(
    department_id: int | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    doctors, total = doctor_service.list_doctors(db, department_id=department_id, search=search, page=page, limit=limit)
    return DoctorListResponse(
        doctors=[to_doctor_response(doctor) for doctor in doctors],
        pagination=to_pagination(page, limit, total),
    )


@router.get('/{doctor_id}', response_model=DoctorResponse)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    try:
        doctor = doctor_service.get_doctor(db, doctor_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_doctor_response(doctor)


@router.get('/{doctor_id}/slots', response_model=DoctorSlotsResponse)
def list_doctor_slots(
    doctor_id: int,
    day: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = doctor_service.list_doctor_slots(db, doctor_id, day)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return DoctorSlotsResponse(
        date=day,
        slots=[SlotResponse(time=slot.time, label=slot.label, iso_instant=slot.iso_instant) for slot in result.slots],
        message=result.message,
    )


@router.get('/{doctor_id}/available-dates', response_model=list[AvailableDateResponse])
def list_available_dates(
    doctor_id: int,
    days: int = Query(default=DEFAULT_DAYS_AHEAD, ge=1, le=MAX_DAYS_AHEAD),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        available_dates = doctor_service.list_doctor_available_dates(db, doctor_id, days_ahead=days)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [
        AvailableDateResponse(date=available.date, slots_count=available.slots_count)
        for available in available_dates
    ]
