from datetime import date, datetime, timedelta, timezone

import pytest

from carebook.core.errors import InvalidError, NotFoundError
from carebook.services import doctor_service

UTC = timezone.utc
NEXT_MONDAY = date(2030, 1, 7)
BEFORE_NEXT_MONDAY = datetime(2030, 1, 1, 8, 0, tzinfo=UTC)


def test_list_doctor_slots_for_working_day(db_session, doctor) -> None:
    result = doctor_service.list_doctor_slots(db_session, doctor.id, NEXT_MONDAY, now=BEFORE_NEXT_MONDAY)

    assert result.message is None
    assert [slot.time for slot in result.slots] == ['09:00', '09:30', '10:00', '10:30']
    assert result.slots[0].iso_instant == '2030-01-07T09:00:00Z'


def test_list_doctor_slots_ignores_cancelled_appointments(db_session, make_appointment, patient, doctor) -> None:
    start = datetime(2030, 1, 7, 9, 0, tzinfo=UTC)
    make_appointment(patient, doctor, start, start + timedelta(minutes=30), status='cancelled')

    result = doctor_service.list_doctor_slots(db_session, doctor.id, NEXT_MONDAY, now=BEFORE_NEXT_MONDAY)

    assert result.slots[0].time == '09:00'


def test_list_doctor_slots_day_off(db_session, doctor) -> None:
    result = doctor_service.list_doctor_slots(db_session, doctor.id, date(2030, 1, 8), now=BEFORE_NEXT_MONDAY)

    assert result.slots == []
    assert result.message == 'Doctor does not work on this day'


def test_list_doctor_slots_inactive_doctor(db_session, doctor) -> None:
    doctor.is_active = False
    db_session.commit()

    result = doctor_service.list_doctor_slots(db_session, doctor.id, NEXT_MONDAY, now=BEFORE_NEXT_MONDAY)

    assert result.slots == []
    assert result.message == 'Doctor is not currently available'


def test_list_doctor_slots_unknown_doctor(db_session) -> None:
    with pytest.raises(NotFoundError):
        doctor_service.list_doctor_slots(db_session, 999, NEXT_MONDAY)


def test_list_doctor_available_dates(db_session, make_appointment, patient, doctor) -> None:
    start = datetime(2030, 1, 7, 9, 0, tzinfo=UTC)
    make_appointment(patient, doctor, start, start + timedelta(minutes=30))

    dates = doctor_service.list_doctor_available_dates(db_session, doctor.id, days_ahead=14, now=BEFORE_NEXT_MONDAY)

    assert [(available.date, available.slots_count) for available in dates] == [
        (date(2030, 1, 7), 3),
        (date(2030, 1, 14), 4),
    ]


def test_list_doctor_available_dates_inactive_doctor(db_session, doctor) -> None:
    doctor.is_active = False
    db_session.commit()

    assert doctor_service.list_doctor_available_dates(db_session, doctor.id, now=BEFORE_NEXT_MONDAY) == []


def test_update_availability_persists_payload(db_session, doctor, doctor_user) -> None:
    payload = {'tuesday': [{'start': '13:00', 'end': '15:00'}]}

    saved = doctor_service.update_availability(db_session, doctor_user.id, payload)

    assert saved == payload
    result = doctor_service.list_doctor_slots(db_session, doctor.id, date(2030, 1, 8), now=BEFORE_NEXT_MONDAY)
    assert [slot.label for slot in result.slots] == ['1:00 PM', '1:30 PM', '2:00 PM', '2:30 PM']


def test_update_availability_rejects_non_object(db_session, doctor, doctor_user) -> None:
    with pytest.raises(InvalidError):
        doctor_service.update_availability(db_session, doctor_user.id, 'mornings')


def test_get_availability_requires_doctor_profile(db_session, patient) -> None:
    with pytest.raises(NotFoundError) as exception_info:
        doctor_service.get_availability(db_session, patient.id)

    assert exception_info.value.message == 'Doctor profile not found'


def test_list_doctors_filters_and_searches(db_session, doctor, other_doctor) -> None:
    other_doctor.is_active = False
    db_session.commit()

    doctors, total = doctor_service.list_doctors(db_session, department_id=doctor.department_id)
    assert total == 1
    assert doctors[0].id == doctor.id

    doctors, total = doctor_service.list_doctors(db_session, search='cardio')
    assert [item.id for item in doctors] == [doctor.id]

    _, total = doctor_service.list_doctors(db_session, search='dermatology')
    assert total == 0
