import pytest

from carebook.core.errors import InvalidError
from carebook.scheduling.availability import normalize_availability, parse_clock, validate_availability_payload


def test_normalize_availability_accepts_start_end_pairs() -> None:
    assert normalize_availability({'monday': ['09:00', '17:00'], 'friday': ['13:00', '15:30']}) == {
        'monday': ('09:00', '17:00'),
        'friday': ('13:00', '15:30'),
    }


def test_normalize_availability_takes_first_window_of_slot_objects() -> None:
    raw = {'tuesday': [{'start': '08:00', 'end': '12:00'}, {'start': '13:00', 'end': '17:00'}]}

    assert normalize_availability(raw) == {'tuesday': ('08:00', '12:00')}


def test_normalize_availability_maps_sunday_first_day_numbers() -> None:
    raw = [
        {'dayOfWeek': 0, 'slots': [{'startTime': '10:00', 'endTime': '12:00'}]},
        {'dayOfWeek': 1, 'slots': [{'startTime': '09:00', 'endTime': '11:00'}, {'startTime': '14:00', 'endTime': '16:00'}]},
        {'dayOfWeek': 6, 'slots': []},
    ]

    assert normalize_availability(raw) == {
        'sunday': ('10:00', '12:00'),
        'monday': ('09:00', '11:00'),
    }


def test_normalize_availability_lowercases_day_names_and_pads_times() -> None:
    assert normalize_availability({'Wednesday': ['9:00', '11:30']}) == {'wednesday': ('09:00', '11:30')}


@pytest.mark.parametrize(
    'raw',
    [
        None,
        'monday 9-5',
        42,
        {},
        [],
        {'funday': ['09:00', '17:00']},
        {'monday': []},
        {'monday': 'all day'},
        {'monday': ['09:00']},
        {'monday': ['9am', '5pm']},
        {'monday': ['25:00', '26:00']},
        {'monday': ['17:00', '09:00']},
        {'monday': [{'start': '09:00'}]},
        [{'dayOfWeek': 7, 'slots': [{'startTime': '09:00', 'endTime': '10:00'}]}],
        [{'dayOfWeek': '1', 'slots': [{'startTime': '09:00', 'endTime': '10:00'}]}],
        [{'slots': [{'startTime': '09:00', 'endTime': '10:00'}]}],
        ['monday'],
    ],
)
def test_normalize_availability_drops_malformed_entries(raw) -> None:
    assert normalize_availability(raw) == {}


def test_normalize_availability_keeps_valid_days_next_to_malformed_ones() -> None:
    raw = {'monday': ['09:00', '11:00'], 'tuesday': ['oops'], 'holiday': ['09:00', '10:00']}

    assert normalize_availability(raw) == {'monday': ('09:00', '11:00')}


def test_normalize_availability_is_idempotent_on_canonical_form() -> None:
    canonical = normalize_availability({'thursday': [{'start': '07:30', 'end': '10:00'}]})

    assert normalize_availability(canonical) == canonical


@pytest.mark.parametrize(
    ('value', 'expected'),
    [('00:00', 0), ('9:30', 570), ('23:59', 1439), ('24:00', None), ('12:60', None), (None, None), ('0930', None)],
)
def test_parse_clock(value, expected) -> None:
    assert parse_clock(value) == expected


def test_validate_availability_payload_rejects_non_maps() -> None:
    with pytest.raises(InvalidError) as exception_info:
        validate_availability_payload('monday')

    assert exception_info.value.message == 'Availability must be an object'


def test_validate_availability_payload_accepts_legacy_list() -> None:
    raw = [{'dayOfWeek': 1, 'slots': []}]

    assert validate_availability_payload(raw) is raw
