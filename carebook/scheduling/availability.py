"""
Doctor availability normalization.

Doctors' weekly hours have been stored in three shapes over time:

1. ``{"monday": ["09:00", "17:00"]}``
2. ``{"monday": [{"start": "09:00", "end": "17:00"}]}``
3. ``[{"dayOfWeek": 1, "slots": [{"startTime": "09:00", "endTime": "17:00"}]}]``
   where ``dayOfWeek`` counts from Sunday = 0.

Everything downstream works on the canonical form returned by
``normalize_availability``: lowercase weekday name -> ``("HH:MM", "HH:MM")``.
"""

import re
from typing import Any

from carebook.core.errors import InvalidError

WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

# dayOfWeek numbering used by the list shape
SUNDAY_FIRST_DAY_NAMES = {
    0: 'sunday',
    1: 'monday',
    2: 'tuesday',
    3: 'wednesday',
    4: 'thursday',
    5: 'friday',
    6: 'saturday',
}

_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})$')

CanonicalAvailability = dict[str, tuple[str, str]]


def parse_clock(value: Any) -> int | None:
    """Minutes since midnight for a 24-hour ``H:MM``/``HH:MM`` string, else None."""
    if not isinstance(value, str):
        return None
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def _window(start: Any, end: Any) -> tuple[str, str] | None:
    start_minutes = parse_clock(start)
    end_minutes = parse_clock(end)
    if start_minutes is None or end_minutes is None or end_minutes <= start_minutes:
        return None
    return format_clock(start_minutes), format_clock(end_minutes)


def _window_from_day_value(value: Any) -> tuple[str, str] | None:
    if not isinstance(value, (list, tuple)) or not value:
        return None

    first = value[0]
    if isinstance(first, dict):
        return _window(first.get('start'), first.get('end'))
    if isinstance(first, str) and len(value) >= 2:
        return _window(value[0], value[1])
    return None


def _normalize_day_records(records: list) -> CanonicalAvailability:
    normalized: CanonicalAvailability = {}
    for entry in records:
        if not isinstance(entry, dict):
            continue
        day_number = entry.get('dayOfWeek')
        if isinstance(day_number, bool) or not isinstance(day_number, int):
            continue
        day_name = SUNDAY_FIRST_DAY_NAMES.get(day_number)
        slots = entry.get('slots')
        if not day_name or not isinstance(slots, list) or not slots:
            continue
        first = slots[0]
        if not isinstance(first, dict):
            continue
        window = _window(first.get('startTime'), first.get('endTime'))
        if window and day_name not in normalized:
            normalized[day_name] = window
    return normalized


def _normalize_day_map(raw: dict) -> CanonicalAvailability:
    normalized: CanonicalAvailability = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        day_name = key.strip().lower()
        if day_name not in WEEKDAY_NAMES:
            continue
        window = _window_from_day_value(value)
        if window:
            normalized[day_name] = window
    return normalized


def normalize_availability(raw: Any) -> CanonicalAvailability:
    """Convert any stored availability shape into the canonical weekday map.

    Unrecognized or malformed entries are dropped; the result may be empty.
    """
    if isinstance(raw, list):
        return _normalize_day_records(raw)
    if isinstance(raw, dict):
        return _normalize_day_map(raw)
    return {}


def validate_availability_payload(raw: Any) -> dict | list:
    """Write-side check: the value must at least be a map (or the legacy list)."""
    if not isinstance(raw, (dict, list)):
        raise InvalidError('Availability must be an object')
    return raw
